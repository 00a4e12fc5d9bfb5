from __future__ import annotations

import logging

from mirage.db.repositories import DBScoreRepository
from mirage.services.errors import MissingParameterError
from mirage.services.params import parse_int_param

logger = logging.getLogger(__name__)


def delete_score(
    score_repository: DBScoreRepository,
    *,
    user_id: str | int | None,
    game_internal_name: str | None,
    score_id: str | int | None,
    session_user_id: int | None = None,
) -> int:
    """Delete one score by its exact (user, game, id) triple. Returns the number of rows removed.

    A target owned by another user or game matches nothing and is not an error.
    When a session identity is present it wins over the supplied user id.
    """
    if user_id in (None, "") or not game_internal_name or score_id in (None, ""):
        raise MissingParameterError()

    requested_user = parse_int_param("userId", user_id)
    target_score = parse_int_param("scoreId", score_id)

    if session_user_id is not None and session_user_id != requested_user:
        logger.info(
            "ignoring delete of score %d: requested user %d is not session user %d",
            target_score, requested_user, session_user_id,
        )
        return 0

    deleted = score_repository.delete(
        user_id=requested_user,
        game_internal_name=game_internal_name,
        score_id=target_score,
    )
    logger.info(
        "deleted %d score(s) id=%d user=%d game=%s",
        deleted, target_score, requested_user, game_internal_name,
    )
    return deleted
