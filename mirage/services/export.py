from __future__ import annotations

from mirage.db.repositories import DBScoreRepository
from mirage.entities.score import Score
from mirage.services.errors import MissingParameterError
from mirage.services.pagination import page_offset


def export_scores(
    score_repository: DBScoreRepository,
    *,
    user_id: int | None,
    game_internal_name: str | None,
    page: int,
    page_size: int,
) -> list[Score]:
    """One page of a user's scores for a game, newest first."""
    if user_id is None or not game_internal_name:
        raise MissingParameterError()
    return score_repository.fetch_page(
        game_internal_name=game_internal_name,
        user_id=user_id,
        offset=page_offset(page, page_size),
        limit=page_size,
    )
