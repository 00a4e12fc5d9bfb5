"""Score ingestion: validate -> resolve game -> dedupe -> lazily create charts -> batch insert."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError as PydanticValidationError

from mirage.db.repositories import DBChartRepository, DBGameRepository, DBScoreRepository
from mirage.entities.score import Chart, Game, Score
from mirage.schemas import ScoreUploadEnvelope
from mirage.services.chart_identity import chart_id_for_record
from mirage.services.documents import canonical_document
from mirage.services.errors import AuthenticationError, UnsupportedGameError, ValidationError

logger = logging.getLogger(__name__)

INVALID_FORMAT = "Invalid request format. Expected meta with game/service and scores array"


@dataclass(frozen=True)
class IngestionContext:
    user_id: int
    game: Game
    requested_game: str
    service: str
    records: tuple[dict[str, Any], ...]


@dataclass(frozen=True)
class IngestionResult:
    game: str
    service: str
    created: int
    skipped: int
    total: int


def parse_upload(payload: Any) -> ScoreUploadEnvelope:
    if not isinstance(payload, Mapping):
        raise ValidationError(INVALID_FORMAT)
    try:
        return ScoreUploadEnvelope.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"{INVALID_FORMAT} (invalid field: {_first_invalid_field(exc)})") from exc


def _first_invalid_field(exc: PydanticValidationError) -> str:
    loc = exc.errors()[0]["loc"] if exc.errors() else ()
    if not loc:
        return "body"
    if loc[0] == "meta" and len(loc) > 1:
        return f"meta.{loc[1]}"
    return str(loc[0])


def coerce_timestamp(value: Any) -> int | None:
    """Normalize an uploaded timestamp to an integer, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if math.isfinite(number) else None


def _optional_text(value: Any) -> str | None:
    return None if value is None else str(value)


class ScoreIngestionService:
    def __init__(
        self,
        game_repository: DBGameRepository,
        chart_repository: DBChartRepository,
        score_repository: DBScoreRepository,
    ):
        self.game_repository = game_repository
        self.chart_repository = chart_repository
        self.score_repository = score_repository

    def ingest(self, payload: Any, user_id: int | None) -> IngestionResult:
        context = self.prepare(payload, user_id)
        try:
            return self.store(context)
        except Exception:
            self.score_repository.rollback()
            raise

    def prepare(self, payload: Any, user_id: int | None) -> IngestionContext:
        if user_id is None:
            raise AuthenticationError("Unauthorized. Please log in to upload scores.")
        envelope = parse_upload(payload)
        game = self.resolve_game(envelope.meta.game)
        return IngestionContext(
            user_id=user_id,
            game=game,
            requested_game=envelope.meta.game,
            service=envelope.meta.service,
            records=tuple(envelope.records()),
        )

    def resolve_game(self, identifier: str) -> Game:
        game = self.game_repository.fetch_by_internal_name(identifier)
        if game is None:
            game = self.game_repository.fetch_by_formatted_name(identifier)
        if game is None:
            raise UnsupportedGameError(identifier)
        return game

    def store(self, context: IngestionContext) -> IngestionResult:
        game_name = context.game.internal_name
        staged: list[Score] = []
        skipped = 0

        for record in context.records:
            chart_id = chart_id_for_record(game_name, record)
            if self._is_duplicate(context, chart_id, record, staged):
                skipped += 1
                continue

            self.chart_repository.ensure(Chart(
                game_internal_name=game_name,
                chart_id=chart_id,
                title=_optional_text(record.get("title")),
                artist=_optional_text(record.get("artist")),
            ))
            staged.append(Score(
                game_internal_name=game_name,
                user_id=context.user_id,
                chart_id=chart_id,
                timestamp=coerce_timestamp(record.get("timestamp")),
                data=record,
            ))

        created = self.score_repository.add_all(staged)
        self.score_repository.commit()

        logger.info(
            "score upload user=%s game=%s service=%s created=%d skipped=%d",
            context.user_id, game_name, context.service, created, skipped,
        )
        return IngestionResult(
            game=context.requested_game,
            service=context.service,
            created=created,
            skipped=skipped,
            total=len(context.records),
        )

    def _is_duplicate(
        self, context: IngestionContext, chart_id: str,
        record: dict[str, Any], staged: list[Score],
    ) -> bool:
        # Records earlier in the same upload are not stored yet.
        wanted = canonical_document(record)
        if any(
            score.chart_id == chart_id and canonical_document(score.data) == wanted
            for score in staged
        ):
            return True
        existing = self.score_repository.find_duplicate(
            game_internal_name=context.game.internal_name,
            user_id=context.user_id,
            chart_id=chart_id,
            data=record,
        )
        return existing is not None
