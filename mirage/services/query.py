"""Scoped score queries with dynamic sort classification and personal-best reduction.

On PostgreSQL ordering, DISTINCT ON, paging and counting run in the database.
Other dialects load the scope and order it with the same rules in memory.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from operator import attrgetter
from typing import Any, Callable, Hashable, Iterable

from mirage.db.repositories import DBScoreRepository, DBUserRepository
from mirage.entities.score import Score
from mirage.services.errors import MissingParameterError, NotFoundError, ValidationError
from mirage.services.grades import (
    TIMESTAMP_KEY, SortClass, classify, grade_rank, is_timestamp_key, numeric_value,
)
from mirage.services.pagination import num_pages, page_offset, paginate

logger = logging.getLogger(__name__)


class Direction(StrEnum):
    ASC = "asc"
    DESC = "desc"


class ScoreScope(StrEnum):
    USER = "user"
    CHART = "chart"
    GAME = "game"


def parse_direction(raw: str | None) -> Direction:
    """Absent or empty means DESC; any other value must be asc/desc (case-insensitive)."""
    if raw is None or not raw.strip():
        return Direction.DESC
    try:
        return Direction(raw.strip().lower())
    except ValueError:
        raise ValidationError("Invalid direction parameter") from None


@dataclass(frozen=True)
class SortOrder:
    key: str
    direction: Direction
    sort_class: SortClass

    def value_of(self, score: Score) -> float | None:
        if self.sort_class is SortClass.TIMESTAMP:
            return score.timestamp
        raw = score.data.get(self.key)
        if self.sort_class is SortClass.GRADE:
            return grade_rank(raw)
        if self.sort_class is SortClass.NUMERIC:
            return numeric_value(raw)
        return None

    def rank(self, score: Score) -> tuple[bool, float]:
        """Sort key: values missing or outside the class go last in either direction."""
        value = self.value_of(score)
        if value is None:
            return (True, 0.0)
        return (False, -value if self.direction is Direction.DESC else value)

    def apply(self, scores: Iterable[Score]) -> list[Score]:
        return sorted(scores, key=self.rank)


def best_per_group(
    scores: Iterable[Score],
    group_key: Callable[[Score], Hashable],
    order: SortOrder,
) -> list[Score]:
    """Keep the row sorting first under `order` for each group.

    Survivors come back in ascending group-key order. Ties keep the row seen first.
    """
    best: dict[Any, Score] = {}
    for score in scores:
        key = group_key(score)
        current = best.get(key)
        if current is None or order.rank(score) < order.rank(current):
            best[key] = score
    return [best[key] for key in sorted(best)]


GROUP_FIELDS: dict[ScoreScope, tuple[str, ...]] = {
    ScoreScope.USER: ("chart_id",),
    ScoreScope.CHART: ("user_id",),
    ScoreScope.GAME: ("chart_id", "user_id"),
}


@dataclass(frozen=True)
class ScoreQuery:
    scope: ScoreScope
    game_internal_name: str | None
    user_id: int | None = None
    chart_id: str | None = None
    sort_key: str = TIMESTAMP_KEY
    direction: Direction = Direction.DESC
    page_number: int = 1
    pb_only: bool = False

    def scope_filter(self) -> dict[str, Any]:
        return {
            "game_internal_name": self.game_internal_name,
            "user_id": self.user_id if self.scope is ScoreScope.USER else None,
            "chart_id": self.chart_id if self.scope is ScoreScope.CHART else None,
        }


@dataclass
class ScorePage:
    scores: list[Score]
    num_pages: int
    total: int
    sort_class: SortClass
    usernames: dict[int, str] = field(default_factory=dict)
    username: str | None = None


class ScoreQueryService:
    def __init__(
        self,
        score_repository: DBScoreRepository,
        user_repository: DBUserRepository,
        page_size: int,
    ):
        self.score_repository = score_repository
        self.user_repository = user_repository
        self.page_size = page_size

    def query(self, query: ScoreQuery) -> ScorePage:
        self._check_scope(query)

        username = None
        if query.scope is ScoreScope.USER:
            user = self.user_repository.fetch(query.user_id)
            if user is None:
                raise NotFoundError("User not found")
            username = user.username

        scope = query.scope_filter()
        sort_key = TIMESTAMP_KEY if is_timestamp_key(query.sort_key) else query.sort_key
        sampled = None
        if sort_key != TIMESTAMP_KEY:
            sampled = self.score_repository.sample_value(key=sort_key, **scope)
        sort_class = classify(sort_key, sampled)
        if sort_class is SortClass.UNKNOWN:
            logger.debug("no values for sort key %r in %s scope", sort_key, query.scope)
            return ScorePage(scores=[], num_pages=0, total=0, sort_class=sort_class, username=username)

        order = SortOrder(key=sort_key, direction=query.direction, sort_class=sort_class)
        group_by = GROUP_FIELDS[query.scope] if query.pb_only else ()
        if self.score_repository.supports_ranked_queries():
            total, page = self._ranked_page(query, order, group_by, scope)
        else:
            total, page = self._in_memory_page(query, order, group_by, scope)
        logger.debug(
            "score query scope=%s key=%s class=%s pb=%s total=%d",
            query.scope, sort_key, sort_class, query.pb_only, total,
        )

        usernames: dict[int, str] = {}
        if query.scope is not ScoreScope.USER:
            usernames = self.user_repository.fetch_usernames(score.user_id for score in page)

        return ScorePage(
            scores=page,
            num_pages=num_pages(total, self.page_size),
            total=total,
            sort_class=sort_class,
            usernames=usernames,
            username=username,
        )

    def _ranked_page(
        self, query: ScoreQuery, order: SortOrder,
        group_by: tuple[str, ...], scope: dict[str, Any],
    ) -> tuple[int, list[Score]]:
        total = self.score_repository.count(group_by=group_by, **scope)
        page = self.score_repository.fetch_ranked(
            sort_class=order.sort_class,
            key=order.key,
            descending=order.direction is Direction.DESC,
            offset=page_offset(query.page_number, self.page_size),
            limit=self.page_size,
            group_by=group_by,
            **scope,
        )
        return total, page

    def _in_memory_page(
        self, query: ScoreQuery, order: SortOrder,
        group_by: tuple[str, ...], scope: dict[str, Any],
    ) -> tuple[int, list[Score]]:
        scores = self.score_repository.find(**scope)
        if group_by:
            ordered = best_per_group(scores, attrgetter(*group_by), order)
        else:
            ordered = order.apply(scores)
        return len(ordered), paginate(ordered, query.page_number, self.page_size)

    @staticmethod
    def _check_scope(query: ScoreQuery) -> None:
        if not query.game_internal_name:
            raise MissingParameterError()
        if query.scope is ScoreScope.USER and query.user_id is None:
            raise MissingParameterError()
        if query.scope is ScoreScope.CHART and not query.chart_id:
            raise MissingParameterError()
