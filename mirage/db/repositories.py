from __future__ import annotations

from typing import Any, Iterable, Sequence

from sqlalchemy import Numeric, case, cast, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, delete, select

from mirage.entities.score import Chart, Game, Score, User
from mirage.db.tables import ChartRow, GameRow, ScoreRow, UserRow
from mirage.services.documents import canonical_document
from mirage.services.grades import GRADE_RANK, SortClass


class DBGameRepository:
    def __init__(self, session: Session):
        self._session = session

    def fetch_all(self) -> list[Game]:
        rows = self._session.exec(select(GameRow).order_by(GameRow.internal_name.asc())).all()
        return [self._row_to_domain(row) for row in rows]

    def fetch_by_internal_name(self, internal_name: str) -> Game | None:
        row = self._session.get(GameRow, internal_name)
        return self._row_to_domain(row) if row else None

    def fetch_by_formatted_name(self, formatted_name: str) -> Game | None:
        row = self._session.exec(
            select(GameRow).where(GameRow.formatted_name == formatted_name).limit(1)
        ).first()
        return self._row_to_domain(row) if row else None

    def save(self, game: Game) -> None:
        existing = self._session.get(GameRow, game.internal_name)
        if existing is None:
            self._session.add(GameRow(
                internal_name=game.internal_name,
                formatted_name=game.formatted_name,
                description=game.description,
            ))
        else:
            existing.formatted_name = game.formatted_name
            existing.description = game.description
        self._session.commit()

    @staticmethod
    def _row_to_domain(row: GameRow) -> Game:
        return Game(
            internal_name=row.internal_name,
            formatted_name=row.formatted_name,
            description=row.description or "",
        )


class DBUserRepository:
    def __init__(self, session: Session):
        self._session = session

    def fetch(self, user_id: int) -> User | None:
        row = self._session.get(UserRow, user_id)
        return User(id=row.id, username=row.username) if row else None

    def fetch_usernames(self, user_ids: Iterable[int]) -> dict[int, str]:
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        rows = self._session.exec(
            select(UserRow.id, UserRow.username).where(UserRow.id.in_(ids))
        ).all()
        return {user_id: username for user_id, username in rows}


class DBChartRepository:
    def __init__(self, session: Session):
        self._session = session

    def ensure(self, chart: Chart) -> bool:
        """Insert the chart unless it already exists. Returns True when a row was created.

        Concurrent first references to the same chart resolve first-writer-wins:
        the losing insert is a no-op.
        """
        dialect = self._session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = insert(ChartRow.__table__).values(
            game_internal_name=chart.game_internal_name,
            chart_id=chart.chart_id,
            title=chart.title,
            artist=chart.artist,
        ).on_conflict_do_nothing(index_elements=["game_internal_name", "chart_id"])
        result = self._session.exec(stmt)
        return bool(result.rowcount)


# Decimal or exponent notation; other text does not sort as a number.
_NUMERIC_TEXT = r"^\s*[-+]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][-+]?[0-9]+)?\s*$"


class DBScoreRepository:
    def __init__(self, session: Session):
        self._session = session

    def rollback(self) -> None:
        self._session.rollback()

    def commit(self) -> None:
        self._session.commit()

    def supports_ranked_queries(self) -> bool:
        """Whether ordering, DISTINCT ON and paging can run in the database."""
        return self._session.get_bind().dialect.name == "postgresql"

    def find(
        self, *, game_internal_name: str,
        user_id: int | None = None, chart_id: str | None = None,
    ) -> list[Score]:
        stmt = (
            select(ScoreRow)
            .where(*self._scope(game_internal_name, user_id, chart_id))
            .order_by(ScoreRow.id.asc())
        )
        rows = self._session.exec(stmt).all()
        return [self._row_to_domain(row) for row in rows]

    def find_duplicate(
        self, *, game_internal_name: str, user_id: int, chart_id: str, data: dict[str, Any],
    ) -> Score | None:
        """Return a stored score for (user, game) whose payload equals `data`.

        Payloads compare type-strictly, so `true` and `1` differ. Identical
        payloads carry identical title/artist, so candidates are narrowed to
        the same chart first.
        """
        wanted = canonical_document(data)
        candidates = self.find(
            game_internal_name=game_internal_name, user_id=user_id, chart_id=chart_id,
        )
        for candidate in candidates:
            if canonical_document(candidate.data) == wanted:
                return candidate
        return None

    def sample_value(
        self, *, game_internal_name: str, key: str,
        user_id: int | None = None, chart_id: str | None = None,
    ) -> Any:
        """First non-null `data[key]` in the scope, by ascending id."""
        stmt = (
            select(ScoreRow.data_jsonb)
            .where(*self._scope(game_internal_name, user_id, chart_id))
            .where(ScoreRow.data_jsonb[key].as_string().is_not(None))
            .order_by(ScoreRow.id.asc())
            .limit(1)
        )
        data = self._session.exec(stmt).first()
        return None if data is None else data.get(key)

    def count(
        self, *, game_internal_name: str,
        user_id: int | None = None, chart_id: str | None = None,
        group_by: Sequence[str] = (),
    ) -> int:
        """Rows in scope, or distinct `group_by` combinations when given."""
        scope = self._scope(game_internal_name, user_id, chart_id)
        if group_by:
            groups = select(*self._columns(group_by)).where(*scope).distinct().subquery()
            stmt = select(func.count()).select_from(groups)
        else:
            stmt = select(func.count()).select_from(ScoreRow).where(*scope)
        return int(self._session.exec(stmt).one())

    def fetch_ranked(
        self, *, game_internal_name: str, sort_class: SortClass, key: str, descending: bool,
        offset: int, limit: int, user_id: int | None = None, chart_id: str | None = None,
        group_by: Sequence[str] = (),
    ) -> list[Score]:
        stmt = self.ranked_statement(
            game_internal_name=game_internal_name, sort_class=sort_class, key=key,
            descending=descending, offset=offset, limit=limit,
            user_id=user_id, chart_id=chart_id, group_by=group_by,
        )
        rows = self._session.exec(stmt).all()
        return [self._row_to_domain(row) for row in rows]

    def ranked_statement(
        self, *, game_internal_name: str, sort_class: SortClass, key: str, descending: bool,
        offset: int, limit: int, user_id: int | None = None, chart_id: str | None = None,
        group_by: Sequence[str] = (),
    ):
        """One page of the scope ordered by the sort value, missing values last.

        With `group_by`, PostgreSQL DISTINCT ON keeps the first row of each
        group, and groups come back in ascending key order. Ties keep the lowest id.
        """
        value = self.sort_expression(sort_class, key)
        ordered = value.desc() if descending else value.asc()
        stmt = select(ScoreRow).where(*self._scope(game_internal_name, user_id, chart_id))
        if group_by:
            columns = self._columns(group_by)
            stmt = stmt.distinct(*columns).order_by(*columns)
        return (
            stmt.order_by(ordered.nulls_last(), ScoreRow.id.asc())
            .offset(max(0, int(offset)))
            .limit(max(0, int(limit)))
        )

    @staticmethod
    def sort_expression(sort_class: SortClass, key: str):
        """SQL value a score sorts by; NULL where the value does not fit the class."""
        if sort_class is SortClass.TIMESTAMP:
            return ScoreRow.timestamp
        raw = ScoreRow.data_jsonb[key].as_string()
        if sort_class is SortClass.GRADE:
            return case(GRADE_RANK, value=func.upper(func.trim(raw)), else_=None)
        if sort_class is SortClass.NUMERIC:
            return case((raw.op("~")(_NUMERIC_TEXT), cast(raw, Numeric)), else_=None)
        raise ValueError(f"no sort expression for {sort_class}")

    def fetch_page(
        self, *, game_internal_name: str, user_id: int, offset: int, limit: int,
    ) -> list[Score]:
        stmt = (
            select(ScoreRow)
            .where(*self._scope(game_internal_name, user_id, None))
            .order_by(ScoreRow.timestamp.desc().nulls_last(), ScoreRow.id.desc())
            .offset(max(0, int(offset)))
            .limit(max(0, int(limit)))
        )
        rows = self._session.exec(stmt).all()
        return [self._row_to_domain(row) for row in rows]

    def add_all(self, scores: Iterable[Score]) -> int:
        rows = [self._domain_to_row(score) for score in scores]
        self._session.add_all(rows)
        return len(rows)

    def delete(self, *, user_id: int, game_internal_name: str, score_id: int) -> int:
        result = self._session.exec(
            delete(ScoreRow)
            .where(ScoreRow.id == score_id)
            .where(ScoreRow.user_id == user_id)
            .where(ScoreRow.game_internal_name == game_internal_name)
        )
        self._session.commit()
        return result.rowcount or 0

    @staticmethod
    def _scope(game_internal_name: str, user_id: int | None, chart_id: str | None) -> list:
        clauses = [ScoreRow.game_internal_name == game_internal_name]
        if user_id is not None:
            clauses.append(ScoreRow.user_id == user_id)
        if chart_id is not None:
            clauses.append(ScoreRow.chart_id == chart_id)
        return clauses

    @staticmethod
    def _columns(names: Sequence[str]) -> list:
        return [getattr(ScoreRow, name) for name in names]

    @staticmethod
    def _row_to_domain(row: ScoreRow) -> Score:
        return Score(
            id=row.id,
            game_internal_name=row.game_internal_name,
            user_id=row.user_id,
            chart_id=row.chart_id,
            timestamp=row.timestamp,
            data=row.data_jsonb or {},
            created_at=row.created_at,
        )

    @staticmethod
    def _domain_to_row(score: Score) -> ScoreRow:
        return ScoreRow(
            id=score.id,
            game_internal_name=score.game_internal_name,
            user_id=score.user_id,
            chart_id=score.chart_id,
            timestamp=score.timestamp,
            data_jsonb=score.data,
            created_at=score.created_at,
        )
