"""Chart and score tables."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, BigInteger, Column, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSON_DOCUMENT = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChartRow(SQLModel, table=True):
    __tablename__ = "charts"

    game_internal_name: str = Field(primary_key=True, foreign_key="games.internal_name")
    chart_id: str = Field(primary_key=True)
    title: str | None = None
    artist: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class ScoreRow(SQLModel, table=True):
    __tablename__ = "scores"

    id: int | None = Field(default=None, primary_key=True)

    game_internal_name: str = Field(index=True, foreign_key="games.internal_name")
    user_id: int = Field(index=True, foreign_key="users.id")
    chart_id: str = Field(index=True)
    timestamp: int | None = Field(
        default=None, sa_column=Column(BigInteger, index=True, nullable=True),
    )

    data_jsonb: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON_DOCUMENT, nullable=False),
    )

    created_at: datetime = Field(default_factory=utc_now)

    __table_args__ = (
        Index("ix_scores_game_user", "game_internal_name", "user_id"),
        Index("ix_scores_game_chart", "game_internal_name", "chart_id"),
    )
