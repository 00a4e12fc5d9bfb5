"""Game catalog and user tables (owned by the catalog and auth components)."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GameRow(SQLModel, table=True):
    __tablename__ = "games"

    internal_name: str = Field(primary_key=True)
    formatted_name: str = Field(index=True)
    description: str = ""


class UserRow(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=utc_now)
