"""In-memory SQLite database for repository and service tests."""
from __future__ import annotations

from typing import Iterable

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from mirage.db.tables import GameRow, UserRow


def make_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


def seed(
    session: Session,
    games: Iterable[tuple[str, str]] = (("dancerush", "DANCERUSH STARDOM"), ("diva", "Project DIVA")),
    users: Iterable[tuple[int, str]] = ((1, "alice"), (2, "bob"), (3, "carol")),
) -> None:
    for internal_name, formatted_name in games:
        session.add(GameRow(internal_name=internal_name, formatted_name=formatted_name))
    for user_id, username in users:
        session.add(UserRow(id=user_id, username=username))
    session.commit()
