from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from sqlalchemy import text
from sqlmodel import Session, SQLModel

from mirage.db.repositories import DBGameRepository
from mirage.db.session import engine
from mirage.entities.score import Game

logger = logging.getLogger(__name__)


def tables_to_reset() -> list[str]:
    return [
        "scores",
        "charts",
        "users",
        "games",
        "alembic_version",
    ]


def default_games() -> list[dict[str, Any]]:
    return [
        {
            "internal_name": "dancerush",
            "formatted_name": "DANCERUSH STARDOM",
            "description": "A suffle dancing game from KONAMI",
        },
        {
            "internal_name": "dancearound",
            "formatted_name": "Dance aROUND",
            "description": "A dance simulation game from KONAMI",
        },
        {
            "internal_name": "diva",
            "formatted_name": "Hatsune Miku: Project DIVA Arcade Future Tone",
            "description": "A 4-button and touch slider game from SEGA",
        },
        {
            "internal_name": "musicdiver",
            "formatted_name": "MUSIC DIVER",
            "description": "Taito's quadrant based drumming game",
        },
        {
            "internal_name": "nostalgia",
            "formatted_name": "NOSTALGIA",
            "description": "A piano based touch music game from KONAMI",
        },
        {
            "internal_name": "reflecbeat",
            "formatted_name": "REFLEC BEAT",
            "description": "A touchscreen rhythm game from KONAMI",
        },
        {
            "internal_name": "taiko",
            "formatted_name": "Taiko no Tatsujin Arcade",
            "description": "A drum-based rhythm game",
        },
    ]


def load_games() -> list[dict[str, Any]]:
    path = os.getenv("GAMES_SEED_PATH")
    if not path:
        return default_games()

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError("GAMES_SEED_PATH must point to a JSON array")
    return payload


def seed_games(session: Session) -> int:
    repository = DBGameRepository(session)
    games = load_games()
    for entry in games:
        repository.save(Game(
            internal_name=entry["internal_name"],
            formatted_name=entry["formatted_name"],
            description=entry.get("description", ""),
        ))
    return len(games)


# ---------------------------------------------------------------------------
# Alembic migrations directory resolution
# ---------------------------------------------------------------------------

def _find_alembic_dir() -> Path | None:
    """Locate the Alembic migrations directory.

    Checks ``ALEMBIC_DIR`` first, then the repo-root ``alembic/`` next to the
    ``mirage`` package. Returns ``None`` when neither exists, in which case
    callers fall back to ``SQLModel.metadata.create_all()``.
    """
    def _is_valid(p: Path) -> bool:
        return p.is_dir() and (p / "env.py").exists() and (p / "versions").is_dir()

    env_dir = os.getenv("ALEMBIC_DIR")
    if env_dir and _is_valid(Path(env_dir)):
        return Path(env_dir)

    repo_dir = Path(__file__).resolve().parent.parent.parent / "alembic"
    if _is_valid(repo_dir):
        return repo_dir

    return None


def _run_alembic_upgrade(alembic_dir: Path | None = None) -> None:
    if alembic_dir is None:
        alembic_dir = _find_alembic_dir()
    if alembic_dir is None:
        raise FileNotFoundError(
            "Alembic migrations directory not found. "
            "Set ALEMBIC_DIR or ensure the alembic/ directory is alongside the package."
        )

    from alembic.config import Config
    from alembic import command

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(alembic_dir))
    alembic_cfg.set_main_option("sqlalchemy.url", engine.url.render_as_string(hide_password=False))

    # alembic/env.py migrates on this connection, inside this transaction.
    with engine.begin() as connection:
        if engine.dialect.name == "postgresql":
            # ALTER TABLE must not block forever behind concurrent readers
            connection.execute(text("SET LOCAL lock_timeout = '30s'"))
        alembic_cfg.attributes["connection"] = connection
        command.upgrade(alembic_cfg, "head")


def migrate() -> None:
    """Run migrations and seed the game catalog. Safe on every boot; never drops data."""
    alembic_dir = _find_alembic_dir()
    if alembic_dir is not None:
        logger.info("running Alembic migrations from %s", alembic_dir)
        try:
            _run_alembic_upgrade(alembic_dir)
        except Exception as exc:
            logger.warning("Alembic migration failed (%s), falling back to create_all", exc)
            SQLModel.metadata.create_all(engine)
    else:
        logger.info("no Alembic migrations directory found, using SQLModel create_all")
        SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        seeded = seed_games(session)
    logger.info("database migration complete (%d games seeded)", seeded)


def reset_db() -> None:
    """Drop all tables and recreate from scratch. Destroys all data."""
    logger.warning("dropping all tables")
    with engine.begin() as conn:
        for table in tables_to_reset():
            conn.execute(text(f"DROP TABLE IF EXISTS {table} CASCADE"))

    migrate()


def auto_migrate() -> None:
    """Migrate on first use when the schema is missing."""
    from sqlalchemy import inspect as sa_inspect

    inspector = sa_inspect(engine)
    if not inspector.has_table("scores"):
        migrate()


if __name__ == "__main__":
    import sys

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        force=True,
    )

    if "--reset" in sys.argv:
        reset_db()
    else:
        migrate()

    sys.exit(0)
