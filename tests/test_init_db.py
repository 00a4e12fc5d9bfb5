import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from sqlmodel import Session

from mirage.db import init_db
from mirage.db.init_db import default_games, load_games, seed_games, tables_to_reset
from mirage.db.repositories import DBGameRepository
from tests.support import make_engine


class TestGameSeed(unittest.TestCase):
    def test_default_catalog_is_used_without_seed_file(self):
        with patch.dict(os.environ, {}, clear=True):
            games = load_games()
        self.assertEqual(games, default_games())
        self.assertIn("dancerush", [g["internal_name"] for g in games])

    def test_seed_file_overrides_catalog(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "games.json"
            path.write_text(json.dumps([{"internal_name": "ddr", "formatted_name": "DanceDanceRevolution"}]))
            with patch.dict(os.environ, {"GAMES_SEED_PATH": str(path)}):
                games = load_games()
        self.assertEqual(games, [{"internal_name": "ddr", "formatted_name": "DanceDanceRevolution"}])

    def test_seed_file_must_be_a_list(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "games.json"
            path.write_text("{}")
            with patch.dict(os.environ, {"GAMES_SEED_PATH": str(path)}):
                with self.assertRaises(ValueError):
                    load_games()

    def test_seeding_twice_updates_in_place(self):
        engine = make_engine()
        with Session(engine) as session, patch.dict(os.environ, {}, clear=True):
            first = seed_games(session)
            second = seed_games(session)
            games = DBGameRepository(session).fetch_all()
        engine.dispose()

        self.assertEqual(first, second)
        self.assertEqual(len(games), len(default_games()))
        self.assertEqual(
            [g.internal_name for g in games],
            sorted(g["internal_name"] for g in default_games()),
        )

    def test_reset_drops_scores_before_their_parents(self):
        tables = tables_to_reset()
        self.assertLess(tables.index("scores"), tables.index("charts"))
        self.assertLess(tables.index("charts"), tables.index("games"))


class TestAlembicUpgrade(unittest.TestCase):
    def _engine(self, dialect: str):
        engine = MagicMock()
        engine.dialect.name = dialect
        engine.url.render_as_string.return_value = f"{dialect}://mirage@localhost/mirage"
        connection = engine.begin.return_value.__enter__.return_value
        return engine, connection

    def test_postgres_lock_timeout_applies_to_the_migrating_connection(self):
        engine, connection = self._engine("postgresql")
        seen = {}

        def upgrade(cfg, revision):
            seen["connection"] = cfg.attributes["connection"]
            seen["revision"] = revision

        with patch.object(init_db, "engine", engine), patch("alembic.command.upgrade", side_effect=upgrade):
            init_db._run_alembic_upgrade(Path(tempfile.gettempdir()))

        self.assertIs(seen["connection"], connection)
        self.assertEqual(seen["revision"], "head")
        statement = str(connection.execute.call_args.args[0])
        self.assertEqual(statement, "SET LOCAL lock_timeout = '30s'")

    def test_other_dialects_skip_lock_timeout(self):
        engine, connection = self._engine("sqlite")

        with patch.object(init_db, "engine", engine), patch("alembic.command.upgrade") as upgrade:
            init_db._run_alembic_upgrade(Path(tempfile.gettempdir()))

        connection.execute.assert_not_called()
        self.assertIs(upgrade.call_args.args[0].attributes["connection"], connection)


if __name__ == "__main__":
    unittest.main()
