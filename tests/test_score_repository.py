"""Tests for database-side sampling, counting and ranking of scores."""
from __future__ import annotations

import unittest

from sqlalchemy.dialects import postgresql
from sqlmodel import Session

from mirage.db.repositories import DBChartRepository, DBScoreRepository
from mirage.db.tables import ChartRow, ScoreRow
from mirage.entities.score import Chart
from mirage.services.grades import SortClass
from tests.support import make_engine, seed


def _compiled(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


class ScoreRepositoryTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine()
        self.session = Session(self.engine)
        seed(self.session)
        self.repo = DBScoreRepository(self.session)

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def add(self, user_id, chart_id="c1", game="dancerush", **data) -> int:
        row = ScoreRow(game_internal_name=game, user_id=user_id, chart_id=chart_id, data_jsonb=data)
        self.session.add(row)
        self.session.commit()
        return row.id


class TestSampleValue(ScoreRepositoryTestCase):
    def test_first_non_null_value_by_id(self):
        self.add(1, score=5)
        self.add(1, lamp=None)
        self.add(1, lamp="S")
        self.add(1, lamp="AA")

        self.assertEqual(self.repo.sample_value(game_internal_name="dancerush", key="lamp"), "S")

    def test_respects_scope(self):
        self.add(1, lamp="S")
        self.add(2, lamp="B")
        self.add(1, game="diva", lamp="A")

        self.assertEqual(self.repo.sample_value(game_internal_name="dancerush", key="lamp", user_id=2), "B")
        self.assertEqual(self.repo.sample_value(game_internal_name="diva", key="lamp"), "A")

    def test_false_and_zero_are_values(self):
        self.add(1, fc=False)
        self.assertIs(self.repo.sample_value(game_internal_name="dancerush", key="fc"), False)

    def test_no_value_anywhere(self):
        self.add(1, score=1)
        self.assertIsNone(self.repo.sample_value(game_internal_name="dancerush", key="lamp"))


class TestCount(ScoreRepositoryTestCase):
    def test_rows_and_groups(self):
        self.add(1, "c1")
        self.add(1, "c1")
        self.add(1, "c2")
        self.add(2, "c1")
        self.add(2, "c1", game="diva")

        self.assertEqual(self.repo.count(game_internal_name="dancerush"), 4)
        self.assertEqual(self.repo.count(game_internal_name="dancerush", group_by=("user_id",)), 2)
        self.assertEqual(self.repo.count(game_internal_name="dancerush", group_by=("chart_id", "user_id")), 3)
        self.assertEqual(self.repo.count(game_internal_name="dancerush", user_id=1, group_by=("chart_id",)), 2)

    def test_sqlite_ranks_in_memory(self):
        self.assertFalse(self.repo.supports_ranked_queries())


class TestRankedStatement(ScoreRepositoryTestCase):
    def _statement(self, **overrides):
        kwargs = dict(
            game_internal_name="dancerush", sort_class=SortClass.TIMESTAMP, key="timestamp",
            descending=True, offset=100, limit=50,
        )
        kwargs.update(overrides)
        return _compiled(self.repo.ranked_statement(**kwargs))

    def test_timestamp_order_pages_in_sql(self):
        sql = self._statement()
        self.assertIn("ORDER BY scores.timestamp DESC NULLS LAST, scores.id ASC", sql)
        self.assertIn("LIMIT", sql)
        self.assertIn("OFFSET", sql)
        self.assertNotIn("DISTINCT", sql)

    def test_ascending_still_puts_missing_last(self):
        sql = self._statement(descending=False)
        self.assertIn("scores.timestamp ASC NULLS LAST", sql)

    def test_personal_best_uses_distinct_on_group(self):
        sql = self._statement(group_by=("chart_id", "user_id"), user_id=None)
        self.assertIn("DISTINCT ON (scores.chart_id, scores.user_id)", sql)
        self.assertIn("ORDER BY scores.chart_id, scores.user_id, scores.timestamp DESC NULLS LAST", sql)

    def test_grade_order_is_a_case_over_the_table(self):
        sql = self._statement(sort_class=SortClass.GRADE, key="lamp")
        self.assertIn("CASE upper(trim(", sql)
        self.assertIn("->>", sql)
        self.assertIn("NULLS LAST", sql)

    def test_numeric_cast_is_guarded(self):
        sql = self._statement(sort_class=SortClass.NUMERIC, key="score")
        self.assertIn("~", sql)
        self.assertIn("CAST(", sql)
        self.assertIn("AS NUMERIC)", sql)

    def test_unknown_class_has_no_order(self):
        with self.assertRaises(ValueError):
            self.repo.sort_expression(SortClass.UNKNOWN, "lamp")


class TestChartRepository(ScoreRepositoryTestCase):
    def test_first_writer_wins(self):
        charts = DBChartRepository(self.session)
        chart = Chart(game_internal_name="dancerush", chart_id="abc", title="A", artist="X")

        self.assertTrue(charts.ensure(chart))
        self.assertFalse(charts.ensure(Chart(game_internal_name="dancerush", chart_id="abc", title="other")))
        self.session.commit()

        stored = self.session.get(ChartRow, ("dancerush", "abc"))
        self.assertEqual(stored.title, "A")


if __name__ == "__main__":
    unittest.main()
