import unittest

from mirage.services.grades import (
    GRADE_ORDER, SortClass, classify, grade_rank, numeric_value,
)


class TestGradeTable(unittest.TestCase):
    def test_table_runs_from_f_to_sss_plus(self):
        self.assertEqual(GRADE_ORDER[0], "F")
        self.assertEqual(GRADE_ORDER[-1], "SSS+")
        self.assertEqual(len(GRADE_ORDER), 32)
        self.assertEqual(len(set(GRADE_ORDER)), len(GRADE_ORDER))

    def test_rank_follows_table_not_alphabet(self):
        self.assertLess(grade_rank("F+"), grade_rank("C"))
        self.assertLess(grade_rank("C"), grade_rank("AAA"))
        self.assertLess(grade_rank("AAA+"), grade_rank("S-"))
        self.assertLess(grade_rank("SS+"), grade_rank("SSS-"))

    def test_rank_trims_and_ignores_case(self):
        self.assertEqual(grade_rank(" aaa+ "), grade_rank("AAA+"))

    def test_values_outside_table_have_no_rank(self):
        self.assertIsNone(grade_rank("Z"))
        self.assertIsNone(grade_rank("FULL COMBO"))
        self.assertIsNone(grade_rank(None))


class TestClassify(unittest.TestCase):
    def test_timestamp_key_and_absent_key(self):
        self.assertIs(classify("timestamp", None), SortClass.TIMESTAMP)
        self.assertIs(classify(None, "AAA"), SortClass.TIMESTAMP)
        self.assertIs(classify("", 12), SortClass.TIMESTAMP)

    def test_letters_with_optional_suffix_are_grades(self):
        for sample in ("AAA", "s-", "SSS+", " B ", "clear"):
            self.assertIs(classify("lamp", sample), SortClass.GRADE, sample)

    def test_everything_else_is_numeric(self):
        for sample in (98.5, 100, "1234", "A+B", "AA++", ""):
            self.assertIs(classify("score", sample), SortClass.NUMERIC, sample)

    def test_no_sample_is_unknown(self):
        self.assertIs(classify("lamp", None), SortClass.UNKNOWN)


class TestNumericValue(unittest.TestCase):
    def test_numbers_and_numeric_strings(self):
        self.assertEqual(numeric_value(12), 12.0)
        self.assertEqual(numeric_value(" 98.25 "), 98.25)

    def test_uncoercible_values_are_none(self):
        for value in (None, True, "AAA", "", "nan", {"a": 1}):
            self.assertIsNone(numeric_value(value), value)


if __name__ == "__main__":
    unittest.main()
