import unittest

from mirage.services.documents import canonical_document


class TestCanonicalDocument(unittest.TestCase):
    def test_key_order_is_irrelevant(self):
        self.assertEqual(
            canonical_document({"b": 1, "a": {"y": 2, "x": 3}}),
            canonical_document({"a": {"x": 3, "y": 2}, "b": 1}),
        )

    def test_booleans_differ_from_numbers(self):
        self.assertNotEqual(canonical_document({"fc": True}), canonical_document({"fc": 1}))
        self.assertNotEqual(canonical_document([False]), canonical_document([0]))
        self.assertNotEqual(canonical_document({"fc": None}), canonical_document({"fc": 0}))

    def test_integral_floats_match_integers(self):
        self.assertEqual(canonical_document({"score": 100.0}), canonical_document({"score": 100}))
        self.assertNotEqual(canonical_document({"score": 100.5}), canonical_document({"score": 100}))

    def test_strings_are_not_numbers(self):
        self.assertNotEqual(canonical_document({"score": "1"}), canonical_document({"score": 1}))


if __name__ == "__main__":
    unittest.main()
