import unittest

from storefront.search import rank_by_name, score_name, tokenize


class SearchTests(unittest.TestCase):
    def test_tokenize(self):
        self.assertEqual(tokenize("Desk-Lamp, Brass"), ["desk", "lamp", "brass"])
        self.assertEqual(tokenize(""), [])

    def test_exact_beats_prefix(self):
        self.assertEqual(score_name("Desk Lamp", ["lamp"]), 1.0)
        self.assertEqual(score_name("Desk Lampshade", ["lamp"]), 0.5)
        self.assertEqual(score_name("Desk Lamp", ["mug"]), 0.0)

    def test_only_last_term_matches_prefix(self):
        self.assertEqual(score_name("Lampshade Desk", ["lamp", "desk"]), 1.0)
        self.assertEqual(score_name("Lamp Desktop", ["lamp", "desk"]), 1.5)

    def test_rank_orders_and_drops_misses(self):
        names = ["Floor Lamp", "Mug", "Desk Lamp", "Lamp Oil"]
        ranked = rank_by_name("desk lamp", names, lambda n: n)
        self.assertEqual(ranked, ["Desk Lamp", "Floor Lamp", "Lamp Oil"])

    def test_blank_query(self):
        self.assertEqual(rank_by_name("   ", ["Lamp"], lambda n: n), [])


if __name__ == "__main__":
    unittest.main()
