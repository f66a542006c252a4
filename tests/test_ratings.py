import unittest

from postgrest.exceptions import APIError

from fakes import FakeSupabase
from marketplace.services.ratings import (
    delete_rating,
    get_seller_ratings,
    get_user_rating_for_seller,
    submit_rating,
)


class RatingsTestCase(unittest.TestCase):
    def setUp(self):
        self.supabase = FakeSupabase()

    def rate(self, user_id, rating, seller_id="seller"):
        return self.supabase.add_row("ratings", {"seller_id": seller_id, "user_id": user_id, "rating": rating})

    def test_seller_without_ratings(self):
        self.assertEqual(get_seller_ratings(self.supabase, "seller"), {
            "ratings": [],
            "average_rating": 0,
            "total_votes": 0,
        })

    def test_average_of_seller_ratings(self):
        self.rate("a", 5)
        self.rate("b", 4)
        self.rate("c", 4)
        self.rate("d", 1, seller_id="someone-else")

        result = get_seller_ratings(self.supabase, "seller")
        self.assertEqual(result["total_votes"], 3)
        self.assertAlmostEqual(result["average_rating"], 13 / 3)

    def test_user_rating_for_seller(self):
        self.rate("a", 3)
        self.assertEqual(get_user_rating_for_seller(self.supabase, "seller", "a")["rating"], 3)
        self.assertIsNone(get_user_rating_for_seller(self.supabase, "seller", "b"))

    def test_lookup_error_is_raised(self):
        self.supabase.fail("ratings", "select")
        with self.assertRaises(APIError):
            get_user_rating_for_seller(self.supabase, "seller", "a")

    def test_first_rating_is_inserted(self):
        rating = submit_rating(self.supabase, "seller", "a", 4)
        self.assertEqual(rating["rating"], 4)
        self.assertEqual(len(self.supabase.tables["ratings"]), 1)

    def test_second_rating_replaces_the_first(self):
        submit_rating(self.supabase, "seller", "a", 2)
        rating = submit_rating(self.supabase, "seller", "a", 5)

        self.assertEqual(rating["rating"], 5)
        self.assertEqual(len(self.supabase.tables["ratings"]), 1)
        self.assertIn("T", rating["updated_at"])
        self.assertEqual(get_seller_ratings(self.supabase, "seller")["average_rating"], 5)

    def test_delete_rating(self):
        self.rate("a", 2)
        self.rate("b", 4)

        delete_rating(self.supabase, "seller", "a")

        self.assertIsNone(get_user_rating_for_seller(self.supabase, "seller", "a"))
        self.assertEqual(get_seller_ratings(self.supabase, "seller")["total_votes"], 1)


if __name__ == "__main__":
    unittest.main()
