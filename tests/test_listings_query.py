import unittest

from postgrest.exceptions import APIError

from fakes import FakeSupabase
from marketplace.schemas.listing import ListingFilters, ListingSort
from marketplace.services.listings import PROFILE_COLUMNS, get_listing_by_id, get_listings, search_filter


class ListingsQueryTestCase(unittest.TestCase):
    def setUp(self):
        self.supabase = FakeSupabase()
        self.supabase.add_profile("seller-1", "Alex", "Dupont", phone="514-555-0000")
        self.calc = self.supabase.add_listing(
            "seller-1", title="Livre de Calcul Intégral", course="MAT2100", price=25.0,
        )
        self.chair = self.supabase.add_listing(
            "seller-1", title="Chaise", category="Meubles", description="Bonne chaise pour les maths", price=60.0,
        )
        self.sold = self.supabase.add_listing("seller-1", title="Vieux calc", status="inactive", price=5.0)

    def ids(self, result):
        return [listing["id"] for listing in result["listings"]]

    def test_only_active_listings_by_default(self):
        result = get_listings(self.supabase)
        self.assertCountEqual(self.ids(result), [self.calc["id"], self.chair["id"]])
        self.assertEqual(result["total"], 2)

    def test_explicit_status_replaces_the_default(self):
        result = get_listings(self.supabase, ListingFilters(status="inactive"))
        self.assertEqual(self.ids(result), [self.sold["id"]])

    def test_status_default_applies_with_other_filters(self):
        result = get_listings(self.supabase, ListingFilters(search="calc", user_id="seller-1"))
        self.assertEqual(self.ids(result), [self.calc["id"]])

    def test_search_words_match_any_column(self):
        # "calc" hits a title, "maths" hits a description
        result = get_listings(self.supabase, ListingFilters(search="  calc   maths "))
        self.assertCountEqual(self.ids(result), [self.calc["id"], self.chair["id"]])

    def test_search_matches_course(self):
        result = get_listings(self.supabase, ListingFilters(search="mat2100"))
        self.assertEqual(self.ids(result), [self.calc["id"]])

    def test_search_filter_expression(self):
        self.assertEqual(
            search_filter("calc maths"),
            "title.ilike.%calc%,description.ilike.%calc%,course.ilike.%calc%,category.ilike.%calc%,"
            "title.ilike.%maths%,description.ilike.%maths%,course.ilike.%maths%,category.ilike.%maths%",
        )
        self.assertIsNone(search_filter("   "))
        self.assertIsNone(search_filter(None))

    def test_search_filter_strips_reserved_characters(self):
        self.assertEqual(
            search_filter("a,b (,)"),
            "title.ilike.%ab%,description.ilike.%ab%,course.ilike.%ab%,category.ilike.%ab%",
        )

    def test_category_and_condition_filters(self):
        self.supabase.add_listing("seller-1", title="Table", category="Meubles", condition="Neuf")
        result = get_listings(self.supabase, ListingFilters(category="Meubles", condition="Neuf"))
        self.assertEqual(len(result["listings"]), 1)
        self.assertEqual(result["listings"][0]["title"], "Table")

    def test_price_bounds(self):
        result = get_listings(self.supabase, ListingFilters(min_price=20, max_price=30))
        self.assertEqual(self.ids(result), [self.calc["id"]])

        result = get_listings(self.supabase, ListingFilters(max_price=0))
        self.assertEqual(result["listings"], [])
        self.assertEqual(result["total"], 0)

    def test_newest_first_by_default(self):
        result = get_listings(self.supabase)
        self.assertEqual(self.ids(result), [self.chair["id"], self.calc["id"]])

    def test_sort_and_pagination(self):
        result = get_listings(self.supabase, sort=ListingSort(field="price", order="asc"), limit=1, offset=1)
        self.assertEqual(self.ids(result), [self.chair["id"]])
        self.assertEqual(result["total"], 2)

        query = self.supabase.queries("listings_with_profiles")[-1]
        self.assertEqual(query.bounds, (1, 1))
        self.assertEqual(query.orders, [("price", False)])

    def test_profile_columns_are_nested(self):
        listing = next(l for l in get_listings(self.supabase)["listings"] if l["id"] == self.calc["id"])

        for column in PROFILE_COLUMNS:
            self.assertNotIn(column, listing)
        self.assertEqual(listing["profiles"], {
            "id": "seller-1",
            "first_name": "Alex",
            "last_name": "Dupont",
            "email": "alex@uqam.ca",
        })

    def test_listing_without_profile(self):
        self.supabase.add_listing("ghost", title="Orphan")
        listing = get_listings(self.supabase, ListingFilters(user_id="ghost"))["listings"][0]
        self.assertIsNone(listing["profiles"])

    def test_images_sorted_by_display_order(self):
        for order in (2, 0, 1):
            self.supabase.add_image(self.calc["id"], order)

        listing = next(l for l in get_listings(self.supabase)["listings"] if l["id"] == self.calc["id"])
        self.assertEqual([img["display_order"] for img in listing["listing_images"]], [0, 1, 2])

    def test_remote_error_is_logged_and_raised(self):
        self.supabase.fail("listings_with_profiles", "select")
        with self.assertLogs("marketplace.services.listings", level="ERROR"):
            with self.assertRaises(APIError):
                get_listings(self.supabase)

    def test_get_listing_by_id(self):
        second = self.supabase.add_image(self.calc["id"], 1)
        first = self.supabase.add_image(self.calc["id"], 0)

        listing = get_listing_by_id(self.supabase, self.calc["id"])
        self.assertEqual(listing["profiles"]["first_name"], "Alex")
        self.assertEqual(listing["images"], [
            {"id": first["id"], "url": first["path"]},
            {"id": second["id"], "url": second["path"]},
        ])

    def test_get_missing_listing(self):
        with self.assertRaises(APIError) as ctx:
            get_listing_by_id(self.supabase, "nope")
        self.assertEqual(ctx.exception.code, "PGRST116")


if __name__ == "__main__":
    unittest.main()
