import os
import tempfile
import unittest

from parts_search.database.catalog_client import CatalogClient
from parts_search.database.predicates import OrderBy, PredicateSet, eq, gte, ilike, json_contains, lte, or_
from parts_search.errors import CatalogStoreError
from parts_search.models import CatalogItem, MatchType, VehicleDescriptor
from tests.fixtures import seed_items


class PredicateTests(unittest.TestCase):
    def test_empty_set_matches_everything(self):
        self.assertEqual(PredicateSet().compile(), ("1", []))

    def test_conditions_are_and_combined_with_bound_params(self):
        sql, params = PredicateSet().eq("status", "approved").gte("price", 10).compile()
        self.assertEqual(sql, "((status = ?) AND (price >= ?))")
        self.assertEqual(params, ["approved", 10])

    def test_or_combination(self):
        condition = or_(gte("price", 5), gte("discount_price", 5))
        self.assertEqual(condition.sql, "((price >= ?) OR (discount_price >= ?))")
        self.assertEqual(condition.params, (5, 5))

    def test_ilike_escapes_wildcards(self):
        condition = ilike("name", "100%_Cotton")
        self.assertEqual(condition.params, ("%100\\%\\_cotton%",))

    def test_unknown_columns_and_keys_rejected(self):
        with self.assertRaises(ValueError):
            eq("name; DROP TABLE catalog_items", "x")
        with self.assertRaises(ValueError):
            json_contains("engine", "v6")

    def test_structurally_identical_sets_compare_equal(self):
        self.assertEqual(
            PredicateSet().eq("status", "approved").ilike("name", "brake"),
            PredicateSet().eq("status", "approved").ilike("name", "brake")
        )


class CatalogClientTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "catalog.db")
        self.client = CatalogClient(db_path=self.db_path)
        self.client.insert_items(seed_items())

    def tearDown(self):
        self.client.close()
        self.temp_dir.cleanup()

    def ids(self, items):
        return [item.id for item in items]

    def test_round_trips_item_fields(self):
        item = self.client.get_item_by_id("p-002")
        self.assertEqual(item.name, "Brake Pads Rear")
        self.assertEqual(item.discount_price, 35.0)
        self.assertEqual(item.compatibility[0].model, "civic")
        self.assertEqual(item.compatibility[0].match_type, MatchType.SPECIFIC)
        self.assertIsNone(self.client.get_item_by_id("p-003").compatibility)
        self.assertFalse(self.client.get_item_by_id("p-005").is_active)

    def test_equality_filters(self):
        predicates = PredicateSet().eq("status", "approved").eq("is_active", 1)
        self.assertEqual(
            sorted(self.ids(self.client.fetch_items(predicates))),
            ["p-001", "p-002", "p-003"]
        )
        self.assertEqual(self.client.count_items(predicates), 3)

    def test_ilike_is_case_insensitive(self):
        items = self.client.fetch_items(PredicateSet().ilike("description", "TOYOTA rav4"))
        self.assertEqual(self.ids(items), ["p-001"])

    def test_json_contains_on_compatibility(self):
        self.assertEqual(self.ids(self.client.fetch_items(PredicateSet().json_contains("make", "Honda"))), ["p-002"])
        self.assertEqual(self.ids(self.client.fetch_items(PredicateSet().json_contains("year", "2016"))), ["p-001"])
        self.assertEqual(self.client.count_items(PredicateSet().json_contains("make", "ford")), 0)
        partial = self.client.fetch_items(PredicateSet().json_contains("model", "rav", partial=True))
        self.assertEqual(self.ids(partial), ["p-001"])

    def test_price_or_discount_range(self):
        predicates = PredicateSet().or_(lte("price", 36), lte("discount_price", 36))
        self.assertEqual(sorted(self.ids(self.client.fetch_items(predicates))), ["p-002", "p-003", "p-005"])

    def test_order_by_puts_nulls_last(self):
        predicates = PredicateSet().eq("status", "approved").eq("is_active", 1)
        items = self.client.fetch_items(predicates, order_by=[OrderBy("discount_price"), OrderBy("price")])
        self.assertEqual(self.ids(items), ["p-002", "p-003", "p-001"])

    def test_offset_and_limit(self):
        predicates = PredicateSet()
        ordered = [OrderBy("id")]
        self.assertEqual(self.ids(self.client.fetch_items(predicates, ordered, offset=1, limit=2)), ["p-002", "p-003"])
        self.assertEqual(self.ids(self.client.fetch_items(predicates, ordered, offset=3)), ["p-004", "p-005"])

    def test_get_item_by_id_respects_extra_predicates(self):
        approved = PredicateSet().eq("status", "approved")
        self.assertIsNone(self.client.get_item_by_id("p-004", approved))
        self.assertIsNotNone(self.client.get_item_by_id("p-004"))

    def test_upsert_compatibility(self):
        descriptors = [VehicleDescriptor(year="2020", make="nissan", model="altima", match_type=MatchType.SPECIFIC)]
        self.assertTrue(self.client.upsert_compatibility("p-003", descriptors))
        self.assertEqual(self.client.get_item_by_id("p-003").compatibility, descriptors)
        self.assertFalse(self.client.upsert_compatibility("missing", descriptors))

    def test_batch_upsert_reports_updated_ids(self):
        descriptors = [VehicleDescriptor(make="ford", match_type=MatchType.MAKE)]
        updated = self.client.batch_upsert_compatibility({"p-001": descriptors, "nope": descriptors, "p-003": descriptors})
        self.assertEqual(updated, ["p-001", "p-003"])
        self.assertEqual(self.client.batch_upsert_compatibility({}), [])

    def test_store_errors_are_wrapped(self):
        self.client._get_connection().execute("UPDATE catalog_items SET compatibility = 'not json' WHERE id = 'p-001'")
        with self.assertRaises(CatalogStoreError):
            self.client.fetch_items(PredicateSet().json_contains("make", "toyota"))

    def test_single_object_compatibility_reads_as_list(self):
        conn = self.client._get_connection()
        conn.execute(
            "INSERT INTO catalog_items (id, name, compatibility) VALUES (?, ?, ?)",
            ("p-006", "Brake Pads Value", '{"year": "2016", "make": "toyota", "model": "rav-4"}'),
        )
        conn.commit()

        item = self.client.get_item_by_id("p-006")
        self.assertEqual(item.compatibility, [VehicleDescriptor(year="2016", make="toyota", model="rav-4")])

        matches = self.client.fetch_items(PredicateSet().json_contains("make", "toyota"), [OrderBy("id")])
        self.assertEqual(self.ids(matches), ["p-001", "p-006"])

    def test_invalid_row_raises_store_error(self):
        conn = self.client._get_connection()
        conn.execute(
            "INSERT INTO catalog_items (id, name, compatibility) VALUES (?, ?, ?)",
            ("p-007", "Odd Row", "[1, 2]"),
        )
        conn.commit()
        with self.assertRaises(CatalogStoreError):
            self.client.get_item_by_id("p-007")

    def test_context_manager_closes_connection(self):
        with CatalogClient(db_path=self.db_path) as client:
            self.assertEqual(client.count_items(PredicateSet()), 5)
        self.assertIsNone(client._connection)

    def test_in_memory_store(self):
        client = CatalogClient(db_path=":memory:")
        client.insert_item(CatalogItem(id="m-1", name="Cabin Filter"))
        self.assertEqual(client.count_items(PredicateSet()), 1)
        client.close()


if __name__ == "__main__":
    unittest.main()
