import os
import tempfile
import unittest

try:
    from fastapi.testclient import TestClient

    from backend import search_api
    from backend.search_api import app, get_orchestrator
    SKIP_REASON = None
except ModuleNotFoundError as exc:  # pragma: no cover - handled as skip when deps missing
    TestClient = search_api = app = get_orchestrator = None  # type: ignore
    SKIP_REASON = f"missing dependency: {exc}"

from parts_search.database.catalog_client import CatalogClient
from parts_search.errors import CatalogFetchError
from parts_search.orchestrator.orchestrator import QueryOrchestrator
from tests.fixtures import ManualClock, seed_items


class UnavailableCatalogOrchestrator:
    def search(self, filters):
        raise CatalogFetchError("Catalog fetch failed: offline")


@unittest.skipIf(SKIP_REASON is not None, "HTTP backend dependencies missing")
class SearchApiTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.catalog = CatalogClient(db_path=os.path.join(self.temp_dir.name, "catalog.db"))
        self.catalog.insert_items(seed_items())
        self.orchestrator = QueryOrchestrator(catalog_client=self.catalog, clock=ManualClock())

        app.dependency_overrides[get_orchestrator] = lambda: self.orchestrator
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.orchestrator.close()
        self.catalog.close()
        self.temp_dir.cleanup()

    def test_health_check(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_search_accepts_camel_case_filters(self):
        response = self.client.post("/search", json={
            "search": "brake pads",
            "vehicle": {"make": "Toyota"},
            "maxPrice": 100,
            "sortBy": "relevance",
        })
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([scored["item"]["id"] for scored in body["items"]], ["p-001"])
        self.assertEqual(body["total_count"], 1)
        self.assertFalse(body["from_cache"])

    def test_search_rejects_invalid_page(self):
        response = self.client.post("/search", json={"page": 0})
        self.assertEqual(response.status_code, 422)

    def test_search_maps_catalog_failure_to_503(self):
        app.dependency_overrides[get_orchestrator] = UnavailableCatalogOrchestrator
        response = self.client.post("/search", json={"search": "brake pads"})
        self.assertEqual(response.status_code, 503)

    def test_get_item(self):
        response = self.client.get("/items/p-002")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["compatibility"][0]["make"], "honda")
        self.assertEqual(self.client.get("/items/p-004").status_code, 404)

    def test_update_compatibility(self):
        response = self.client.put("/items/p-003/compatibility", json={
            "compatibility": [{"year": "2020", "make": "nissan", "model": "altima", "match_type": "specific"}],
            "merge": False,
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["compatibility"]), 1)
        self.assertEqual(self.client.put("/items/missing/compatibility", json={}).status_code, 404)

    def test_batch_compatibility(self):
        response = self.client.post("/compatibility/batch", json={
            "items": [{"id": "p-003", "name": "Oil Filter"}, {"id": "ghost", "name": "Honda Civic mats"}],
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"updated": 1, "failed": 1, "failed_ids": ["ghost"]})

    def test_suggestions_and_popular_searches(self):
        response = self.client.get("/suggestions", params={"q": "br"})
        self.assertEqual(response.json(), {"query": "br", "suggestions": ["brake pads", "brake fluid"]})

        popular = self.client.get("/popular-searches", params={"limit": 2}).json()["searches"]
        self.assertEqual([entry["term"] for entry in popular], ["brake pads", "engine oil"])

    def test_cache_endpoints_and_metrics(self):
        self.client.post("/search", json={"search": "oil filter"})
        self.assertTrue(self.client.post("/search", json={"search": "oil filter"}).json()["from_cache"])

        metrics = self.client.get("/metrics").json()
        self.assertEqual(metrics["total_searches"], 2)
        self.assertEqual(metrics["cache_hits"], 1)

        self.assertEqual(self.client.post("/cache/invalidate/p-003").json(), {"item_id": "p-003", "removed": 1})
        self.assertEqual(self.client.post("/cache/clear").json(), {"removed": 0})

    def test_shutdown_closes_shared_orchestrator(self):
        shared = QueryOrchestrator(catalog_client=self.catalog, clock=ManualClock())
        shared.cache.set("search:warm", "value")
        search_api._orchestrator = shared

        with TestClient(app) as client:
            self.assertEqual(client.get("/").status_code, 200)

        self.assertIsNone(search_api._orchestrator)
        self.assertEqual(len(shared.cache), 0)
        # The injected catalog stays usable
        self.assertIsNotNone(self.catalog.get_item_by_id("p-001"))


if __name__ == "__main__":
    unittest.main()
