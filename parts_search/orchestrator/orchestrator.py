"""
Query Orchestrator for vehicle-aware parts search

Main orchestrator that coordinates:
1. Cache lookup (canonical filter-bag key)
2. Predicate building from filters + parsed query
3. Parallel fetch + count against the Catalog Store
4. Vehicle fallback (drop the vehicle, keep the search term)
5. Compatibility + relevance scoring and ranking
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from config.config import Config
from parts_search.caching import SearchCache, build_cache_key
from parts_search.compatibility.generator import CompatibilityGenerator, merge_descriptors
from parts_search.database.catalog_client import CatalogClient
from parts_search.database.predicates import (
    Condition,
    OrderBy,
    PredicateSet,
    gte,
    ilike,
    json_contains,
    lte,
    or_,
)
from parts_search.errors import CatalogFetchError, CatalogStoreError, ItemNotFoundError
from parts_search.models import (
    BatchUpdateResult,
    CatalogItem,
    ParsedQuery,
    SearchFilters,
    SearchResponse,
    VehicleDescriptor,
    VehicleInfo,
)
from parts_search.orchestrator.suggestion_service import SuggestionService
from parts_search.parsing.query_parser import QueryParser
from parts_search.scoring.relevance_scorer import RelevanceScorer, rank
from parts_search.vocabulary import NON_SCORING_TERMS, Make, make_variants, model_variants, normalize_model

config = Config

TEXT_COLUMNS = ("name", "description", "short_description", "sku", "part_number")
VEHICLE_TEXT_COLUMNS = ("name", "description", "short_description")

# Filter field -> Catalog Store column; "all" disables the filter
EXACT_FILTERS = (
    ("category", "category_id"),
    ("subcategory", "subcategory_id"),
    ("brand", "brand_id"),
    ("dealer", "dealer_id"),
    ("supplier", "supplier_id"),
    ("condition", "condition"),
)

SORT_OPTIONS: Dict[str, List[OrderBy]] = {
    "price_asc": [OrderBy("discount_price"), OrderBy("price")],
    "price_desc": [OrderBy("discount_price", descending=True), OrderBy("price", descending=True)],
    "name": [OrderBy("name")],
    "stock": [OrderBy("stock_quantity", descending=True)],
    "newest": [OrderBy("created_at", descending=True)],
    "updated": [OrderBy("updated_at", descending=True)],
}
RELEVANCE_ORDER = [OrderBy("created_at", descending=True)]

FetchResult = Tuple[List[CatalogItem], int]


class QueryOrchestrator:
    """Main parts search orchestrator"""

    def __init__(
        self,
        catalog_client: Optional[CatalogClient] = None,
        cache: Optional[SearchCache] = None,
        item_cache: Optional[SearchCache] = None,
        parser: Optional[QueryParser] = None,
        generator: Optional[CompatibilityGenerator] = None,
        scorer: Optional[RelevanceScorer] = None,
        suggestion_service: Optional[SuggestionService] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize orchestrator and its collaborators

        Args:
            catalog_client: Catalog Store client (default: CatalogClient on Config.CATALOG_DB_PATH)
            cache: Search result cache (default: SearchCache with SEARCH_CACHE_TTL)
            item_cache: Single-item cache (default: SearchCache with ITEM_CACHE_TTL)
            parser: Query parser
            generator: Compatibility generator
            scorer: Relevance scorer
            suggestion_service: Suggestions + popular searches
            clock: Shared "now" source for parser, generator and caches
        """
        self._owns_catalog_client = catalog_client is None
        self.catalog_client = catalog_client or CatalogClient()

        self.cache = cache or SearchCache(ttl=config.SEARCH_CACHE_TTL, clock=clock)
        self.item_cache = item_cache or SearchCache(ttl=config.ITEM_CACHE_TTL, clock=clock)

        self.parser = parser or QueryParser(clock=clock)
        self.generator = generator or CompatibilityGenerator(clock=clock)
        self.scorer = scorer or RelevanceScorer()
        self.suggestion_service = suggestion_service or SuggestionService(parser=self.parser)

        self._metrics_lock = threading.Lock()
        self._total_searches = 0
        self._cache_hits = 0

    # ===== Search =====

    def search(self, filters: Union[SearchFilters, Dict[str, Any], None] = None) -> SearchResponse:
        """
        Execute a filtered, ranked catalog search

        Args:
            filters: SearchFilters or a dict in its shape (camelCase aliases accepted)

        Returns:
            SearchResponse

        Raises:
            CatalogFetchError: primary fetch failed and no fallback rows were found
        """
        if not isinstance(filters, SearchFilters):
            filters = SearchFilters.model_validate(filters or {})

        applied_filters = filters.model_dump(mode="json", exclude_none=True)
        cache_key = build_cache_key("search", applied_filters)

        with self._metrics_lock:
            self._total_searches += 1
        if filters.has_search:
            self.suggestion_service.record_search(filters.search)

        cached = self.cache.get(cache_key)
        if cached is not None:
            with self._metrics_lock:
                self._cache_hits += 1
            if config.DEBUG:
                print(f"\n=== Cache Hit: {cache_key} ===")
            return cached.model_copy(update={"from_cache": True})

        parsed = self.parser.parse(filters.search) if filters.has_search else None
        offset, limit = self._pagination(filters)

        if config.DEBUG:
            print("\n=== Parts Search ===")
            print(f"  Filters: {applied_filters}")
            print(f"  Page: offset={offset}, limit={limit}")

        primary_error: Optional[CatalogStoreError] = None
        try:
            items, total_count = self._parallel_retrieval(filters, parsed, offset, limit)
        except CatalogStoreError as e:
            primary_error = e
            items, total_count = [], 0

        fallback_applied = False
        if not items and filters.vehicle is not None and filters.has_search:
            fallback = self._vehicle_fallback(filters, parsed, offset, limit)
            if fallback is not None and fallback[0]:
                items, total_count = fallback
                fallback_applied = True

        if primary_error is not None and not fallback_applied:
            raise CatalogFetchError(
                f"Catalog fetch failed: {primary_error}",
                filters=applied_filters
            ) from primary_error

        scored = self._score(items, parsed)
        if parsed is not None and self._is_relevance_sort(filters.sort_by):
            scored = rank(scored)

        response = SearchResponse(
            items=scored,
            total_count=total_count,
            applied_filters=applied_filters,
            parsed_query=parsed,
            has_more=offset + len(items) < total_count,
            fallback_applied=fallback_applied,
            degraded=primary_error is not None,
        )

        # Degraded results are served but not memoised
        if not response.degraded:
            self.cache.set(cache_key, response)
        return response

    def search_by_vehicle(
        self,
        vehicle: Union[VehicleInfo, Dict[str, Any]],
        product_query: str = "",
        **filters
    ) -> SearchResponse:
        """
        Search parts for a vehicle, optionally narrowed by a product query

        Example:
            >>> orchestrator.search_by_vehicle({"year": 2016, "make": "toyota", "model": "rav4"}, "brake pads")
        """
        if not isinstance(vehicle, VehicleInfo):
            vehicle = VehicleInfo.model_validate(vehicle or {})

        search_text = " ".join(part for part in (vehicle.as_text(), (product_query or "").strip()) if part)
        filters.setdefault("sort_by", "relevance")
        return self.search(SearchFilters(search=search_text or None, vehicle=vehicle, **filters))

    def _parallel_retrieval(
        self,
        filters: SearchFilters,
        parsed: Optional[ParsedQuery],
        offset: int,
        limit: int
    ) -> FetchResult:
        """
        Fetch a page of rows and the total count in parallel

        Both futures settle before this returns; the first failure propagates.
        """
        data_predicates = self._build_predicates(filters, parsed)
        count_predicates = self._build_predicates(filters, parsed)
        order_by = self._order_by(filters.sort_by)

        if config.DEBUG:
            print("\n=== Parallel Retrieval (rows + count) ===")

        # Use ThreadPoolExecutor for parallel execution
        with ThreadPoolExecutor(max_workers=2) as executor:
            rows_future = executor.submit(
                self.catalog_client.fetch_items, data_predicates, order_by, offset, limit
            )
            count_future = executor.submit(
                self.catalog_client.count_items, count_predicates
            )

            # Wait for results; leaving the block waits for both futures
            items = rows_future.result()
            total_count = count_future.result()

        if config.DEBUG:
            print(f"  → {len(items)} rows, {total_count} total")
        return items, total_count

    def _vehicle_fallback(
        self,
        filters: SearchFilters,
        parsed: Optional[ParsedQuery],
        offset: int,
        limit: int
    ) -> Optional[FetchResult]:
        """Retry once without the vehicle constraint; any failure means no fallback"""
        if config.DEBUG:
            print("\n=== Vehicle Fallback (vehicle filter dropped) ===")
        try:
            return self._parallel_retrieval(filters.without_vehicle(), parsed, offset, limit)
        except CatalogStoreError as e:
            print(f"Vehicle fallback failed for '{filters.search}': {e}")
            return None

    def _score(self, items: List[CatalogItem], parsed: Optional[ParsedQuery]):
        # Generated compatibility is used for ranking only; get_item_by_id persists it
        compatibility = {
            item.id: item.compatibility if item.compatibility else self.generator.generate_for_item(item)
            for item in items
        }
        return self.scorer.score_items(items, parsed, compatibility)

    # ===== Predicates =====

    def _base_predicates(self) -> PredicateSet:
        """Every query only sees approved, active items"""
        return (
            PredicateSet()
            .eq("status", config.REQUIRED_ITEM_STATUS)
            .eq("is_active", 1)
        )

    def _build_predicates(self, filters: SearchFilters, parsed: Optional[ParsedQuery]) -> PredicateSet:
        predicates = self._base_predicates()

        if parsed is not None and parsed.original_query:
            predicates.where(self._search_condition(parsed))

        for field, column in EXACT_FILTERS:
            value = getattr(filters, field)
            if value and value != "all":
                predicates.eq(column, value)

        if filters.vehicle is not None:
            for key, value in self._canonical_vehicle(filters.vehicle):
                predicates.json_contains(key, value)

        if filters.min_price is not None:
            predicates.or_(gte("price", filters.min_price), gte("discount_price", filters.min_price))
        if filters.max_price is not None:
            predicates.or_(lte("price", filters.max_price), lte("discount_price", filters.max_price))

        if filters.in_stock:
            predicates.gt("stock_quantity", 0)

        return predicates

    @staticmethod
    def _canonical_vehicle(vehicle: VehicleInfo) -> List[Tuple[str, str]]:
        fields = []
        if vehicle.year:
            fields.append(("year", vehicle.year))
        if vehicle.make:
            make = Make.from_token(vehicle.make)
            fields.append(("make", make.value if make else vehicle.make))
        if vehicle.model:
            fields.append(("model", normalize_model(vehicle.model)))
        return fields

    def _search_condition(self, parsed: ParsedQuery) -> Condition:
        """OR of every text signal in the parsed query"""
        conditions: List[Condition] = []

        for part_number in parsed.part_numbers:
            conditions += [ilike(column, part_number) for column in ("part_number", "sku", "name", "description")]

        vehicle = parsed.vehicle_info
        for key, value in self._canonical_vehicle(vehicle):
            if key == "make":
                make = Make.from_token(value)
                needles: Iterable[str] = make_variants(make) if make else (value,)
            elif key == "model":
                needles = model_variants(value)
            else:
                needles = (value,)
            conditions += [ilike(column, needle) for needle in needles for column in VEHICLE_TEXT_COLUMNS]
            conditions.append(json_contains(key, value))

        for term in parsed.product_terms:
            if term in NON_SCORING_TERMS:
                continue
            conditions += [ilike(column, term) for column in TEXT_COLUMNS]

        if not conditions:
            conditions = [ilike(column, parsed.original_query) for column in TEXT_COLUMNS]

        return or_(*conditions)

    # ===== Sorting / pagination =====

    @staticmethod
    def _is_relevance_sort(sort_by: Optional[str]) -> bool:
        return sort_by not in SORT_OPTIONS

    @staticmethod
    def _order_by(sort_by: Optional[str]) -> List[OrderBy]:
        return SORT_OPTIONS.get(sort_by, RELEVANCE_ORDER)

    @staticmethod
    def _pagination(filters: SearchFilters) -> Tuple[int, int]:
        limit = filters.limit or config.DEFAULT_PAGE_LIMIT
        if filters.page:
            return (filters.page - 1) * limit, limit
        return 0, limit

    # ===== Suggestions =====

    def get_suggestions(self, partial_query: Optional[str], limit: int = None) -> List[str]:
        return self.suggestion_service.get_suggestions(partial_query, limit)

    def get_popular_searches(self, limit: int = None) -> List[Dict[str, Any]]:
        return self.suggestion_service.get_popular_searches(limit)

    # ===== Items & compatibility =====

    def get_item_by_id(self, item_id: str) -> CatalogItem:
        """
        Get an approved, active item; generate and persist compatibility if it has none

        Raises:
            ItemNotFoundError: no such approved, active item
        """
        cache_key = build_cache_key("item", {"id": item_id})
        cached = self.item_cache.get(cache_key)
        if cached is not None:
            return cached

        item = self.catalog_client.get_item_by_id(item_id, self._base_predicates())
        if item is None:
            raise ItemNotFoundError(item_id)

        if not item.compatibility:
            generated = self.generator.generate_for_item(item)
            if generated:
                try:
                    self.catalog_client.upsert_compatibility(item.id, generated)
                except CatalogStoreError as e:
                    print(f"Error persisting compatibility for {item.id}: {e}")
                item = item.model_copy(update={"compatibility": generated})

        self.item_cache.set(cache_key, item)
        return item

    def update_item_compatibility(
        self,
        item_id: str,
        descriptors: Iterable[Union[VehicleDescriptor, Dict[str, Any]]],
        merge: bool = True
    ) -> CatalogItem:
        """
        Replace or extend an item's compatibility list

        Args:
            item_id: Item ID
            descriptors: New records (dicts are validated)
            merge: Keep existing records and append new identities

        Raises:
            ItemNotFoundError: unknown item id
        """
        item = self.catalog_client.get_item_by_id(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        incoming = [
            descriptor if isinstance(descriptor, VehicleDescriptor) else VehicleDescriptor.model_validate(descriptor)
            for descriptor in descriptors
        ]
        updated = merge_descriptors(item.compatibility if merge else [], incoming)

        if not self.catalog_client.upsert_compatibility(item_id, updated):
            raise ItemNotFoundError(item_id)
        self.invalidate(item_id)
        return item.model_copy(update={"compatibility": updated})

    def batch_update_compatibility(
        self,
        items: Iterable[Union[CatalogItem, Dict[str, Any]]]
    ) -> BatchUpdateResult:
        """
        Generate and persist compatibility for many items

        A failure on one item is printed and skipped; the rest are written.

        Args:
            items: CatalogItems or dicts with at least id and name

        Returns:
            BatchUpdateResult with updated / failed counts
        """
        updates: Dict[str, List[VehicleDescriptor]] = {}
        failed_ids: List[str] = []

        for raw in items:
            item_id = ""
            try:
                item_id = raw.id if isinstance(raw, CatalogItem) else str((raw or {}).get("id", ""))
                item = raw if isinstance(raw, CatalogItem) else CatalogItem.model_validate(raw)
                updates[item.id] = merge_descriptors(item.compatibility, self.generator.generate_for_item(item))
            except Exception as e:
                print(f"Error generating compatibility for item {item_id or '<unknown>'}: {e}")
                failed_ids.append(item_id)

        updated_ids: List[str] = []
        if updates:
            try:
                updated_ids = self.catalog_client.batch_upsert_compatibility(updates)
            except CatalogStoreError as e:
                print(f"Error persisting batch compatibility update: {e}")
            written = set(updated_ids)
            failed_ids += [item_id for item_id in updates if item_id not in written]

        self.invalidate_all()

        if config.DEBUG:
            print("\n=== Batch Compatibility Update ===")
            print(f"  Updated: {len(updated_ids)}, Failed: {len(failed_ids)}")

        return BatchUpdateResult(updated=len(updated_ids), failed=len(failed_ids), failed_ids=failed_ids)

    # ===== Cache management =====

    def invalidate(self, item_id: str) -> int:
        """
        Drop cached data that may show this item

        Returns:
            Number of cache entries removed
        """
        removed = self.item_cache.clear_by_substring(item_id)
        removed += self.cache.clear_by_substring(item_id)
        # Any cached search page may contain the item
        removed += self.cache.clear_by_substring("search:")
        return removed

    def invalidate_all(self) -> int:
        return self.cache.clear() + self.item_cache.clear()

    def get_search_metrics(self) -> Dict[str, Any]:
        """Search counters, cache hit rate and the most frequent queries"""
        with self._metrics_lock:
            total, hits = self._total_searches, self._cache_hits
        return {
            "total_searches": total,
            "cache_hits": hits,
            "cache_hit_rate": round(hits / total, 4) if total else 0.0,
            "popular_queries": self.suggestion_service.tracked_searches(config.POPULAR_SEARCH_LIMIT),
            "cache": self.cache.stats(),
        }

    def close(self):
        """Dispose caches and close the catalog connection if we opened it"""
        self.cache.close()
        self.item_cache.close()
        if self._owns_catalog_client:
            self.catalog_client.close()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()


# Convenience function for single searches
def search(filters: Dict[str, Any]) -> SearchResponse:
    """
    Execute a single search

    Example:
        >>> result = search({"search": "2016 toyota rav4 brake pads", "sortBy": "relevance"})
    """
    with QueryOrchestrator() as orchestrator:
        return orchestrator.search(filters)
