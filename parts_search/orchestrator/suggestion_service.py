"""
Suggestion Service

Query-completion suggestions and popular searches:
1. Vehicle-aware suggestions ("2016 toyota rav-4 brake pads")
2. Plain part-name completions from the popular parts list
3. Popular searches = tracked queries merged with a static baseline
"""
import threading
from collections import Counter
from typing import Any, Dict, List, Optional

from config.config import Config
from parts_search.parsing.query_parser import QueryParser
from parts_search.utils import dedupe_preserving_order, normalize_query_text
from parts_search.vocabulary import POPULAR_PARTS, STATIC_POPULAR_SEARCHES, is_known_model

config = Config


class SuggestionService:
    """Builds suggestions from the popular parts list and tracked searches"""

    def __init__(self, parser: Optional[QueryParser] = None):
        """
        Initialize suggestion service

        Args:
            parser: Query parser used to spot vehicle info in partial input
        """
        self.parser = parser or QueryParser()
        self._query_counts: Counter = Counter()
        self._lock = threading.Lock()

    def record_search(self, query: Optional[str]):
        """Count a submitted search for popular-search tracking"""
        normalized = normalize_query_text(query)
        if not normalized:
            return
        with self._lock:
            self._query_counts[normalized] += 1

    def tracked_searches(self, limit: int = None) -> List[Dict[str, Any]]:
        """Most frequent tracked queries as {"query", "count"} dicts"""
        with self._lock:
            top = self._query_counts.most_common(limit)
        return [{"query": query, "count": count} for query, count in top]

    def get_suggestions(self, partial_query: Optional[str], limit: int = None) -> List[str]:
        """
        Suggest completions for a partially typed query

        Args:
            partial_query: What the shopper typed so far
            limit: Max suggestions (default: Config.SUGGESTION_LIMIT)

        Returns:
            List of suggestion strings
        """
        limit = limit or config.SUGGESTION_LIMIT
        query = normalize_query_text(partial_query)
        if len(query) < config.MIN_SUGGESTION_QUERY_LENGTH:
            return []

        parsed = self.parser.parse(query)
        vehicle = parsed.vehicle_info
        product_terms = list(parsed.product_terms)

        # "toyota bra", "wip": an unknown model word is more likely a partial part name
        if vehicle.model and not is_known_model(vehicle.model):
            product_terms.append(vehicle.model)
            vehicle = vehicle.model_copy(update={"model": None})

        if not vehicle.is_empty:
            vehicle_text = vehicle.as_text()
            # Parts the shopper has not already typed
            candidates = [part for part in POPULAR_PARTS if part not in query]

            # Narrow by a trailing partial word ("... rav4 br" -> "brake pads")
            if product_terms:
                last_term = product_terms[-1]
                narrowed = [
                    part for part in candidates
                    if any(word.startswith(last_term) for word in part.split())
                ]
                if narrowed:
                    candidates = narrowed

            suggestions = [f"{vehicle_text} {part}" for part in candidates]
        else:
            suggestions = [
                part for part in POPULAR_PARTS
                if query in part or part in query
            ]

        result = dedupe_preserving_order(suggestions)[:limit]

        if config.DEBUG:
            print(f"\n=== Suggestions for '{query}' ===")
            for suggestion in result:
                print(f"  {suggestion}")

        return result

    def get_popular_searches(self, limit: int = None) -> List[Dict[str, Any]]:
        """
        Popular searches: tracked counts added onto the static baseline

        Args:
            limit: Max entries (default: Config.POPULAR_SEARCH_LIMIT)

        Returns:
            List of {"term", "count"} sorted by count desc, then term
        """
        limit = limit or config.POPULAR_SEARCH_LIMIT
        totals: Counter = Counter(dict(STATIC_POPULAR_SEARCHES))
        with self._lock:
            totals.update(self._query_counts)

        ranked = sorted(totals.items(), key=lambda pair: (-pair[1], pair[0]))
        return [{"term": term, "count": count} for term, count in ranked[:limit]]
