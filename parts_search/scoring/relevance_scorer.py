"""
Relevance Scorer - additive weighted relevance for a parsed query

Every contribution is evaluated independently; an exact part-number hit
also earns the containment, name and description bonuses when they apply.
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from config.config import Config
from parts_search.models import (
    CatalogItem,
    MatchType,
    ParsedQuery,
    ScoredItem,
    VehicleDescriptor,
    VehicleInfo,
)
from parts_search.utils import debug_print_scores
from parts_search.vocabulary import NON_SCORING_TERMS, Make, make_variants, model_variants, normalize_model

config = Config


class _ItemText:
    """Lowercased searchable fields of one item"""

    __slots__ = ("name", "description", "short_description", "sku", "part_number")

    def __init__(self, item: CatalogItem):
        self.name = (item.name or "").lower()
        self.description = (item.description or "").lower()
        self.short_description = (item.short_description or "").lower()
        self.sku = (item.sku or "").lower()
        self.part_number = (item.part_number or "").lower()


def _contains_any(field: str, needles: Sequence[str]) -> bool:
    return bool(field) and any(needle in field for needle in needles)


class RelevanceScorer:
    """Scores catalog items against a ParsedQuery"""

    def score(
        self,
        item: CatalogItem,
        parsed_query: Optional[ParsedQuery],
        compatibility: Optional[List[VehicleDescriptor]] = None
    ) -> float:
        """
        Compute relevance score

        Args:
            item: Catalog item
            parsed_query: Output of QueryParser.parse
            compatibility: Descriptors to use instead of item.compatibility

        Returns:
            Score >= BASELINE_SCORE
        """
        total = config.BASELINE_SCORE
        if parsed_query is None or not parsed_query.original_query:
            return total

        text = _ItemText(item)

        for part_number in parsed_query.part_numbers:
            total += self._part_number_score(text, part_number)

        if parsed_query.has_vehicle_info:
            total += self._vehicle_text_score(text, parsed_query.vehicle_info)
            descriptors = compatibility if compatibility is not None else (item.compatibility or [])
            total += self.compatibility_bonus(descriptors, parsed_query.vehicle_info)

        for term in parsed_query.product_terms:
            if term in NON_SCORING_TERMS:
                continue
            total += self._term_score(text, term)

        if not (parsed_query.part_numbers or parsed_query.has_vehicle_info or parsed_query.product_terms):
            total += self._term_score(text, parsed_query.original_query)

        return total

    # ===== Contributions =====

    @staticmethod
    def _part_number_score(text: _ItemText, part_number: str) -> float:
        score = 0.0
        if text.part_number == part_number:
            score += config.PART_NUMBER_EXACT_WEIGHT
        if text.sku == part_number:
            score += config.SKU_EXACT_WEIGHT
        if part_number in text.part_number:
            score += config.PART_NUMBER_PARTIAL_WEIGHT
        if part_number in text.sku:
            score += config.SKU_PARTIAL_WEIGHT
        if part_number in text.name:
            score += config.PART_NUMBER_NAME_WEIGHT
        if part_number in text.description:
            score += config.PART_NUMBER_DESCRIPTION_WEIGHT
        return score

    @staticmethod
    def _vehicle_field_needles(vehicle: VehicleInfo) -> List[Tuple[str, Tuple[str, ...]]]:
        needles: List[Tuple[str, Tuple[str, ...]]] = []
        if vehicle.year:
            needles.append(("year", (vehicle.year,)))
        if vehicle.make:
            make = Make.from_token(vehicle.make)
            needles.append(("make", make_variants(make) if make else (vehicle.make,)))
        if vehicle.model:
            needles.append(("model", model_variants(vehicle.model)))
        return needles

    def _vehicle_text_score(self, text: _ItemText, vehicle: VehicleInfo) -> float:
        score = 0.0
        for field, needles in self._vehicle_field_needles(vehicle):
            if _contains_any(text.name, needles):
                score += config.VEHICLE_NAME_WEIGHT
            if _contains_any(text.description, needles):
                score += config.VEHICLE_DESCRIPTION_WEIGHT
            if _contains_any(text.short_description, needles):
                score += config.VEHICLE_SHORT_DESCRIPTION_WEIGHT
            if _contains_any(text.sku, needles):
                score += config.VEHICLE_SKU_WEIGHT
            if field == "year" and _contains_any(text.part_number, needles):
                score += config.YEAR_PART_NUMBER_WEIGHT
        return score

    @staticmethod
    def compatibility_bonus(
        descriptors: Iterable[VehicleDescriptor],
        vehicle: VehicleInfo
    ) -> float:
        """
        Best single-descriptor match against the query vehicle

        +COMPATIBILITY_FIELD_WEIGHT per equal field the query names, plus
        COMPATIBILITY_PERFECT_BONUS when year, make and model are all named,
        all equal, and the descriptor is a specific record.
        """
        best = 0.0
        query_make = Make.from_token(vehicle.make) if vehicle.make else None
        query_model = normalize_model(vehicle.model) if vehicle.model else None

        for descriptor in descriptors:
            year_equal = bool(vehicle.year) and descriptor.year == vehicle.year
            make_equal = query_make is not None and Make.from_token(descriptor.make or "") == query_make
            model_equal = query_model is not None and normalize_model(descriptor.model or "") == query_model

            total = config.COMPATIBILITY_FIELD_WEIGHT * sum((year_equal, make_equal, model_equal))
            if year_equal and make_equal and model_equal and descriptor.match_type == MatchType.SPECIFIC:
                total += config.COMPATIBILITY_PERFECT_BONUS
            best = max(best, total)
        return best

    @staticmethod
    def _term_score(text: _ItemText, term: str) -> float:
        score = 0.0
        if term in text.name:
            score += config.TERM_NAME_WEIGHT
        if term in text.description:
            score += config.TERM_DESCRIPTION_WEIGHT
        if term in text.short_description:
            score += config.TERM_SHORT_DESCRIPTION_WEIGHT
        if term in text.sku:
            score += config.TERM_SKU_WEIGHT
        if term in text.part_number:
            score += config.TERM_PART_NUMBER_WEIGHT
        return score

    # ===== Ranking =====

    def score_items(
        self,
        items: Iterable[CatalogItem],
        parsed_query: Optional[ParsedQuery],
        compatibility: Optional[Dict[str, List[VehicleDescriptor]]] = None
    ) -> List[ScoredItem]:
        """
        Score a batch of items (order preserved)

        Args:
            items: Catalog items
            parsed_query: Parsed search, or None when there is no search text
            compatibility: Optional item_id -> descriptors overriding item.compatibility
        """
        compatibility = compatibility or {}
        scored = []
        for item in items:
            descriptors = compatibility.get(item.id, item.compatibility or [])
            scored.append(ScoredItem(
                item=item,
                relevance_score=self.score(item, parsed_query, descriptors),
                vehicle_compatibility=descriptors,
            ))

        debug_print_scores({s.item.id: s.relevance_score for s in scored}, "Relevance Scores")
        return scored


def _ranking_key(scored: ScoredItem):
    created = scored.item.created_at
    return (
        -scored.relevance_score,
        -scored.item.stock_quantity,
        created is None,
        -created.timestamp() if created is not None else 0.0,
    )


def rank(scored_items: Iterable[ScoredItem]) -> List[ScoredItem]:
    """Score desc, then stock desc, then newest first (missing dates last)"""
    return sorted(scored_items, key=_ranking_key)
