"""
Compatibility Generator - derives heuristic vehicle compatibility records
from an item's name and description

The output is a ranking signal, not certified fitment data.
"""
import re
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from config.config import Config
from parts_search.models import CatalogItem, MatchType, VehicleDescriptor
from parts_search.utils import contains_word, debug_print, normalize_query_text
from parts_search.vocabulary import (
    CONTEXT_REQUIRED_MODELS,
    MAKE_MODELS,
    PART_CATEGORY_PHRASES,
    POPULAR_MAKES,
    PRODUCTION_YEARS,
    UNIVERSAL_PARTS,
    Make,
    make_variants,
    model_variants,
)

config = Config

YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")


def merge_descriptors(
    existing: Optional[Iterable[VehicleDescriptor]],
    new: Optional[Iterable[VehicleDescriptor]]
) -> List[VehicleDescriptor]:
    """
    Union of two descriptor lists, keyed on (year, make, model)

    Existing records keep their position and match type; new records are
    appended only when their identity is not already present.
    """
    merged: List[VehicleDescriptor] = []
    seen = set()
    for descriptor in list(existing or []) + list(new or []):
        if descriptor.identity in seen:
            continue
        seen.add(descriptor.identity)
        merged.append(descriptor)
    return merged


class CompatibilityGenerator:
    """
    Text-driven compatibility heuristics

    Branches, in order:
        1. makes mentioned    -> specific / model / make_year / make records
        2. only years         -> year records
        3. part category      -> specific records for a mentioned model's
                                 production years
        4. universal part     -> popular makes x two latest years (make_year)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize generator

        Args:
            clock: Returns "now"; its year bounds years and drives the
                   production-year and universal-part defaults
        """
        self.clock = clock or datetime.now

    @property
    def reference_year(self) -> int:
        return self.clock().year

    def generate(self, name: Optional[str], description: Optional[str] = None) -> List[VehicleDescriptor]:
        """
        Generate compatibility records for an item

        Args:
            name: Item name
            description: Item description

        Returns:
            De-duplicated list of VehicleDescriptor (may be empty)
        """
        text = normalize_query_text(f"{name or ''} {description or ''}")
        if not text:
            return []

        years = self._extract_years(text)
        descriptors = self._from_makes(text, years)

        if not descriptors and years:
            descriptors = [
                VehicleDescriptor(year=year, match_type=MatchType.YEAR)
                for year in years
            ]

        if not descriptors:
            descriptors = self._from_part_category(text)

        if not descriptors:
            descriptors = self._from_universal_part(text)

        result = merge_descriptors([], descriptors)
        if result:
            debug_print("Generated Compatibility", [
                ("text", text[:80]),
                ("records", len(result)),
                ("first", result[0].model_dump(mode="json")),
            ])
        return result

    def generate_for_item(self, item: CatalogItem) -> List[VehicleDescriptor]:
        return self.generate(item.name, item.description)

    # ===== Branches =====

    def _extract_years(self, text: str) -> List[str]:
        high = self.reference_year + config.YEAR_LOOKAHEAD
        years: List[str] = []
        for match in YEAR_PATTERN.finditer(text):
            year = match.group(0)
            if config.MIN_VEHICLE_YEAR <= int(year) <= high and year not in years:
                years.append(year)
        return years

    def _from_makes(self, text: str, years: List[str]) -> List[VehicleDescriptor]:
        descriptors: List[VehicleDescriptor] = []
        for make in Make:
            if not any(contains_word(text, variant) for variant in make_variants(make)):
                continue

            models = [
                model for model in MAKE_MODELS.get(make, ())
                if self._mentions_model(text, model)
            ]

            if models and years:
                descriptors.extend(
                    VehicleDescriptor(year=year, make=make.value, model=model,
                                      match_type=MatchType.SPECIFIC)
                    for year in years for model in models
                )
            elif models:
                descriptors.extend(
                    VehicleDescriptor(make=make.value, model=model, match_type=MatchType.MODEL)
                    for model in models
                )
            elif years:
                descriptors.extend(
                    VehicleDescriptor(year=year, make=make.value, match_type=MatchType.MAKE_YEAR)
                    for year in years
                )
            else:
                descriptors.append(VehicleDescriptor(make=make.value, match_type=MatchType.MAKE))
        return descriptors

    def _from_part_category(self, text: str) -> List[VehicleDescriptor]:
        if not any(phrase in text for phrase in PART_CATEGORY_PHRASES):
            return []

        mention = self._find_model_without_make(text)
        if mention is None:
            return []

        make, model = mention
        return [
            VehicleDescriptor(year=str(year), make=make.value, model=model,
                              match_type=MatchType.SPECIFIC)
            for year in self._production_years(make, model)
        ]

    def _from_universal_part(self, text: str) -> List[VehicleDescriptor]:
        if not any(contains_word(text, part, plural=True) for part in UNIVERSAL_PARTS):
            return []

        recent_years = (self.reference_year, self.reference_year - 1)
        return [
            VehicleDescriptor(year=str(year), make=make.value, match_type=MatchType.MAKE_YEAR)
            for make in POPULAR_MAKES for year in recent_years
        ]

    # ===== Lookups =====

    @staticmethod
    def _mentions_model(text: str, model: str) -> bool:
        return any(contains_word(text, variant) for variant in model_variants(model))

    def _find_model_without_make(self, text: str) -> Optional[Tuple[Make, str]]:
        """Secondary model -> make lookup for text that names no make"""
        for make, models in MAKE_MODELS.items():
            for model in models:
                # Everyday words ("edge", "focus") are too noisy without a make
                if model in CONTEXT_REQUIRED_MODELS:
                    continue
                if self._mentions_model(text, model):
                    return make, model
        return None

    def _production_years(self, make: Make, model: str) -> List[int]:
        ref = self.reference_year
        span = PRODUCTION_YEARS.get((make, model))
        if span is None:
            return [ref - 2, ref - 1, ref]
        first, last = span
        return list(range(first, min(last, ref) + 1))


def generate_compatibility(
    name: Optional[str],
    description: Optional[str] = None,
    clock: Optional[Callable[[], datetime]] = None
) -> List[VehicleDescriptor]:
    """Convenience wrapper around CompatibilityGenerator().generate"""
    return CompatibilityGenerator(clock=clock).generate(name, description)
