"""
Query Parser - turns a free-form search string into a ParsedQuery

Token classification order (first match by position wins within each step):
    1. year      first all-digit token inside [MIN_VEHICLE_YEAR, ref + YEAR_LOOKAHEAD]
    2. make      multi-word make phrases, then single tokens / aliases
    3. model     first remaining word by position; digit-bearing part-number
                 shaped tokens only when they spell a known model
    4. the rest  part numbers or product terms
"""
import re
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from config.config import Config
from parts_search.models import ParsedQuery, SearchType, VehicleInfo
from parts_search.utils import debug_print, normalize_query_text
from parts_search.vocabulary import (
    AUTO_PART_TERMS,
    GENERIC_TERMS,
    STOPWORDS,
    Make,
    is_known_model,
    multi_word_makes,
    normalize_model,
)

config = Config

PART_NUMBER_PATTERN = re.compile(r"^[a-z0-9-]{3,}$")
_MODEL_WORD_PATTERN = re.compile(r"^[a-z][a-z-]*$")
_HAS_WORD_CHARACTER = re.compile(r"[a-z0-9]")

# Longest model phrase ("grand caravan", "land cruiser", "model 3") in tokens
_MAX_MODEL_PHRASE_TOKENS = 2


def looks_like_part_number(token: str) -> bool:
    """Part-number shaped: 3+ chars of [a-z0-9-] with at least one digit"""
    return bool(PART_NUMBER_PATTERN.match(token)) and any(ch.isdigit() for ch in token)


def _find_phrase(tokens: List[str], phrase_tokens: List[str]) -> Optional[int]:
    """Index where phrase_tokens occur consecutively in tokens, or None"""
    size = len(phrase_tokens)
    for start in range(len(tokens) - size + 1):
        if tokens[start:start + size] == phrase_tokens:
            return start
    return None


class QueryParser:
    """
    Heuristic parser for auto parts searches

    Example:
        >>> QueryParser().parse("2016 Toyota RAV4 brake pads")
        ParsedQuery(vehicle_info=VehicleInfo(year='2016', make='toyota', model='rav-4'),
                    product_terms=('brake', 'pads'), ...,
                    search_type=<SearchType.VEHICLE_WITH_PRODUCT: 'vehicle_with_product'>)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize parser

        Args:
            clock: Returns "now"; its year bounds the accepted vehicle years
        """
        self.clock = clock or datetime.now

    @property
    def reference_year(self) -> int:
        return self.clock().year

    def year_bounds(self) -> Tuple[int, int]:
        return config.MIN_VEHICLE_YEAR, self.reference_year + config.YEAR_LOOKAHEAD

    def parse(self, raw: Optional[str]) -> ParsedQuery:
        """
        Parse a raw search string

        Never raises; empty or unusable input gives ParsedQuery.empty().

        Args:
            raw: Shopper-typed search text

        Returns:
            ParsedQuery
        """
        normalized = normalize_query_text(raw)
        if not normalized:
            return ParsedQuery.empty()

        # Punctuation-only tokens carry nothing searchable
        tokens = [token for token in normalized.split() if _HAS_WORD_CHARACTER.search(token)]
        if not tokens:
            return ParsedQuery.empty()

        year = self._extract_year(tokens)
        make = self._extract_make(tokens)
        model = self._extract_model(tokens)
        product_terms, part_numbers = self._classify_remaining(tokens)

        vehicle_info = VehicleInfo(year=year, make=make, model=model)
        has_vehicle_info = not vehicle_info.is_empty
        has_part_number = bool(part_numbers)

        parsed = ParsedQuery(
            vehicle_info=vehicle_info,
            product_terms=tuple(product_terms),
            part_numbers=tuple(part_numbers),
            original_query=normalized,
            has_vehicle_info=has_vehicle_info,
            has_part_number=has_part_number,
            search_type=self._search_type(has_vehicle_info, product_terms, part_numbers),
        )

        debug_print("Parsed Query", [
            ("query", normalized),
            ("vehicle", vehicle_info.as_text() or "-"),
            ("product_terms", list(parsed.product_terms)),
            ("part_numbers", list(parsed.part_numbers)),
            ("search_type", parsed.search_type.value),
        ])
        return parsed

    # ===== Extraction steps (each removes what it consumes from tokens) =====

    def _extract_year(self, tokens: List[str]) -> Optional[str]:
        low, high = self.year_bounds()
        for index, token in enumerate(tokens):
            if token.isdigit() and low <= int(token) <= high:
                del tokens[index]
                return token
        return None

    def _extract_make(self, tokens: List[str]) -> Optional[str]:
        for phrase, make in multi_word_makes():
            phrase_tokens = phrase.split()
            start = _find_phrase(tokens, phrase_tokens)
            if start is not None:
                del tokens[start:start + len(phrase_tokens)]
                return make.value

        for index, token in enumerate(tokens):
            make = Make.from_token(token)
            if make is not None:
                del tokens[index]
                return make.value
        return None

    def _extract_model(self, tokens: List[str]) -> Optional[str]:
        for index, token in enumerate(tokens):
            if token in STOPWORDS:
                continue

            # Multi-token spellings first: "santa fe", "model 3", "rav 4"
            for size in range(_MAX_MODEL_PHRASE_TOKENS, 1, -1):
                phrase = " ".join(tokens[index:index + size])
                if len(tokens[index:index + size]) == size and is_known_model(phrase):
                    del tokens[index:index + size]
                    return normalize_model(phrase)

            if token in AUTO_PART_TERMS or token in GENERIC_TERMS or token.isdigit():
                continue

            if is_known_model(token):
                del tokens[index]
                return normalize_model(token)

            if looks_like_part_number(token):
                continue

            if len(token) > 2 and _MODEL_WORD_PATTERN.match(token):
                del tokens[index]
                return normalize_model(token)
        return None

    def _classify_remaining(self, tokens: List[str]) -> Tuple[List[str], List[str]]:
        product_terms: List[str] = []
        part_numbers: List[str] = []
        for token in tokens:
            if token in STOPWORDS:
                continue
            if token in AUTO_PART_TERMS or token in GENERIC_TERMS:
                product_terms.append(token)
            elif looks_like_part_number(token):
                part_numbers.append(token)
            elif len(token) > 1:
                product_terms.append(token)
        return product_terms, part_numbers

    @staticmethod
    def _search_type(
        has_vehicle_info: bool,
        product_terms: List[str],
        part_numbers: List[str]
    ) -> SearchType:
        if part_numbers:
            return SearchType.PART_NUMBER
        if has_vehicle_info and product_terms:
            return SearchType.VEHICLE_WITH_PRODUCT
        if has_vehicle_info:
            return SearchType.VEHICLE_COMPATIBILITY
        if product_terms:
            return SearchType.PRODUCT_NAME
        return SearchType.GENERAL


def parse_query(raw: Optional[str], clock: Optional[Callable[[], datetime]] = None) -> ParsedQuery:
    """Convenience wrapper around QueryParser().parse"""
    return QueryParser(clock=clock).parse(raw)
