"""
Utility functions for parts search
"""
import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from config.config import Config

config = Config


def normalize_query_text(raw: Optional[str]) -> str:
    """
    Lowercase, trim and collapse whitespace

    Example:
        "  2016  Toyota RAV4 " -> "2016 toyota rav4"
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)
    return " ".join(raw.lower().split())


@lru_cache(maxsize=1024)
def _word_pattern(phrase: str, plural: bool) -> "re.Pattern":
    suffix = r"(?:e?s)?" if plural else ""
    return re.compile(r"(?<![a-z0-9])" + re.escape(phrase) + suffix + r"(?![a-z0-9])")


def contains_word(text: str, phrase: str, plural: bool = False) -> bool:
    """
    Whole-word (or whole-phrase) containment, case already folded

    "ram" is found in "ram 1500 mirror" but not in "frame". With plural=True
    "fuse" is also found in "mini fuses".
    """
    if not text or not phrase:
        return False
    return _word_pattern(phrase, plural).search(text) is not None


def dedupe_preserving_order(values: Iterable) -> List:
    """Drop repeated values, keeping first occurrences"""
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def debug_print_scores(
    item_scores: Dict[str, float],
    label: str = "Scores"
):
    """
    Debug utility to print scores

    Args:
        item_scores: Dictionary of item_id -> score
        label: Label for the output
    """
    if config.DEBUG:
        print(f"\n=== {label} ===")
        sorted_scores = sorted(
            item_scores.items(),
            key=lambda x: x[1],
            reverse=True
        )
        for item_id, score in sorted_scores[:10]:  # Show top 10
            print(f"  {item_id}: {score:.4f}")
        print()


def debug_print(label: str, rows: Iterable[Tuple[str, object]] = ()):
    """Print a labelled block of key/value lines when DEBUG is on"""
    if config.DEBUG:
        print(f"\n=== {label} ===")
        for key, value in rows:
            print(f"  {key}: {value}")
