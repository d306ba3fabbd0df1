"""Heuristic vehicle compatibility"""

from .generator import CompatibilityGenerator, generate_compatibility, merge_descriptors

__all__ = ["CompatibilityGenerator", "generate_compatibility", "merge_descriptors"]
