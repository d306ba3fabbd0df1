"""
Vehicle-aware auto parts search

Parses free-form shopper queries ("2016 toyota rav4 brake pads"), derives
heuristic vehicle compatibility for catalog items and ranks Catalog Store
results by relevance.
"""

__version__ = "1.0.0"
