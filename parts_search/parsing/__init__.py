"""Free-form query parsing"""

from .query_parser import QueryParser, parse_query

__all__ = ["QueryParser", "parse_query"]
