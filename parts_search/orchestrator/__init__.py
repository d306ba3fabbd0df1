"""
Search Orchestrator Module

Coordinates the parts search pipeline including:
- Cache lookup
- Parallel fetch + count against the Catalog Store
- Vehicle fallback
- Relevance scoring & ranking
- Suggestions and popular searches
"""

from .orchestrator import QueryOrchestrator, search
from .suggestion_service import SuggestionService

__all__ = [
    "QueryOrchestrator",
    "SuggestionService",
    "search",
]
