"""
Exceptions raised by the parts search service
"""
from typing import Optional


class PartsSearchError(Exception):
    """Base class for parts search errors"""


class CatalogStoreError(PartsSearchError):
    """A Catalog Store statement failed"""

    def __init__(self, message: str, statement: Optional[str] = None):
        super().__init__(message)
        self.statement = statement


class CatalogFetchError(PartsSearchError):
    """Primary search fetch failed and no fallback result was available"""

    def __init__(self, message: str, filters: Optional[dict] = None):
        super().__init__(message)
        self.filters = filters or {}


class ItemNotFoundError(PartsSearchError):
    """No approved, active item with the requested id"""

    def __init__(self, item_id: str):
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id
