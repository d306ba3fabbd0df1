"""
Pydantic models for parts search input/output
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchType(str, Enum):
    """How a parsed query should be treated, in precedence order"""

    PART_NUMBER = "part_number"
    VEHICLE_WITH_PRODUCT = "vehicle_with_product"
    VEHICLE_COMPATIBILITY = "vehicle_compatibility"
    PRODUCT_NAME = "product_name"
    GENERAL = "general"


class MatchType(str, Enum):
    """Specificity of a compatibility record (strongest first)"""

    SPECIFIC = "specific"
    MODEL = "model"
    MAKE_YEAR = "make_year"
    MAKE = "make"
    YEAR = "year"


class VehicleInfo(BaseModel):
    """Vehicle attributes recognised in a query or given as a filter"""

    model_config = ConfigDict(frozen=True)

    year: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_string(cls, value):
        if value is None or value == "":
            return None
        return str(value).strip()

    @field_validator("make", "model", mode="before")
    @classmethod
    def _lowercase(cls, value):
        if value is None:
            return None
        value = str(value).strip().lower()
        return value or None

    @property
    def is_empty(self) -> bool:
        return not (self.year or self.make or self.model)

    def as_text(self) -> str:
        """'2016 toyota rav-4' style string of the populated fields"""
        return " ".join(part for part in (self.year, self.make, self.model) if part)


class ParsedQuery(BaseModel):
    """Structured extraction of a raw search string"""

    model_config = ConfigDict(frozen=True)

    vehicle_info: VehicleInfo = Field(default_factory=VehicleInfo)
    product_terms: Tuple[str, ...] = ()
    part_numbers: Tuple[str, ...] = ()
    original_query: str = ""
    has_vehicle_info: bool = False
    has_part_number: bool = False
    search_type: SearchType = SearchType.GENERAL

    @classmethod
    def empty(cls) -> "ParsedQuery":
        """Canonical result for empty or unusable input"""
        return cls()


class VehicleDescriptor(BaseModel):
    """One (year, make, model, match_type) compatibility record"""

    model_config = ConfigDict(frozen=True)

    year: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    match_type: Optional[MatchType] = None

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_string(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    @property
    def identity(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        """De-duplication key; None is distinct from any populated value"""
        return (self.year, self.make, self.model)


class CatalogItem(BaseModel):
    """Catalog Store item record"""

    id: str
    name: str
    description: Optional[str] = None
    short_description: Optional[str] = None
    sku: Optional[str] = None
    part_number: Optional[str] = None
    price: Optional[float] = None
    discount_price: Optional[float] = None
    stock_quantity: int = 0
    condition: Optional[str] = None
    status: str = "approved"
    is_active: bool = True
    dealer_id: Optional[str] = None
    category_id: Optional[str] = None
    brand_id: Optional[str] = None
    supplier_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    compatibility: Optional[List[VehicleDescriptor]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ScoredItem(BaseModel):
    """Catalog item with its relevance score for one search"""

    item: CatalogItem
    relevance_score: float = Field(default=0.0, ge=0.0)
    vehicle_compatibility: List[VehicleDescriptor] = Field(default_factory=list)


class SearchFilters(BaseModel):
    """The filter bag accepted by QueryOrchestrator.search"""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "search": "2016 toyota rav4 brake pads",
                "vehicle": {"year": "2016", "make": "toyota", "model": "rav-4"},
                "category": "brakes",
                "minPrice": 20.0,
                "maxPrice": 150.0,
                "inStock": True,
                "sortBy": "relevance",
                "page": 1,
                "limit": 20
            }
        }
    )

    search: Optional[str] = None
    vehicle: Optional[VehicleInfo] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    brand: Optional[str] = None
    dealer: Optional[str] = None
    supplier: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[float] = Field(default=None, alias="minPrice")
    max_price: Optional[float] = Field(default=None, alias="maxPrice")
    in_stock: bool = Field(default=False, alias="inStock")
    sort_by: Optional[str] = Field(default=None, alias="sortBy")
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)

    @field_validator("vehicle", mode="after")
    @classmethod
    def _drop_empty_vehicle(cls, value: Optional[VehicleInfo]):
        if value is not None and value.is_empty:
            return None
        return value

    @property
    def has_search(self) -> bool:
        return bool(self.search and self.search.strip())

    def without_vehicle(self) -> "SearchFilters":
        """Same filters with the vehicle constraint dropped"""
        return self.model_copy(update={"vehicle": None})


class SearchResponse(BaseModel):
    """Output of QueryOrchestrator.search"""

    items: List[ScoredItem] = Field(default_factory=list)
    total_count: int = 0
    applied_filters: Dict[str, Any] = Field(default_factory=dict)
    parsed_query: Optional[ParsedQuery] = None
    has_more: bool = False
    from_cache: bool = False
    fallback_applied: bool = Field(
        default=False,
        description="True when the vehicle constraint was dropped to find results"
    )
    degraded: bool = Field(
        default=False,
        description="True when the primary fetch failed and the fallback was served instead"
    )


class BatchUpdateResult(BaseModel):
    """Partial-success summary of a batch compatibility update"""

    updated: int = 0
    failed: int = 0
    failed_ids: List[str] = Field(default_factory=list)


class CacheEntry(BaseModel):
    """Single cached value with its expiry"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    value: Any
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
