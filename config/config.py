"""
Configuration for the auto parts search service
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Configuration class for the parts search orchestrator"""

    # ===== Base Directory =====

    BASE_DIR = Path(__file__).parent.parent.absolute()  # Project root (parent of config/)

    # ===== Catalog Store =====

    CATALOG_DB_PATH: str = os.getenv(
        "CATALOG_DB_PATH",
        str(BASE_DIR / "data" / "databases" / "catalog.db")
    )

    # ===== Caching Configuration =====

    # Search results are short lived, single items a little longer
    SEARCH_CACHE_TTL: int = int(os.getenv("SEARCH_CACHE_TTL", "300"))   # 5 minutes
    ITEM_CACHE_TTL: int = int(os.getenv("ITEM_CACHE_TTL", "300"))

    # ===== Query Parameters =====

    DEFAULT_PAGE_LIMIT: int = int(os.getenv("DEFAULT_PAGE_LIMIT", "50"))
    SUGGESTION_LIMIT: int = 8
    POPULAR_SEARCH_LIMIT: int = 10
    MIN_SUGGESTION_QUERY_LENGTH: int = 2

    # Only approved + active items are ever returned
    REQUIRED_ITEM_STATUS: str = "approved"

    # ===== Vehicle Year Bounds =====

    MIN_VEHICLE_YEAR: int = 1990
    YEAR_LOOKAHEAD: int = 2             # currentYear + 2 is still a valid model year

    # ===== Relevance Weights =====

    BASELINE_SCORE: float = 1.0

    # Part number matches
    PART_NUMBER_EXACT_WEIGHT: float = 15.0
    SKU_EXACT_WEIGHT: float = 12.0
    PART_NUMBER_PARTIAL_WEIGHT: float = 8.0
    SKU_PARTIAL_WEIGHT: float = 6.0
    PART_NUMBER_NAME_WEIGHT: float = 4.0
    PART_NUMBER_DESCRIPTION_WEIGHT: float = 2.0

    # Vehicle field matches (year / make / model)
    VEHICLE_NAME_WEIGHT: float = 3.0
    VEHICLE_DESCRIPTION_WEIGHT: float = 2.0
    VEHICLE_SHORT_DESCRIPTION_WEIGHT: float = 2.5
    VEHICLE_SKU_WEIGHT: float = 2.0
    YEAR_PART_NUMBER_WEIGHT: float = 2.5

    # Compatibility list matches
    COMPATIBILITY_FIELD_WEIGHT: float = 3.0
    COMPATIBILITY_PERFECT_BONUS: float = 5.0

    # Product term matches
    TERM_NAME_WEIGHT: float = 2.0
    TERM_DESCRIPTION_WEIGHT: float = 1.0
    TERM_SHORT_DESCRIPTION_WEIGHT: float = 1.5
    TERM_SKU_WEIGHT: float = 1.5
    TERM_PART_NUMBER_WEIGHT: float = 1.5

    # ===== API Settings =====

    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "5001"))

    # ===== Debug Settings =====

    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"


# Singleton instance
config = Config()
