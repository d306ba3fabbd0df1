"""
SQL Catalog Store client for auto parts items
"""
import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from config.config import Config
from parts_search.database.predicates import OrderBy, PredicateSet, compile_order_by
from parts_search.errors import CatalogStoreError
from parts_search.models import CatalogItem, VehicleDescriptor

config = Config

ITEM_FIELDS = (
    "id", "name", "description", "short_description", "sku", "part_number",
    "price", "discount_price", "stock_quantity", "condition", "status",
    "is_active", "dealer_id", "category_id", "brand_id", "supplier_id",
    "subcategory_id", "compatibility", "created_at", "updated_at",
)


def _serialize_compatibility(descriptors: Optional[Iterable[VehicleDescriptor]]) -> Optional[str]:
    if descriptors is None:
        return None
    return json.dumps([descriptor.model_dump(mode="json") for descriptor in descriptors])


class CatalogClient:
    """Client for Catalog Store operations"""

    def __init__(self, db_path: str = None):
        """
        Initialize catalog client

        Args:
            db_path: Path to SQLite database file (":memory:" for a private in-memory store)
        """
        self.db_path = db_path or config.CATALOG_DB_PATH
        self._connection = None
        self._lock = threading.RLock()
        self._ensure_db_exists()

    def _ensure_db_exists(self):
        """Ensure database and schema exist"""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._execute_script("""
            CREATE TABLE IF NOT EXISTS catalog_items (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                short_description TEXT,
                sku TEXT,
                part_number TEXT,
                price REAL,
                discount_price REAL,
                stock_quantity INTEGER NOT NULL DEFAULT 0,
                condition TEXT,
                status TEXT NOT NULL DEFAULT 'approved',
                is_active INTEGER NOT NULL DEFAULT 1,
                dealer_id TEXT,
                category_id TEXT,
                brand_id TEXT,
                supplier_id TEXT,
                subcategory_id TEXT,
                compatibility TEXT,
                created_at TEXT,
                updated_at TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_items_status ON catalog_items(status, is_active);
            CREATE INDEX IF NOT EXISTS idx_items_category ON catalog_items(category_id);
            CREATE INDEX IF NOT EXISTS idx_items_part_number ON catalog_items(part_number);
        """)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection"""
        if self._connection is None:
            # Use check_same_thread=False to allow multi-threaded access
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def close(self):
        """Close database connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ===== Statement execution =====

    def _execute_script(self, script: str):
        with self._lock:
            try:
                conn = self._get_connection()
                conn.executescript(script)
                conn.commit()
            except sqlite3.Error as e:
                raise CatalogStoreError(f"Schema setup failed: {e}") from e

    def _query(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            try:
                cursor = self._get_connection().execute(sql, list(params))
                return cursor.fetchall()
            except sqlite3.Error as e:
                raise CatalogStoreError(f"Catalog query failed: {e}", statement=sql) from e

    def _write(self, sql: str, rows: Sequence[Sequence[Any]]) -> List[int]:
        """Run one statement per parameter row in a single transaction; returns rowcounts"""
        with self._lock:
            conn = self._get_connection()
            try:
                counts = [conn.execute(sql, list(params)).rowcount for params in rows]
                conn.commit()
                return counts
            except sqlite3.Error as e:
                conn.rollback()
                raise CatalogStoreError(f"Catalog write failed: {e}", statement=sql) from e

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> CatalogItem:
        # Convert row to a mutable dictionary
        item_data = dict(row)

        # Deserialize JSON strings back to lists
        raw = item_data.get("compatibility")
        if raw and isinstance(raw, str):
            try:
                compatibility = json.loads(raw)
            except ValueError as e:
                raise CatalogStoreError(f"Malformed compatibility for item {item_data.get('id')}: {e}") from e
            # A single descriptor object is stored by some writers
            if isinstance(compatibility, dict):
                compatibility = [compatibility]
            item_data["compatibility"] = compatibility
        elif not raw:
            item_data["compatibility"] = None

        try:
            return CatalogItem(**item_data)
        except ValidationError as e:
            raise CatalogStoreError(f"Invalid catalog row for item {item_data.get('id')}: {e}") from e

    # ===== Reads =====

    def fetch_items(
        self,
        predicates: PredicateSet,
        order_by: Optional[Sequence[OrderBy]] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[CatalogItem]:
        """
        Fetch items matching predicates

        Args:
            predicates: AND-combined filters
            order_by: Sort columns, applied in order
            offset: Rows to skip
            limit: Max rows (None = all)

        Returns:
            List of CatalogItem
        """
        where, params = predicates.compile()
        sql = f"SELECT * FROM catalog_items WHERE {where}"

        order_sql = compile_order_by(order_by)
        if order_sql:
            sql += f" ORDER BY {order_sql}"

        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params += [limit, offset]
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(offset)

        if config.DEBUG:
            print("\n=== Catalog Fetch ===")
            print(f"  SQL: {sql}")
            print(f"  Params: {params}")

        return [self._row_to_item(row) for row in self._query(sql, params)]

    def count_items(self, predicates: PredicateSet) -> int:
        """Number of items matching predicates"""
        where, params = predicates.compile()
        rows = self._query(f"SELECT COUNT(*) AS total FROM catalog_items WHERE {where}", params)
        return int(rows[0]["total"]) if rows else 0

    def get_item_by_id(self, item_id: str, predicates: Optional[PredicateSet] = None) -> Optional[CatalogItem]:
        """
        Get item by ID, optionally constrained by extra predicates

        Args:
            item_id: Item ID
            predicates: Extra filters (e.g. approved/active)

        Returns:
            CatalogItem or None if not found
        """
        scoped = predicates.copy() if predicates is not None else PredicateSet()
        scoped.eq("id", item_id)
        items = self.fetch_items(scoped, limit=1)
        return items[0] if items else None

    # ===== Writes =====

    def insert_items(self, items: Iterable[CatalogItem]) -> int:
        """
        Insert or replace items

        Args:
            items: Items to store

        Returns:
            Number of rows written
        """
        now = datetime.now().isoformat()
        rows = []
        for item in items:
            data = item.model_dump(mode="json")
            data["compatibility"] = _serialize_compatibility(item.compatibility)
            data["is_active"] = 1 if item.is_active else 0
            data["created_at"] = data.get("created_at") or now
            data["updated_at"] = data.get("updated_at") or data["created_at"]
            rows.append([data[field] for field in ITEM_FIELDS])

        placeholders = ",".join("?" * len(ITEM_FIELDS))
        counts = self._write(
            f"INSERT OR REPLACE INTO catalog_items ({', '.join(ITEM_FIELDS)}) VALUES ({placeholders})",
            rows
        )
        return sum(counts)

    def insert_item(self, item: CatalogItem) -> int:
        return self.insert_items([item])

    def upsert_compatibility(self, item_id: str, descriptors: Iterable[VehicleDescriptor]) -> bool:
        """
        Persist a compatibility list onto an item

        Args:
            item_id: Item ID
            descriptors: Full replacement list

        Returns:
            True if the item exists and was updated
        """
        return self.batch_upsert_compatibility({item_id: list(descriptors)}) == [item_id]

    def batch_upsert_compatibility(self, updates: Dict[str, List[VehicleDescriptor]]) -> List[str]:
        """
        Persist several compatibility lists in one transaction

        Args:
            updates: item_id -> full replacement list

        Returns:
            IDs that were updated (unknown ids are skipped)
        """
        if not updates:
            return []
        now = datetime.now().isoformat()
        rows = [
            (_serialize_compatibility(descriptors), now, item_id)
            for item_id, descriptors in updates.items()
        ]
        counts = self._write(
            "UPDATE catalog_items SET compatibility = ?, updated_at = ? WHERE id = ?",
            rows
        )
        return [row[2] for row, count in zip(rows, counts) if count > 0]
