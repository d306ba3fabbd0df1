"""
Predicate builder for Catalog Store queries

Conditions compile to parameterised SQLite WHERE fragments. Column and JSON
key names are whitelisted; values are always bound parameters.
"""
from typing import Any, Iterable, List, NamedTuple, Optional, Sequence, Tuple

ITEM_COLUMNS = frozenset({
    "id", "name", "description", "short_description", "sku", "part_number",
    "price", "discount_price", "stock_quantity", "condition", "status",
    "is_active", "dealer_id", "category_id", "brand_id", "supplier_id",
    "subcategory_id", "compatibility", "created_at", "updated_at",
})

COMPATIBILITY_KEYS = frozenset({"year", "make", "model", "match_type"})


class Condition(NamedTuple):
    """One compiled WHERE fragment with its bound parameters"""

    sql: str
    params: Tuple[Any, ...] = ()


class OrderBy(NamedTuple):
    column: str
    descending: bool = False
    nulls_last: bool = True


def _column(name: str) -> str:
    if name not in ITEM_COLUMNS:
        raise ValueError(f"Unknown column: {name}")
    return name


def _as_json_array(name: str) -> str:
    column = _column(name)
    return f"CASE json_type({column}) WHEN 'object' THEN json_array(json({column})) ELSE {column} END"


def _like_pattern(fragment: str) -> str:
    escaped = fragment.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def eq(column: str, value: Any) -> Condition:
    if value is None:
        return Condition(f"{_column(column)} IS NULL")
    return Condition(f"{_column(column)} = ?", (value,))


def gt(column: str, value: Any) -> Condition:
    return Condition(f"{_column(column)} > ?", (value,))


def gte(column: str, value: Any) -> Condition:
    return Condition(f"{_column(column)} >= ?", (value,))


def lt(column: str, value: Any) -> Condition:
    return Condition(f"{_column(column)} < ?", (value,))


def lte(column: str, value: Any) -> Condition:
    return Condition(f"{_column(column)} <= ?", (value,))


def ilike(column: str, fragment: str) -> Condition:
    """Case-insensitive substring match"""
    return Condition(
        f"LOWER(COALESCE({_column(column)}, '')) LIKE ? ESCAPE '\\'",
        (_like_pattern(fragment),),
    )


def json_contains(key: str, value: str, partial: bool = False, column: str = "compatibility") -> Condition:
    """
    Some element of a JSON array column has key equal to (or containing) value

    A column holding a single JSON object is treated as a one-element array.

    Example:
        json_contains("make", "toyota") matches
        '[{"year": "2016", "make": "toyota", "model": "rav-4"}]'
    """
    if key not in COMPATIBILITY_KEYS:
        raise ValueError(f"Unknown compatibility key: {key}")
    if partial:
        test, param = "LIKE ? ESCAPE '\\'", _like_pattern(str(value))
    else:
        test, param = "= ?", str(value).lower()
    return Condition(
        f"EXISTS (SELECT 1 FROM json_each({_as_json_array(column)}) "
        f"WHERE LOWER(CAST(json_extract(json_each.value, '$.{key}') AS TEXT)) {test})",
        (param,),
    )


def or_(*conditions: Condition) -> Condition:
    """Disjunction of conditions; an empty disjunction matches nothing"""
    conditions = [condition for condition in conditions if condition is not None]
    if not conditions:
        return Condition("0")
    if len(conditions) == 1:
        return conditions[0]
    sql = " OR ".join(f"({condition.sql})" for condition in conditions)
    params: Tuple[Any, ...] = ()
    for condition in conditions:
        params += condition.params
    return Condition(f"({sql})", params)


def and_(*conditions: Condition) -> Condition:
    conditions = [condition for condition in conditions if condition is not None]
    if not conditions:
        return Condition("1")
    sql = " AND ".join(f"({condition.sql})" for condition in conditions)
    params: Tuple[Any, ...] = ()
    for condition in conditions:
        params += condition.params
    return Condition(f"({sql})", params)


class PredicateSet:
    """
    AND-combined list of conditions

    Builder methods return self so filters chain:
        PredicateSet().eq("status", "approved").gte("price", 10)
    """

    def __init__(self, conditions: Optional[Iterable[Condition]] = None):
        self.conditions: List[Condition] = list(conditions or [])

    def where(self, condition: Condition) -> "PredicateSet":
        self.conditions.append(condition)
        return self

    def eq(self, column: str, value: Any) -> "PredicateSet":
        return self.where(eq(column, value))

    def gt(self, column: str, value: Any) -> "PredicateSet":
        return self.where(gt(column, value))

    def gte(self, column: str, value: Any) -> "PredicateSet":
        return self.where(gte(column, value))

    def lt(self, column: str, value: Any) -> "PredicateSet":
        return self.where(lt(column, value))

    def lte(self, column: str, value: Any) -> "PredicateSet":
        return self.where(lte(column, value))

    def ilike(self, column: str, fragment: str) -> "PredicateSet":
        return self.where(ilike(column, fragment))

    def json_contains(self, key: str, value: str, partial: bool = False) -> "PredicateSet":
        return self.where(json_contains(key, value, partial=partial))

    def or_(self, *conditions: Condition) -> "PredicateSet":
        return self.where(or_(*conditions))

    def copy(self) -> "PredicateSet":
        return PredicateSet(self.conditions)

    def compile(self) -> Tuple[str, List[Any]]:
        """
        Compile to a WHERE clause body

        Returns:
            (sql, params); "1" with no params when there are no conditions
        """
        if not self.conditions:
            return "1", []
        combined = and_(*self.conditions)
        return combined.sql, list(combined.params)

    def __len__(self) -> int:
        return len(self.conditions)

    def __eq__(self, other) -> bool:
        return isinstance(other, PredicateSet) and self.compile() == other.compile()

    def __repr__(self) -> str:
        sql, params = self.compile()
        return f"PredicateSet({sql!r}, {params!r})"


def compile_order_by(order_by: Optional[Sequence[OrderBy]]) -> str:
    """ORDER BY body (without the keywords), or "" when no ordering"""
    if not order_by:
        return ""
    parts = []
    for order in order_by:
        column = _column(order.column)
        if order.nulls_last:
            parts.append(f"CASE WHEN {column} IS NULL THEN 1 ELSE 0 END")
        parts.append(f"{column} {'DESC' if order.descending else 'ASC'}")
    return ", ".join(parts)
