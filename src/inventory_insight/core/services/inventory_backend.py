"""
Generic row-store interface the question pipeline runs against.

The interface is deliberately small: column projection, single-column
filters against a literal, one sort column, a row limit, and an exact row
count. Column-vs-column predicates are not expressible here; callers fetch
the rows and filter them locally.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from inventory_insight.core.errors import BackendError
from inventory_insight.inventory.schema import to_number
from inventory_insight.nl_query.aggregator import sort_rows

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

FILTER_OPERATORS = ("eq", "neq", "lt", "lte", "gt", "gte", "like", "ilike", "is_null", "not_null")


@dataclass(frozen=True)
class ColumnFilter:
    column: str
    op: str
    value: Any = None

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass
class RowQuery:
    columns: Optional[Sequence[str]] = None  # None means every column
    filters: List[ColumnFilter] = field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    def describe(self) -> str:
        parts = [f"select({', '.join(self.columns) if self.columns else '*'})"]
        parts.extend(f"{f.op}({f.column}, {f.value!r})" for f in self.filters)
        if self.order_by:
            parts.append(f"order({self.order_by}, {'desc' if self.descending else 'asc'})")
        if self.limit is not None:
            parts.append(f"limit({self.limit})")
        return ".".join(parts)


class InventoryBackend(ABC):
    """A hosted (or local) table of inventory rows."""

    table_name: str = "Inventory"

    @abstractmethod
    def fetch(self, query: RowQuery) -> List[Row]:
        """Return the rows matching the query. Raises BackendError."""

    @abstractmethod
    def count(self, filters: Sequence[ColumnFilter] = ()) -> int:
        """Return the exact number of matching rows. Raises BackendError."""

    def fetch_all(self, columns: Optional[Sequence[str]] = None) -> List[Row]:
        return self.fetch(RowQuery(columns=columns))


# ---------------------------------------------------------------------------
# Supabase (hosted PostgREST table)
# ---------------------------------------------------------------------------

class SupabaseInventoryBackend(InventoryBackend):

    def __init__(self, client, table_name: str = "Inventory"):
        if client is None:
            raise BackendError("Supabase client is not configured")
        self.client = client
        self.table_name = table_name

    @staticmethod
    def _apply_filter(request, flt: ColumnFilter):
        if flt.op == "is_null":
            return request.is_(flt.column, "null")
        if flt.op == "not_null":
            return request.not_.is_(flt.column, "null")
        return getattr(request, flt.op)(flt.column, flt.value)

    def fetch(self, query: RowQuery) -> List[Row]:
        columns = ",".join(query.columns) if query.columns else "*"
        try:
            request = self.client.table(self.table_name).select(columns)
            for flt in query.filters:
                request = self._apply_filter(request, flt)
            if query.order_by:
                request = request.order(query.order_by, desc=query.descending)
            if query.limit is not None:
                request = request.limit(query.limit)
            response = request.execute()
        except Exception as e:
            logger.error(f"[SUPABASE] ✗ {query.describe()} failed: {e}")
            raise BackendError(f"Database query failed: {e}") from e

        return list(response.data or [])

    def count(self, filters: Sequence[ColumnFilter] = ()) -> int:
        try:
            request = self.client.table(self.table_name).select("*", count="exact", head=True)
            for flt in filters:
                request = self._apply_filter(request, flt)
            response = request.execute()
        except Exception as e:
            logger.error(f"[SUPABASE] ✗ count on {self.table_name} failed: {e}")
            raise BackendError(f"Database error: {e}") from e

        return int(response.count or 0)


# ---------------------------------------------------------------------------
# SQLAlchemy (any SQL database, used for local development)
# ---------------------------------------------------------------------------

class SqlInventoryBackend(InventoryBackend):

    def __init__(self, engine: Engine, table):
        self.engine = engine
        self.table = table
        self.table_name = table.name

    def _column(self, name: str):
        try:
            return self.table.c[name]
        except KeyError:
            raise BackendError(f"Column '{name}' does not exist on {self.table_name}")

    def _condition(self, flt: ColumnFilter):
        col = self._column(flt.column)
        if flt.op == "eq":
            return col == flt.value
        if flt.op == "neq":
            return col != flt.value
        if flt.op == "lt":
            return col < flt.value
        if flt.op == "lte":
            return col <= flt.value
        if flt.op == "gt":
            return col > flt.value
        if flt.op == "gte":
            return col >= flt.value
        if flt.op == "like":
            return col.like(flt.value)
        if flt.op == "ilike":
            return col.ilike(flt.value)
        if flt.op == "is_null":
            return col.is_(None)
        return col.is_not(None)

    def fetch(self, query: RowQuery) -> List[Row]:
        if query.columns:
            stmt = select(*[self._column(c) for c in query.columns])
        else:
            stmt = select(self.table)
        for flt in query.filters:
            stmt = stmt.where(self._condition(flt))
        if query.order_by:
            col = self._column(query.order_by)
            stmt = stmt.order_by(col.desc() if query.descending else col.asc())
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        try:
            with self.engine.connect() as conn:
                return [dict(row._mapping) for row in conn.execute(stmt)]
        except SQLAlchemyError as e:
            logger.error(f"[SQL BACKEND] ✗ {query.describe()} failed: {e}")
            raise BackendError(f"Database query failed: {e}") from e

    def count(self, filters: Sequence[ColumnFilter] = ()) -> int:
        stmt = select(func.count()).select_from(self.table)
        for flt in filters:
            stmt = stmt.where(self._condition(flt))
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(stmt).scalar() or 0)
        except SQLAlchemyError as e:
            logger.error(f"[SQL BACKEND] ✗ count on {self.table_name} failed: {e}")
            raise BackendError(f"Database error: {e}") from e


# ---------------------------------------------------------------------------
# In-memory (sample data when no hosted table is available)
# ---------------------------------------------------------------------------

def _like_to_regex(pattern: str, case_insensitive: bool) -> re.Pattern:
    regex = "".join(
        ".*" if ch == "%" else "." if ch == "_" else re.escape(ch)
        for ch in str(pattern)
    )
    return re.compile(f"^{regex}$", re.IGNORECASE | re.DOTALL if case_insensitive else re.DOTALL)


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value))
        return True
    except ValueError:
        return False


def matches_filter(row: Row, flt: ColumnFilter) -> bool:
    value = row.get(flt.column)
    if flt.op == "is_null":
        return value is None
    if flt.op == "not_null":
        return value is not None
    if flt.op in ("like", "ilike"):
        if value is None:
            return False
        return bool(_like_to_regex(flt.value, flt.op == "ilike").match(str(value)))
    if value is None:
        return False

    literal = flt.value
    if isinstance(literal, bool) or isinstance(value, bool):
        left, right = value, literal
        if isinstance(value, str):
            left = value.strip().lower() == "true"
    elif _is_numeric(literal) and _is_numeric(value):
        left, right = to_number(value), to_number(literal)
    else:
        left, right = str(value), str(literal)

    if flt.op == "eq":
        return left == right
    if flt.op == "neq":
        return left != right
    try:
        if flt.op == "lt":
            return left < right
        if flt.op == "lte":
            return left <= right
        if flt.op == "gt":
            return left > right
        return left >= right
    except TypeError:
        return False


class MemoryInventoryBackend(InventoryBackend):

    def __init__(self, rows: Sequence[Row], table_name: str = "Inventory"):
        self.rows = [dict(r) for r in rows]
        self.table_name = table_name

    def fetch(self, query: RowQuery) -> List[Row]:
        rows = [r for r in self.rows if all(matches_filter(r, f) for f in query.filters)]
        if query.order_by:
            rows = sort_rows(rows, query.order_by, descending=query.descending)
        if query.limit is not None:
            rows = rows[:query.limit]
        if query.columns:
            rows = [{c: r.get(c) for c in query.columns} for r in rows]
        else:
            rows = [dict(r) for r in rows]
        return rows

    def count(self, filters: Sequence[ColumnFilter] = ()) -> int:
        return sum(1 for r in self.rows if all(matches_filter(r, f) for f in filters))
