"""
Maps a guarded SQL string onto calls against the generic row-store interface.

This is a lookup table of patterns, not a SQL parser. Patterns are tried in
a fixed order and the first match decides the whole translation:

    1. count(*)           (+ WHERE literal filters / column comparisons)
    2. sum(<column>)
    3. avg(<column>)
    4. group by <column>
    5. WHERE ...          (+ ORDER BY / LIMIT)
    6. order by <column>  (+ LIMIT)
    7. limit <n>
    8. anything else      -> every row, unfiltered

Matching is case-insensitive; literal values keep their original case.
Column names must exist in the inventory schema, otherwise the pattern does
not match and the next one is tried.
"""

import logging
import re
from typing import Any, List, Optional, Sequence, Tuple

from inventory_insight.core.services.inventory_backend import ColumnFilter, InventoryBackend, RowQuery
from inventory_insight.inventory.schema import is_column
from inventory_insight.nl_query.aggregator import (
    aggregate, all_of, avg_column, compare_columns, group_rows, sort_rows, sum_column,
)
from inventory_insight.nl_query.messages import (
    BoundParameters, ColumnComparison, QueryExecution, QueryIntent, QueryShape,
)
from inventory_insight.nl_query.metrics import BACKEND_CALLS, QUERY_SHAPES, UNRECOGNIZED_SHAPES

logger = logging.getLogger(__name__)

# optional table qualifier and double quotes around an identifier
IDENT = r'(?:"?\w+"?\.)?"?(\w+)"?'

COUNT_PATTERN = re.compile(r"count\s*\(\s*\*\s*\)", re.IGNORECASE)
SUM_PATTERN = re.compile(r"\bsum\s*\(\s*" + IDENT + r"\s*\)", re.IGNORECASE)
AVG_PATTERN = re.compile(r"\bavg\s*\(\s*" + IDENT + r"\s*\)", re.IGNORECASE)
GROUP_BY_PATTERN = re.compile(r"\bgroup\s+by\s+" + IDENT, re.IGNORECASE)
WHERE_PATTERN = re.compile(
    r"\bwhere\b(.*?)(?=\bgroup\s+by\b|\border\s+by\b|\blimit\b|\bhaving\b|;|$)",
    re.IGNORECASE | re.DOTALL,
)
ORDER_BY_PATTERN = re.compile(r"\border\s+by\s+" + IDENT + r"(?:\s+(asc|desc)\b)?", re.IGNORECASE)
LIMIT_PATTERN = re.compile(r"\blimit\s+(\d+)", re.IGNORECASE)
SELECT_LIST_PATTERN = re.compile(r"^\s*select\s+(?:distinct\s+)?(.*?)\s+from\b", re.IGNORECASE | re.DOTALL)

# " and " only where an even number of quotes follows, i.e. outside '...'
_AND_SPLIT = re.compile(r"\s+and\s+(?=(?:[^']*'[^']*')*[^']*$)", re.IGNORECASE | re.DOTALL)
_BOUND = r"('(?:[^']|'')*'|[-+]?\d+(?:\.\d+)?)"
_BETWEEN = re.compile(r"\b" + IDENT + r"\s+(not\s+)?between\s+" + _BOUND + r"\s+and\s+" + _BOUND, re.IGNORECASE)
_NULL_CHECK = re.compile(r"^" + IDENT + r"\s+is\s+(not\s+)?null$", re.IGNORECASE)
_LIKE = re.compile(r"^" + IDENT + r"\s+(i?like)\s+'((?:[^']|'')*)'$", re.IGNORECASE)
_COMPARISON = re.compile(r"^" + IDENT + r"\s*(<=|>=|<>|!=|==|=|<|>)\s*(.+)$", re.IGNORECASE | re.DOTALL)
_STRING_LITERAL = re.compile(r"^'((?:[^']|'')*)'$", re.DOTALL)
_NUMBER_LITERAL = re.compile(r"^[-+]?\d+(\.\d+)?$")
_IDENTIFIER = re.compile(r"^" + IDENT + r"$")
_PROJECTION_ITEM = re.compile(r"^" + IDENT + r"(?:\s+as\s+\w+)?$", re.IGNORECASE)

_OPERATORS = {"=": "eq", "==": "eq", "!=": "neq", "<>": "neq", "<": "lt", "<=": "lte", ">": "gt", ">=": "gte"}

_UNPARSED = object()


def _known_column(name: Optional[str]) -> Optional[str]:
    if name and is_column(name):
        return name.lower()
    return None


def _parse_literal(text: str) -> Any:
    text = text.strip()
    string_match = _STRING_LITERAL.match(text)
    if string_match:
        return string_match.group(1).replace("''", "'")
    if _NUMBER_LITERAL.match(text):
        return float(text) if "." in text else int(text)
    if text.lower() in ("true", "false"):
        return text.lower() == "true"
    return _UNPARSED


def parse_condition(condition: str):
    """
    One WHERE condition -> ColumnFilter, ColumnComparison, or None when the
    condition is not one of the supported forms.
    """
    condition = condition.strip()
    while condition.startswith("(") and condition.endswith(")"):
        condition = condition[1:-1].strip()

    null_match = _NULL_CHECK.match(condition)
    if null_match:
        column = _known_column(null_match.group(1))
        if column:
            return ColumnFilter(column, "not_null" if null_match.group(2) else "is_null")
        return None

    like_match = _LIKE.match(condition)
    if like_match:
        column = _known_column(like_match.group(1))
        if column:
            return ColumnFilter(column, like_match.group(2).lower(), like_match.group(3).replace("''", "'"))
        return None

    comparison_match = _COMPARISON.match(condition)
    if not comparison_match:
        return None

    column = _known_column(comparison_match.group(1))
    op = _OPERATORS[comparison_match.group(2)]
    rhs = comparison_match.group(3).strip()
    if not column:
        return None

    if rhs.lower() == "null" and op in ("eq", "neq"):
        return ColumnFilter(column, "is_null" if op == "eq" else "not_null")

    literal = _parse_literal(rhs)
    if literal is not _UNPARSED:
        return ColumnFilter(column, op, literal)

    identifier_match = _IDENTIFIER.match(rhs)
    if identifier_match:
        other = _known_column(identifier_match.group(1))
        if other:
            return ColumnComparison(column, op, other)
    return None


def _expand_between(match) -> str:
    column, negated, low, high = match.groups()
    if negated:
        # no OR support; leave it as one condition so it is reported unsupported
        return f"{column} not_between {low} {high}"
    return f"{column} >= {low} and {column} <= {high}"


def parse_where(sql: str) -> Tuple[List[ColumnFilter], List[ColumnComparison]]:
    filters: List[ColumnFilter] = []
    comparisons: List[ColumnComparison] = []

    where_match = WHERE_PATTERN.search(sql)
    if not where_match:
        return filters, comparisons

    where_text = _BETWEEN.sub(_expand_between, where_match.group(1).strip())
    for condition in _AND_SPLIT.split(where_text):
        if not condition.strip():
            continue
        parsed = parse_condition(condition)
        if isinstance(parsed, ColumnFilter):
            filters.append(parsed)
        elif isinstance(parsed, ColumnComparison):
            comparisons.append(parsed)
        else:
            logger.warning(f"[SQL MAPPER] ⚠ Ignoring unsupported WHERE condition: {condition.strip()!r}")
    return filters, comparisons


def parse_projection(sql: str) -> Optional[List[str]]:
    """Selected columns, or None for `*` / anything that is not plain columns."""
    select_match = SELECT_LIST_PATTERN.match(sql)
    if not select_match:
        return None
    select_list = select_match.group(1).strip()
    if select_list == "*":
        return None

    columns = []
    for item in select_list.split(","):
        item_match = _PROJECTION_ITEM.match(item.strip())
        column = _known_column(item_match.group(1)) if item_match else None
        if not column:
            return None
        if column not in columns:
            columns.append(column)
    return columns


def _unique(names: Sequence[str]) -> List[str]:
    seen = []
    for name in names:
        if name not in seen:
            seen.append(name)
    return seen


class SqlCallMapper:
    """Recognizes a SQL shape and runs it against an inventory backend."""

    def __init__(self, backend: InventoryBackend):
        self.backend = backend

    # ------------------------------------------------------------------
    # recognition
    # ------------------------------------------------------------------

    def parse(self, sql: Optional[str], raw_text: str = "") -> QueryIntent:
        sql = sql or ""
        intent = QueryIntent(raw_text=raw_text, candidate_sql=sql)
        params = intent.parameters

        if COUNT_PATTERN.search(sql):
            params.filters, params.comparisons = parse_where(sql)
            intent.shape = QueryShape.COUNT
            return intent

        for shape, pattern in ((QueryShape.SUM, SUM_PATTERN),
                               (QueryShape.AVG, AVG_PATTERN),
                               (QueryShape.GROUP_BY, GROUP_BY_PATTERN)):
            match = pattern.search(sql)
            column = _known_column(match.group(1)) if match else None
            if column:
                params.column = column
                intent.shape = shape
                return intent

        params.filters, params.comparisons = parse_where(sql)
        params.projection = parse_projection(sql)

        order_match = ORDER_BY_PATTERN.search(sql)
        if order_match and _known_column(order_match.group(1)):
            params.sort_column = order_match.group(1).lower()
            params.descending = (order_match.group(2) or "").lower() == "desc"

        limit_match = LIMIT_PATTERN.search(sql)
        if limit_match:
            params.limit = int(limit_match.group(1))

        if params.filters or params.comparisons:
            intent.shape = QueryShape.FILTERED_SELECT
        elif params.sort_column or params.limit is not None:
            intent.shape = QueryShape.ORDERED_SELECT
        else:
            intent.shape = QueryShape.UNRECOGNIZED
        return intent

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------

    def _fetch(self, query: RowQuery, execution: QueryExecution):
        BACKEND_CALLS.labels(kind="fetch").inc()
        execution.backend_calls += 1
        logger.info(f"[SQL MAPPER] → {self.backend.table_name}.{query.describe()}")
        return self.backend.fetch(query)

    def _count(self, filters: Sequence[ColumnFilter], execution: QueryExecution) -> int:
        BACKEND_CALLS.labels(kind="count").inc()
        execution.backend_calls += 1
        logger.info(f"[SQL MAPPER] → {self.backend.table_name}.count({len(filters)} filters)")
        return self.backend.count(filters)

    @staticmethod
    def _predicate(comparisons: Sequence[ColumnComparison]):
        return all_of([compare_columns(c.left, c.op, c.right) for c in comparisons])

    def execute(self, intent: QueryIntent) -> QueryExecution:
        execution = QueryExecution(intent=intent)
        params = intent.parameters
        shape = intent.shape
        QUERY_SHAPES.labels(shape=shape.value).inc()

        if shape == QueryShape.COUNT:
            if params.comparisons:
                # the row store cannot compare two columns: count client-side
                columns = _unique([name for c in params.comparisons for name in (c.left, c.right)])
                rows = self._fetch(RowQuery(columns=columns, filters=list(params.filters)), execution)
                execution.value = len(aggregate(rows, predicate=self._predicate(params.comparisons)))
                logger.info(f"[SQL MAPPER] ✓ Compared {len(rows)} rows client-side, {int(execution.value)} matched")
            else:
                execution.value = self._count(params.filters, execution)

        elif shape in (QueryShape.SUM, QueryShape.AVG):
            rows = self._fetch(RowQuery(columns=[params.column]), execution)
            if shape == QueryShape.SUM:
                execution.value = sum_column(rows, params.column)
            else:
                execution.value = avg_column(rows, params.column)

        elif shape == QueryShape.GROUP_BY:
            rows = self._fetch(RowQuery(columns=[params.column]), execution)
            groups = group_rows(rows, params.column)
            grouped = [{params.column: label, "count": len(members)} for label, members in groups.items()]
            execution.rows = sort_rows(grouped, "count", descending=True)

        elif shape == QueryShape.FILTERED_SELECT and params.comparisons:
            rows = self._fetch(RowQuery(filters=list(params.filters)), execution)
            rows = aggregate(
                rows,
                predicate=self._predicate(params.comparisons),
                sort_by=params.sort_column,
                descending=params.descending,
                limit=params.limit,
            )
            if params.projection:
                rows = [{c: r.get(c) for c in params.projection} for r in rows]
            execution.rows = rows

        elif shape in (QueryShape.FILTERED_SELECT, QueryShape.ORDERED_SELECT):
            execution.rows = self._fetch(RowQuery(
                columns=params.projection,
                filters=list(params.filters),
                order_by=params.sort_column,
                descending=params.descending,
                limit=params.limit,
            ), execution)

        else:
            UNRECOGNIZED_SHAPES.inc()
            logger.warning(
                f"[SQL MAPPER] ⚠ Unrecognized query shape, returning every row: {intent.candidate_sql!r}"
            )
            execution.rows = self._fetch(RowQuery(), execution)

        logger.info(f"[SQL MAPPER] ✓ {shape.value}: {len(execution.to_rows())} row(s), "
                    f"{execution.backend_calls} backend call(s)")
        return execution

    def run(self, sql: Optional[str], raw_text: str = "") -> QueryExecution:
        return self.execute(self.parse(sql, raw_text))
