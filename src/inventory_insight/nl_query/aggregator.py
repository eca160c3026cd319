"""
In-memory post-processing for query shapes the row store cannot express
(column-vs-column predicates, grouping, sums and averages).

Everything here is pure and synchronous: rows in, rows out.
"""

import operator
from typing import Any, Callable, Dict, List, Optional, Sequence

from inventory_insight.inventory.schema import to_number

Row = Dict[str, Any]
Predicate = Callable[[Row], bool]

_COMPARATORS = {
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
    "eq": operator.eq,
    "neq": operator.ne,
}


def _sort_key(value: Any):
    if isinstance(value, bool):
        return (0, float(value))
    if isinstance(value, (int, float)):
        return (0, float(value))
    try:
        return (0, float(str(value).strip()))
    except ValueError:
        return (1, str(value))


def sort_rows(rows: Sequence[Row], column: str, descending: bool = False) -> List[Row]:
    """
    Stable sort by one field. Numbers order before text; rows missing the
    field always go last, whichever the direction.
    """
    present = [r for r in rows if r.get(column) is not None]
    missing = [r for r in rows if r.get(column) is None]
    present = sorted(present, key=lambda r: _sort_key(r.get(column)), reverse=descending)
    return present + missing


def aggregate(rows: Sequence[Row], predicate: Optional[Predicate] = None,
              sort_by: Optional[str] = None, descending: bool = False,
              limit: Optional[int] = None) -> List[Row]:
    """Filter, then sort, then truncate."""
    result = [r for r in rows if predicate(r)] if predicate else list(rows)
    if sort_by:
        result = sort_rows(result, sort_by, descending=descending)
    if limit is not None:
        result = result[:max(limit, 0)]
    return result


def compare_columns(left: str, op: str, right: str) -> Predicate:
    """Row predicate for `left <op> right`; absent values count as 0."""
    compare = _COMPARATORS[op]

    def predicate(row: Row) -> bool:
        return compare(to_number(row.get(left)), to_number(row.get(right)))

    return predicate


def all_of(predicates: Sequence[Predicate]) -> Optional[Predicate]:
    if not predicates:
        return None
    if len(predicates) == 1:
        return predicates[0]
    return lambda row: all(p(row) for p in predicates)


def group_label(value: Any) -> str:
    if value is None:
        return "Unknown"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def group_rows(rows: Sequence[Row], column: str) -> Dict[str, List[Row]]:
    """Group rows by the display label of one field, keeping first-seen order."""
    groups: Dict[str, List[Row]] = {}
    for row in rows:
        groups.setdefault(group_label(row.get(column)), []).append(row)
    return groups


def sum_column(rows: Sequence[Row], column: str) -> float:
    return sum(to_number(r.get(column)) for r in rows)


def avg_column(rows: Sequence[Row], column: str) -> float:
    if not rows:
        return 0.0
    return sum_column(rows, column) / len(rows)
