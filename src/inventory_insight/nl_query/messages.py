"""
Data carried through one question-answering request.

A request collects a call stack of step entries (name, timing, status,
metadata) so the API can show how an answer was produced.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from inventory_insight.core.services.inventory_backend import ColumnFilter


class QueryShape(str, Enum):
    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    GROUP_BY = "group_by"
    FILTERED_SELECT = "filtered_select"
    ORDERED_SELECT = "ordered_select"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ColumnComparison:
    """`left <op> right` between two columns of the same row."""
    left: str
    op: str  # lt | lte | gt | gte | eq | neq
    right: str


@dataclass
class BoundParameters:
    column: Optional[str] = None              # aggregate / group-by column
    projection: Optional[List[str]] = None    # None means every column
    filters: List[ColumnFilter] = field(default_factory=list)
    comparisons: List[ColumnComparison] = field(default_factory=list)
    sort_column: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "column": self.column,
            "projection": self.projection,
            "filters": [{"column": f.column, "op": f.op, "value": f.value} for f in self.filters],
            "comparisons": [{"left": c.left, "op": c.op, "right": c.right} for c in self.comparisons],
            "sort_column": self.sort_column,
            "descending": self.descending,
            "limit": self.limit,
        }


@dataclass
class QueryIntent:
    raw_text: str
    candidate_sql: Optional[str]
    shape: QueryShape = QueryShape.UNRECOGNIZED
    parameters: BoundParameters = field(default_factory=BoundParameters)


@dataclass
class QueryExecution:
    """Canonical result of running one guarded SQL string."""
    intent: QueryIntent
    rows: List[Dict[str, Any]] = field(default_factory=list)
    value: Optional[float] = None
    backend_calls: int = 0

    def to_rows(self) -> List[Dict[str, Any]]:
        """Rows in the shape dashboard consumers expect, aliases included."""
        shape = self.intent.shape
        column = self.intent.parameters.column
        if shape == QueryShape.COUNT:
            return [count_row(int(self.value or 0))]
        if shape == QueryShape.SUM:
            return [sum_row(column, self.value or 0.0)]
        if shape == QueryShape.AVG:
            return [avg_row(column, self.value or 0.0)]
        return self.rows


# ---------------------------------------------------------------------------
# Alias adapters. Older dashboard widgets read aggregate results under
# different keys; each adapter serves one family of those readers.
# ---------------------------------------------------------------------------

def count_row(count: int) -> Dict[str, Any]:
    return {"count": count, "total_items": count, "low_stock_items": count, "out_of_stock": count}


def sum_row(column: str, value: float) -> Dict[str, Any]:
    row = {f"sum_{column}": value}
    if column == "total_stock_value":
        row["total_value"] = value
    return row


def avg_row(column: str, value: float) -> Dict[str, Any]:
    row = {f"avg_{column}": value}
    if column == "quantity":
        row["avg_stock_level"] = value
    return row


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------

CHART_TYPES = ("bar", "line", "pie", "doughnut")
CHART_AGGREGATES = ("count", "sum", "avg")


@dataclass
class ChartDirective:
    chart_type: str = "bar"
    group_by: str = ""
    aggregate: str = "count"
    aggregate_column: Optional[str] = None
    sort: Optional[str] = None  # asc | desc | None keeps group order
    limit: int = 10
    title: str = ""
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "chart_type": self.chart_type,
            "group_by": self.group_by,
            "aggregate": self.aggregate,
            "aggregate_column": self.aggregate_column,
            "sort": self.sort,
            "limit": self.limit,
            "title": self.title,
            "description": self.description,
        }


@dataclass
class ChartSeries:
    directive: ChartDirective
    points: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "chart_type": self.directive.chart_type,
            "title": self.directive.title,
            "description": self.directive.description,
            "directive": self.directive.to_dict(),
            "points": self.points,
        }


@dataclass
class ChartAnalysis:
    insights: str
    charts: List[ChartSeries] = field(default_factory=list)
    degraded: bool = False


# ---------------------------------------------------------------------------
# Request tracing and the produced answer
# ---------------------------------------------------------------------------

@dataclass
class CallStackEntry:
    step_name: str
    timestamp: str
    duration_ms: Optional[float] = None
    status: str = "success"  # success, error, degraded
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "step_name": self.step_name,
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
            "status": self.status,
            "metadata": self.metadata,
        }


@dataclass
class ErrorInfo:
    type: str
    message: str
    keyword: Optional[str] = None

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message, "keyword": self.keyword}


@dataclass
class AnswerResult:
    question: str
    sql: Optional[str] = None
    shape: Optional[QueryShape] = None
    prose: str = ""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    charts: List[ChartSeries] = field(default_factory=list)
    chart_insights: Optional[str] = None
    degraded: List[str] = field(default_factory=list)
    error: Optional[ErrorInfo] = None
    call_stack: List[CallStackEntry] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    def add_to_call_stack(self, step_name: str, started_at: Optional[float] = None,
                          status: str = "success", **metadata):
        duration_ms = None
        if started_at is not None:
            duration_ms = round((time.time() - started_at) * 1000, 2)
        self.call_stack.append(CallStackEntry(
            step_name=step_name,
            timestamp=datetime.now(timezone.utc).isoformat(),
            duration_ms=duration_ms,
            status=status,
            metadata=metadata,
        ))

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "question": self.question,
            "sql": self.sql,
            "shape": self.shape.value if self.shape else None,
            "prose": self.prose,
            "rows": self.rows,
            "charts": [c.to_dict() for c in self.charts],
            "chart_insights": self.chart_insights,
            "degraded": list(self.degraded),
            "error": self.error.to_dict() if self.error else None,
            "call_stack": [entry.to_dict() for entry in self.call_stack],
        }
