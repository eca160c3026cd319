"""
Chart suggestions for a result set.

Two phases: the oracle reads a sample of the rows and proposes up to three
chart directives; each directive is then computed locally against every
row (group, aggregate, round, drop non-positive, sort, truncate).
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from inventory_insight.nl_query.aggregator import avg_column, group_rows, sum_column
from inventory_insight.nl_query.messages import (
    CHART_AGGREGATES, CHART_TYPES, ChartAnalysis, ChartDirective, ChartSeries,
)
from inventory_insight.nl_query.metrics import DEGRADED_RESPONSES, LLM_FAILURES, LLM_REQUESTS
from inventory_insight.nl_query.utils import parse_json_reply, rows_to_json

logger = logging.getLogger(__name__)

CHART_FALLBACK_INSIGHT = "I analyzed your inventory data but encountered an issue generating visualizations."
MAX_CHARTS = 3
DEFAULT_CHART_LIMIT = 10

CHART_PROMPT = """You are an expert data visualization analyst. Analyze the provided inventory data and generate appropriate chart configurations based on the user's query.

User Query: "{question}"

Sample Inventory Data (first {sample_count} items): {sample}

Full Dataset Size: {total} items

Based on the user's query and the data structure, determine the most appropriate visualizations and return a JSON response with the following structure:

{{
  "insights": "A brief analysis of what the data shows relevant to the user's query",
  "charts": [
    {{
      "type": "pie|bar|line|doughnut",
      "title": "Chart Title",
      "description": "What this chart shows",
      "dataProcessing": {{
        "groupBy": "column_name_to_group_by",
        "aggregateBy": "count|sum|avg",
        "aggregateColumn": "column_name_to_aggregate (if not count)",
        "sortBy": "asc|desc",
        "limit": 10
      }}
    }}
  ]
}}

IMPORTANT: Ensure the column names in "groupBy" and "aggregateColumn" exactly match the column names in the sample data. Common columns include:
- item_name, brand, category, supplier_name for grouping
- quantity, sales_velocity, total_stock_value, selling_price, margin_percent for aggregation
- For supply chain optimization, focus on: supplier_name, restock_lead_days, stock_health, days_until_stockout, auto_reorder_enabled

Guidelines:
1. Choose chart types that best represent the data:
   - Pie/Doughnut: For categorical distributions, percentages
   - Bar: For comparisons, rankings, top items
   - Line: For trends over time, sequential data
2. Suggest 1-3 relevant charts maximum
3. Focus on insights that directly answer the user's query
4. Use column names that exist in the data
5. Return valid JSON only, no markdown formatting

Response:"""


def _parse_limit(value: Any) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return DEFAULT_CHART_LIMIT
    return limit if limit > 0 else DEFAULT_CHART_LIMIT


def directive_from_dict(raw: Dict[str, Any]) -> Optional[ChartDirective]:
    """Build a directive from one entry of the oracle's `charts` list."""
    if not isinstance(raw, dict):
        return None
    processing = raw.get("dataProcessing") or {}
    if not isinstance(processing, dict):
        return None

    group_by = str(processing.get("groupBy") or "").strip()
    if not group_by:
        return None

    chart_type = str(raw.get("type") or "bar").lower()
    aggregate = str(processing.get("aggregateBy") or "count").lower()
    sort = str(processing.get("sortBy") or "").lower() or None

    return ChartDirective(
        chart_type=chart_type if chart_type in CHART_TYPES else "bar",
        group_by=group_by,
        aggregate=aggregate if aggregate in CHART_AGGREGATES else "count",
        aggregate_column=processing.get("aggregateColumn") or None,
        sort=sort if sort in ("asc", "desc") else None,
        limit=_parse_limit(processing.get("limit", DEFAULT_CHART_LIMIT)),
        title=str(raw.get("title") or ""),
        description=str(raw.get("description") or ""),
    )


def build_series(rows: Sequence[Dict[str, Any]], directive: ChartDirective) -> List[Dict[str, Any]]:
    """Compute the `{label, value}` points of one chart against the full row set."""
    if not rows or directive.group_by not in rows[0]:
        return []

    aggregate = directive.aggregate
    if aggregate in ("sum", "avg") and not directive.aggregate_column:
        aggregate = "count"

    points = []
    for label, members in group_rows(rows, directive.group_by).items():
        if aggregate == "sum":
            value = sum_column(members, directive.aggregate_column)
        elif aggregate == "avg":
            value = avg_column(members, directive.aggregate_column)
        else:
            value = len(members)
        value = round(float(value), 2)
        if value > 0:
            points.append({"label": label, "value": value})

    if directive.sort in ("asc", "desc"):
        points.sort(key=lambda p: p["value"], reverse=directive.sort == "desc")
    return points[:directive.limit]


class ChartSynthesizer:

    def __init__(self, oracle, sample_size: int = 50):
        self.oracle = oracle
        self.sample_size = max(sample_size, 1)

    def plan_charts(self, rows: Sequence[Dict[str, Any]], question: str):
        """Phase 1. Returns (insights, directives, degraded); never raises."""
        sample = list(rows[:self.sample_size])
        prompt = CHART_PROMPT.format(
            question=question,
            sample_count=len(sample),
            sample=rows_to_json(sample, indent=2),
            total=len(rows),
        )
        LLM_REQUESTS.labels(component="chart_synthesizer", model=getattr(self.oracle, "model_name", "unknown")).inc()
        try:
            analysis = parse_json_reply(self.oracle.complete(prompt))
            if not isinstance(analysis, dict):
                raise ValueError(f"expected a JSON object, got {type(analysis).__name__}")
        except Exception as e:
            LLM_FAILURES.labels(component="chart_synthesizer").inc()
            DEGRADED_RESPONSES.labels(component="chart_synthesizer").inc()
            logger.error(f"[CHART SYNTHESIZER] ✗ Error analyzing data for charts: {e}")
            return CHART_FALLBACK_INSIGHT, [], True

        raw_charts = analysis.get("charts") or []
        if not isinstance(raw_charts, list):
            raw_charts = []

        directives = []
        for raw in raw_charts:
            directive = directive_from_dict(raw)
            if directive is None:
                logger.warning(f"[CHART SYNTHESIZER] ⚠ Skipping malformed chart directive: {raw!r}")
                continue
            directives.append(directive)
            if len(directives) == MAX_CHARTS:
                break

        return str(analysis.get("insights") or ""), directives, False

    def synthesize(self, rows: Sequence[Dict[str, Any]], question: str) -> ChartAnalysis:
        insights, directives, degraded = self.plan_charts(rows, question)
        charts = [ChartSeries(directive=d, points=build_series(rows, d)) for d in directives]
        logger.info(f"[CHART SYNTHESIZER] ✓ {len(charts)} chart(s) from {len(rows)} rows")
        return ChartAnalysis(insights=insights, charts=charts, degraded=degraded)
