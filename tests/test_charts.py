"""
Chart Synthesizer Tests
=======================
Oracle planning (phase 1) and local series computation (phase 2).
"""

import json

import pytest

from inventory_insight.core.errors import OracleError
from inventory_insight.nl_query.charts import (
    CHART_FALLBACK_INSIGHT, ChartSynthesizer, build_series, directive_from_dict,
)
from inventory_insight.nl_query.messages import ChartDirective

from conftest import FakeOracle


def _chart_reply(*charts, insights="Stock is concentrated in two categories."):
    return "```json\n" + json.dumps({"insights": insights, "charts": list(charts)}) + "\n```"


def _chart(group_by, aggregate="count", column=None, chart_type="bar", sort="desc", limit=10):
    return {
        "type": chart_type,
        "title": f"{group_by} by {aggregate}",
        "description": "",
        "dataProcessing": {
            "groupBy": group_by,
            "aggregateBy": aggregate,
            "aggregateColumn": column,
            "sortBy": sort,
            "limit": limit,
        },
    }


class TestBuildSeries:

    def test_sum_groups_with_unknown_label(self):
        rows = [{"cat": "A", "val": "10"}, {"cat": "A", "val": "5"}, {"cat": None, "val": "3"}]
        directive = ChartDirective(group_by="cat", aggregate="sum", aggregate_column="val")

        assert build_series(rows, directive) == [{"label": "A", "value": 15}, {"label": "Unknown", "value": 3}]

        directive.sort = "desc"
        assert build_series(rows, directive) == [{"label": "A", "value": 15}, {"label": "Unknown", "value": 3}]

        directive.sort = "asc"
        assert build_series(rows, directive) == [{"label": "Unknown", "value": 3}, {"label": "A", "value": 15}]

    def test_boolean_labels_and_count(self):
        rows = [{"organic": True}, {"organic": False}, {"organic": True}]
        points = build_series(rows, ChartDirective(group_by="organic", sort="desc"))
        assert points == [{"label": "Yes", "value": 2}, {"label": "No", "value": 1}]

    def test_avg_rounded_to_two_places(self):
        rows = [{"b": "x", "p": 1}, {"b": "x", "p": 2}, {"b": "x", "p": 2}]
        points = build_series(rows, ChartDirective(group_by="b", aggregate="avg", aggregate_column="p"))
        assert points == [{"label": "x", "value": 1.67}]

    def test_zero_groups_dropped_and_limit_applied(self):
        rows = [{"c": c, "q": q} for c, q in [("a", 0), ("b", 4), ("c", 9), ("d", 1), ("e", 0)]]
        directive = ChartDirective(group_by="c", aggregate="sum", aggregate_column="q", sort="desc", limit=2)
        assert build_series(rows, directive) == [{"label": "c", "value": 9}, {"label": "b", "value": 4}]

    def test_sum_without_column_falls_back_to_count(self):
        rows = [{"c": "a"}, {"c": "a"}]
        assert build_series(rows, ChartDirective(group_by="c", aggregate="sum")) == [{"label": "a", "value": 2}]

    def test_float_labels_match_integer_labels(self, stock_rows):
        points = build_series(stock_rows, ChartDirective(group_by="selling_price"))
        assert [p["label"] for p in points] == ["25", "80", "12.5", "60"]

    def test_missing_group_column_gives_empty_series(self):
        assert build_series([{"a": 1}], ChartDirective(group_by="nope")) == []
        assert build_series([], ChartDirective(group_by="a")) == []


class TestDirectiveFromDict:

    def test_defaults_for_bad_values(self):
        directive = directive_from_dict({
            "type": "radar",
            "dataProcessing": {"groupBy": "brand", "aggregateBy": "median", "sortBy": "sideways", "limit": "lots"},
        })
        assert directive.chart_type == "bar"
        assert directive.aggregate == "count"
        assert directive.sort is None
        assert directive.limit == 10

    @pytest.mark.parametrize("raw", [None, "pie", {}, {"dataProcessing": []}, {"dataProcessing": {"groupBy": ""}}])
    def test_unusable_entries(self, raw):
        assert directive_from_dict(raw) is None


class TestChartSynthesizer:

    def test_truncated_json_degrades(self):
        analysis = ChartSynthesizer(FakeOracle(charts='{"charts": [')).synthesize([{"a": 1}], "show me charts")
        assert analysis.insights == CHART_FALLBACK_INSIGHT
        assert analysis.charts == []
        assert analysis.degraded is True

    def test_oracle_failure_degrades(self):
        analysis = ChartSynthesizer(FakeOracle(charts=OracleError("down"))).synthesize([], "charts")
        assert analysis.insights == CHART_FALLBACK_INSIGHT
        assert analysis.charts == []
        assert analysis.degraded is True

    def test_json_array_reply_degrades(self):
        analysis = ChartSynthesizer(FakeOracle(charts="[1, 2]")).synthesize([], "charts")
        assert analysis.degraded is True and analysis.charts == []

    def test_directives_run_against_full_rows_not_sample(self, stock_rows):
        oracle = FakeOracle(charts=_chart_reply(_chart("category", chart_type="pie")))
        analysis = ChartSynthesizer(oracle, sample_size=1).synthesize(stock_rows, "items per category")

        prompt = oracle.prompts_for("charts")[0]
        assert "first 1 items" in prompt
        assert "Full Dataset Size: 4 items" in prompt
        assert "Gadget D" not in prompt

        assert analysis.degraded is False
        assert analysis.insights == "Stock is concentrated in two categories."
        chart = analysis.charts[0].to_dict()
        assert chart["chart_type"] == "pie"
        assert chart["points"] == [{"label": "Tools", "value": 2}, {"label": "Food", "value": 2}]

    def test_at_most_three_charts_and_malformed_skipped(self, stock_rows):
        reply = _chart_reply(
            {"type": "bar"},
            _chart("brand"),
            _chart("category", "sum", "total_stock_value"),
            _chart("supplier_name", "avg", "supplier_rating"),
            _chart("status"),
        )
        analysis = ChartSynthesizer(FakeOracle(charts=reply)).synthesize(stock_rows, "overview")

        assert [c.directive.group_by for c in analysis.charts] == ["brand", "category", "supplier_name"]
        assert analysis.charts[1].points == [{"label": "Tools", "value": 1325.0}, {"label": "Food", "value": 1200.0}]
        assert analysis.charts[2].points == [{"label": "TechCorp", "value": 4.0}, {"label": "FoodDist", "value": 2.5}]
