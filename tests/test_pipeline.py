"""
Insight Pipeline Tests
======================
End-to-end runs with a scripted oracle and an in-memory backend.
"""

import json

import pytest

from inventory_insight.core.errors import CHART_DEGRADED, INSIGHT_DEGRADED, OracleError
from inventory_insight.nl_query.messages import QueryShape
from inventory_insight.nl_query.pipeline import InsightPipeline

from conftest import FailingBackend, FakeOracle

LOW_STOCK_SQL = "```sql\nSELECT item_name, quantity, threshold FROM Inventory WHERE quantity < threshold;\n```"
CHART_REPLY = json.dumps({
    "insights": "Tools and Food each have one item below threshold.",
    "charts": [{
        "type": "bar",
        "title": "Low stock by item",
        "description": "Units left",
        "dataProcessing": {"groupBy": "item_name", "aggregateBy": "sum", "aggregateColumn": "quantity",
                           "sortBy": "desc", "limit": 10},
    }],
})


class TestAnswer:

    def test_running_low_end_to_end(self, backend):
        oracle = FakeOracle(
            sql=LOW_STOCK_SQL,
            insight="Two items are running low: Widget A has 5 left and Gadget C is sold out.",
            charts=CHART_REPLY,
        )
        result = InsightPipeline(oracle, backend).answer("what items are running low")

        assert result.success
        assert result.sql == "SELECT item_name, quantity, threshold FROM Inventory WHERE quantity < threshold"
        assert result.shape == QueryShape.FILTERED_SELECT
        assert [r["item_name"] for r in result.rows] == ["Widget A", "Gadget C"]
        assert "Widget A" in result.prose
        assert result.degraded == []

        # the insight prompt sees exactly the filtered rows
        insight_prompt = oracle.prompts_for("insight")[0]
        assert "Widget A" in insight_prompt and "Gadget C" in insight_prompt
        assert "Widget B" not in insight_prompt

        # zero-quantity group is dropped from the chart
        assert result.chart_insights == "Tools and Food each have one item below threshold."
        assert result.charts[0].points == [{"label": "Widget A", "value": 5}]

        steps = [entry.step_name for entry in result.call_stack]
        assert steps == ["sql_generation", "query_guard", "backend_execution", "insight_generation", "chart_synthesis"]

    def test_count_answer_keeps_aliases(self, backend):
        oracle = FakeOracle(sql="SELECT COUNT(*) FROM Inventory WHERE quantity < threshold")
        result = InsightPipeline(oracle, backend).answer("how many items are low?", include_charts=False)

        assert result.shape == QueryShape.COUNT
        assert result.rows == [{"count": 2, "total_items": 2, "low_stock_items": 2, "out_of_stock": 2}]
        assert oracle.prompts_for("charts") == []

    def test_insight_failure_keeps_rows(self, backend):
        oracle = FakeOracle(sql=LOW_STOCK_SQL, insight=OracleError("network down"), charts=CHART_REPLY)
        result = InsightPipeline(oracle, backend).answer("what items are running low")

        assert result.success
        assert len(result.rows) == 2
        assert result.prose.startswith("I found the data you requested")
        assert result.degraded == [INSIGHT_DEGRADED]

    def test_chart_failure_keeps_prose(self, backend):
        oracle = FakeOracle(sql=LOW_STOCK_SQL, insight="Two items.", charts='{"charts": [')
        result = InsightPipeline(oracle, backend).answer("what items are running low")

        assert result.success
        assert result.prose == "Two items."
        assert result.charts == []
        assert result.degraded == [CHART_DEGRADED]

    def test_translation_failure_is_fatal(self, backend):
        oracle = FakeOracle(sql=OracleError("timeout"))
        result = InsightPipeline(oracle, backend).answer("anything")

        assert not result.success
        assert result.error.type == "TranslationError"
        assert backend.calls == []
        assert oracle.prompts_for("insight") == []
        assert result.call_stack[-1].status == "error"

    def test_backend_failure_is_fatal(self, stock_rows):
        backend = FailingBackend(stock_rows)
        result = InsightPipeline(FakeOracle(sql=LOW_STOCK_SQL), backend).answer("what is low")

        assert result.error.type == "BackendError"
        assert "connection refused" in result.error.message
        assert result.rows == []

    def test_unrecognized_sql_returns_all_rows(self, pipeline):
        pipeline.oracle.replies["sql"] = "Sorry, I can't help with that."
        result = pipeline.answer("tell me a joke")

        assert result.success
        assert result.shape == QueryShape.UNRECOGNIZED
        assert len(result.rows) == 4

    @pytest.mark.parametrize("question", ["", "   "])
    def test_empty_question(self, pipeline, question):
        with pytest.raises(ValueError):
            pipeline.answer(question)

    def test_to_dict_is_json_ready(self, backend):
        oracle = FakeOracle(sql=LOW_STOCK_SQL, charts=CHART_REPLY)
        body = InsightPipeline(oracle, backend).answer("what items are running low").to_dict()

        assert body["success"] is True
        assert body["shape"] == "filtered_select"
        assert body["charts"][0]["points"] == [{"label": "Widget A", "value": 5.0}]
        assert body["error"] is None
        json.dumps(body)

    def test_analyze_table_uses_every_row(self, backend):
        oracle = FakeOracle(charts=json.dumps({"insights": "ok", "charts": [
            {"type": "pie", "dataProcessing": {"groupBy": "category"}},
        ]}))
        analysis = InsightPipeline(oracle, backend).analyze_table("category split")

        assert backend.calls[0][1].columns is None
        assert analysis.charts[0].points == [{"label": "Tools", "value": 2}, {"label": "Food", "value": 2}]
