"""
NL -> SQL Translator Tests
==========================
"""

import pytest

from inventory_insight.core.errors import OracleError, TranslationError
from inventory_insight.nl_query.translator import SQLGenerator, build_sql_prompt
from inventory_insight.nl_query.utils import parse_json_reply, strip_code_fences

from conftest import FakeOracle


class TestStripCodeFences:

    @pytest.mark.parametrize("reply", [
        "```sql\nSELECT * FROM Inventory\n```",
        "```\nSELECT * FROM Inventory\n```",
        "  ```SQL SELECT * FROM Inventory```  ",
        "SELECT * FROM Inventory",
    ])
    def test_fences_removed(self, reply):
        assert strip_code_fences(reply) == "SELECT * FROM Inventory"

    def test_empty(self):
        assert strip_code_fences("") == ""
        assert strip_code_fences(None) == ""

    def test_json_reply_with_fence(self):
        assert parse_json_reply('```json\n{"a": 1}\n```') == {"a": 1}

    def test_truncated_json_raises(self):
        with pytest.raises(ValueError):
            parse_json_reply('{"charts": [')


class TestSQLGenerator:

    def test_prompt_carries_schema_rules_and_question(self):
        prompt = build_sql_prompt("what items are running low")
        assert "Database Table: Inventory" in prompt
        assert "- quantity: Current stock quantity" in prompt
        assert "- threshold: Minimum stock level before reorder" in prompt
        assert "ONLY generate SELECT queries" in prompt
        assert "Always use the table name 'Inventory'" in prompt
        assert 'User Query: "what items are running low"' in prompt

    def test_fenced_reply_is_cleaned(self):
        oracle = FakeOracle(sql="```sql\nSELECT * FROM Inventory WHERE quantity = 0;\n```")
        sql = SQLGenerator(oracle).generate_sql("  what is out of stock  ")

        assert sql == "SELECT * FROM Inventory WHERE quantity = 0"
        assert len(oracle.prompts_for("sql")) == 1
        assert '"what is out of stock"' in oracle.prompts_for("sql")[0]

    def test_custom_table_name_in_prompt(self):
        oracle = FakeOracle()
        SQLGenerator(oracle, table_name="inventory_items").generate_sql("everything")
        assert "Always use the table name 'inventory_items'" in oracle.prompts_for("sql")[0]

    def test_oracle_failure_becomes_translation_error(self):
        oracle = FakeOracle(sql=OracleError("Gemini request failed: timeout"))
        with pytest.raises(TranslationError) as exc_info:
            SQLGenerator(oracle).generate_sql("how many items")
        assert "timeout" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, OracleError)

    def test_single_attempt_no_retry(self):
        oracle = FakeOracle(sql=OracleError("boom"))
        with pytest.raises(TranslationError):
            SQLGenerator(oracle).generate_sql("how many items")
        assert len(oracle.prompts) == 1

    @pytest.mark.parametrize("question", ["", "   ", None])
    def test_empty_question_rejected(self, question):
        oracle = FakeOracle()
        with pytest.raises(ValueError):
            SQLGenerator(oracle).generate_sql(question)
        assert oracle.prompts == []

    def test_nonsense_reply_passed_through(self):
        oracle = FakeOracle(sql="I am not sure what you mean.")
        assert SQLGenerator(oracle).generate_sql("hmm") == "I am not sure what you mean."
