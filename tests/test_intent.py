"""
Intent Classifier Tests
=======================
"""

import json

import pytest

from inventory_insight.core.errors import OracleError
from inventory_insight.nl_query import intent as intents
from inventory_insight.nl_query.intent import IntentClassifier, classify_by_keywords

from conftest import FakeOracle


class TestKeywordRules:

    @pytest.mark.parametrize("query, expected", [
        ("Give me an overview", intents.INVENTORY_SUMMARY),
        ("What items are running low?", intents.LOW_STOCK),
        ("which products need reorder", intents.LOW_STOCK),
        ("show my best sellers", intents.TOP_SELLING),
        ("most popular products", intents.TOP_SELLING),
        ("what's the most expensive thing", intents.EXPENSIVE_ITEMS),
        ("list my vendors", intents.SUPPLIERS),
        ("anything out of stock?", intents.OUT_OF_STOCK),
        ("items by category", intents.CATEGORIES),
    ])
    def test_rules(self, query, expected):
        assert classify_by_keywords(query).intent == expected

    def test_rule_order_summary_first(self):
        # "total" wins over "supplier" because summary rules are tested first
        assert classify_by_keywords("total supplier count").intent == intents.INVENTORY_SUMMARY

    def test_default(self):
        analysis = classify_by_keywords("hello there")
        assert analysis.intent == intents.INVENTORY_SUMMARY
        assert analysis.confidence == 0.3
        assert analysis.source == "keywords"
        assert analysis.matched is False
        assert classify_by_keywords("show me the overview").matched is True

    def test_parameters_not_shared(self):
        classify_by_keywords("running low").parameters["limit"] = 99
        assert classify_by_keywords("running low").parameters == {"limit": 10}


class TestIntentClassifier:

    def test_keyword_mode_never_calls_oracle(self):
        oracle = FakeOracle()
        IntentClassifier(oracle, mode="keywords").classify("running low")
        assert oracle.prompts == []

    def test_llm_mode(self):
        reply = "```json\n" + json.dumps({
            "intent": "financial", "confidence": 0.85,
            "parameters": {"category": "Food"}, "reasoning": "asks about margins",
        }) + "\n```"
        oracle = FakeOracle(intent=reply)
        analysis = IntentClassifier(oracle, mode="llm").classify("what are my margins on food")

        assert analysis.intent == intents.FINANCIAL
        assert analysis.confidence == 0.85
        assert analysis.parameters == {"category": "Food"}
        assert analysis.source == "llm"
        assert 'Query: "what are my margins on food"' in oracle.prompts_for("intent")[0]

    @pytest.mark.parametrize("reply", [
        "I think it's low stock",
        json.dumps({"intent": "weather"}),
        OracleError("down"),
    ])
    def test_llm_failures_fall_back_to_keywords(self, reply):
        analysis = IntentClassifier(FakeOracle(intent=reply), mode="llm").classify("what is running low")
        assert analysis.intent == intents.LOW_STOCK
        assert analysis.source == "keywords"
