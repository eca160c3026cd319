import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from inventory_insight.nl_query.metrics import LLM_FAILURES, LLM_REQUESTS
from inventory_insight.nl_query.utils import parse_json_reply

logger = logging.getLogger(__name__)

INVENTORY_SUMMARY = "inventory_summary"
LOW_STOCK = "low_stock"
TOP_SELLING = "top_selling"
EXPENSIVE_ITEMS = "expensive_items"
SUPPLIERS = "suppliers"
OUT_OF_STOCK = "out_of_stock"
CATEGORIES = "categories"
SPECIFIC_ITEM = "specific_item"
FINANCIAL = "financial"
ANALYTICS = "analytics"

QUERY_TYPES = (
    INVENTORY_SUMMARY, LOW_STOCK, TOP_SELLING, EXPENSIVE_ITEMS, SUPPLIERS,
    OUT_OF_STOCK, CATEGORIES, SPECIFIC_ITEM, FINANCIAL, ANALYTICS,
)

INTENT_PROMPT = """Analyze this inventory management query and determine the user's intent:
Query: "{query}"

Available query types:
- inventory_summary: Overall inventory statistics and health
- low_stock: Items that need reordering (quantity < threshold)
- top_selling: Best performing items by sales velocity
- expensive_items: Highest priced items
- suppliers: Supplier information and ratings
- out_of_stock: Items with zero quantity
- categories: Items grouped by category
- specific_item: Looking for specific products by name
- financial: Revenue, costs, margins analysis
- analytics: Trends, performance metrics

Respond with ONLY a JSON object like this:
{{
  "intent": "query_type_here",
  "confidence": 0.9,
  "parameters": {{
    "item_name": "optional specific item",
    "category": "optional category filter",
    "limit": 5,
    "threshold": "optional number"
  }},
  "reasoning": "Brief explanation of why this intent was chosen"
}}"""

# (keywords, intent, confidence, parameters, reasoning); first match wins
KEYWORD_RULES = (
    (("summary", "overview", "total"), INVENTORY_SUMMARY, 0.8, {}, "Query contains summary/overview keywords"),
    (("low stock", "need reorder", "running low"), LOW_STOCK, 0.9, {"limit": 10}, "Query mentions low stock or reordering"),
    (("best sell", "top sell", "popular"), TOP_SELLING, 0.9, {"limit": 5}, "Query asks about best/top selling items"),
    (("expensive", "costly", "highest price"), EXPENSIVE_ITEMS, 0.9, {"limit": 5}, "Query asks about expensive items"),
    (("supplier", "vendor"), SUPPLIERS, 0.9, {}, "Query mentions suppliers or vendors"),
    (("out of stock", "zero stock", "empty"), OUT_OF_STOCK, 0.9, {"limit": 10}, "Query asks about out of stock items"),
    (("category", "categories"), CATEGORIES, 0.8, {"limit": 10}, "Query mentions product categories"),
)


@dataclass
class IntentAnalysis:
    intent: str
    confidence: float
    parameters: Dict[str, Any] = field(default_factory=dict)
    reasoning: str = ""
    source: str = "keywords"  # keywords | llm
    # False for the default fallback, when no rule recognised the question
    matched: bool = True

    def to_dict(self) -> dict:
        return {
            "intent": self.intent,
            "confidence": self.confidence,
            "parameters": self.parameters,
            "reasoning": self.reasoning,
            "source": self.source,
            "matched": self.matched,
        }


def classify_by_keywords(query: str) -> IntentAnalysis:
    lower_query = (query or "").lower()
    for keywords, intent, confidence, parameters, reasoning in KEYWORD_RULES:
        if any(keyword in lower_query for keyword in keywords):
            return IntentAnalysis(intent, confidence, dict(parameters), reasoning)
    return IntentAnalysis(INVENTORY_SUMMARY, 0.3, {}, "Default fallback to inventory summary", matched=False)


class IntentClassifier:
    """
    Decides what kind of inventory question a transcript is.

    In `llm` mode the oracle is asked for a JSON analysis; any failure, a
    non-JSON reply, or an unknown intent falls back to the keyword rules.
    """

    def __init__(self, oracle=None, mode: str = "keywords"):
        self.oracle = oracle
        self.mode = mode

    def classify(self, query: str) -> IntentAnalysis:
        if self.mode != "llm" or self.oracle is None:
            return classify_by_keywords(query)

        LLM_REQUESTS.labels(component="intent_classifier", model=getattr(self.oracle, "model_name", "unknown")).inc()
        try:
            analysis = parse_json_reply(self.oracle.complete(INTENT_PROMPT.format(query=query)))
            intent = analysis.get("intent")
            if intent not in QUERY_TYPES:
                raise ValueError(f"unknown intent {intent!r}")
            parameters = analysis.get("parameters")
            result = IntentAnalysis(
                intent=intent,
                confidence=float(analysis.get("confidence", 0.5)),
                parameters=parameters if isinstance(parameters, dict) else {},
                reasoning=str(analysis.get("reasoning") or ""),
                source="llm",
            )
        except Exception as e:
            LLM_FAILURES.labels(component="intent_classifier").inc()
            logger.warning(f"[INTENT] ⚠ LLM intent analysis failed, using keywords: {e}")
            return classify_by_keywords(query)

        logger.info(f"[INTENT] ✓ {result.intent} ({result.confidence:.2f})")
        return result
