import logging
from typing import Any, Dict, List, Sequence, Tuple

from inventory_insight.nl_query.metrics import DEGRADED_RESPONSES, LLM_FAILURES, LLM_REQUESTS
from inventory_insight.nl_query.utils import rows_to_json

logger = logging.getLogger(__name__)

INSIGHT_FALLBACK = (
    "I found the data you requested, but had trouble analyzing it. "
    "Please try rephrasing your question."
)


def build_insight_prompt(question: str, rows: Sequence[Dict[str, Any]], row_limit: int) -> str:
    shown = list(rows[:row_limit])
    if len(rows) > len(shown):
        size_note = f"Showing the first {len(shown)} of {len(rows)} rows."
    else:
        size_note = f"{len(rows)} row(s) returned."

    return f"""You are an AI inventory analyst. Based on the user's question and the SQL query results, provide a helpful, conversational response.

User's Question: "{question}"

Query Results ({size_note}): {rows_to_json(shown)}

Provide a clear, helpful response that:
1. Answers the user's question directly
2. Highlights key insights from the data
3. Uses a conversational tone
4. Formats numbers appropriately
5. Suggests actionable next steps if relevant

Response:"""


class InsightGenerator:
    """
    Writes the prose answer for a result set.

    Never raises: an oracle failure or an empty reply yields the canned
    fallback text with the degraded flag set.
    """

    def __init__(self, oracle, row_limit: int = 100):
        self.oracle = oracle
        self.row_limit = max(row_limit, 1)

    def generate(self, question: str, rows: List[Dict[str, Any]]) -> Tuple[str, bool]:
        prompt = build_insight_prompt(question, rows, self.row_limit)
        LLM_REQUESTS.labels(component="insight_generator", model=getattr(self.oracle, "model_name", "unknown")).inc()
        try:
            text = (self.oracle.complete(prompt) or "").strip()
        except Exception as e:
            LLM_FAILURES.labels(component="insight_generator").inc()
            logger.error(f"[INSIGHT GENERATOR] ✗ Error generating insight: {e}")
            text = ""

        if not text:
            DEGRADED_RESPONSES.labels(component="insight_generator").inc()
            logger.warning("[INSIGHT GENERATOR] ⚠ Falling back to canned insight")
            return INSIGHT_FALLBACK, True

        logger.info(f"[INSIGHT GENERATOR] ✓ Insight generated ({len(text)} chars)")
        return text, False
