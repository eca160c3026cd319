import logging

from inventory_insight.core.errors import TranslationError
from inventory_insight.inventory.schema import INVENTORY_TABLE, describe_schema
from inventory_insight.nl_query.metrics import LLM_FAILURES, LLM_REQUESTS
from inventory_insight.nl_query.utils import strip_code_fences

logger = logging.getLogger(__name__)

SQL_RULES = """Rules:
1. ONLY generate SELECT queries - never use INSERT, UPDATE, DELETE, DROP, ALTER, CREATE, or TRUNCATE
2. Always use the table name '{table}'
3. Use proper SQL syntax
4. For date comparisons, use appropriate date functions
5. Limit results to reasonable amounts (use LIMIT when appropriate)
6. Use ORDER BY for sorted results
7. Return only the SQL query, no explanations
8. Start every query with SELECT"""


def build_sql_prompt(question: str, table_name: str = INVENTORY_TABLE) -> str:
    return f"""You are an expert SQL query generator for an inventory management system.
Generate ONLY SELECT queries for data retrieval - no INSERT, UPDATE, DELETE, DROP, or other modification operations.
Return only the SQL query without any explanation or markdown formatting.

{describe_schema(table_name)}

{SQL_RULES.format(table=table_name)}

User Query: "{question}"

Generate the SQL query:"""


class SQLGenerator:
    """Turns a free-text question into a candidate SQL string via the oracle."""

    def __init__(self, oracle, table_name: str = INVENTORY_TABLE):
        self.oracle = oracle
        self.table_name = table_name

    def generate_sql(self, question: str) -> str:
        if not question or not question.strip():
            raise ValueError("question must not be empty")

        prompt = build_sql_prompt(question.strip(), self.table_name)
        LLM_REQUESTS.labels(component="sql_generator", model=getattr(self.oracle, "model_name", "unknown")).inc()
        try:
            response = self.oracle.complete(prompt)
        except Exception as e:
            # OracleError for transport failures; anything else is an SDK surprise
            LLM_FAILURES.labels(component="sql_generator").inc()
            logger.error(f"[SQL GENERATOR] ✗ Oracle failed: {e}")
            raise TranslationError(f"Failed to generate SQL query: {e}") from e

        clean_query = strip_code_fences(response or "")
        if clean_query.endswith(";"):
            clean_query = clean_query[:-1].strip()

        logger.info(f"[SQL GENERATOR] ✓ Generated SQL: {clean_query}")
        return clean_query
