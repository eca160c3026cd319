import logging

from inventory_insight.core.errors import UnsafeQueryError
from inventory_insight.nl_query.metrics import GUARD_REJECTIONS

logger = logging.getLogger(__name__)

DANGEROUS_KEYWORDS = ("drop", "delete", "update", "insert", "alter", "create", "truncate")


def check_query(sql: str) -> str:
    """
    Reject SQL that could mutate data or schema; return it unchanged otherwise.

    Matching is plain substring on the lower-cased text, so a column such as
    `created_at` or `last_updated` is rejected too. That is accepted.
    """
    lower_query = (sql or "").lower()

    for keyword in DANGEROUS_KEYWORDS:
        if keyword in lower_query:
            logger.warning(f"[QUERY GUARD] ✗ Rejected query containing '{keyword}': {sql}")
            GUARD_REJECTIONS.labels(keyword=keyword).inc()
            raise UnsafeQueryError(keyword, sql)

    return sql
