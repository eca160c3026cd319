"""
Error taxonomy for the question-answering pipeline.

Errors raised before any inventory data is fetched are fatal and reach the
caller. Failures after the rows exist (insight prose, chart planning) are
recovered where they happen and only reported as degradations.
"""


class InsightEngineError(Exception):
    """Base class for every error the engine raises on purpose."""


class OracleError(InsightEngineError):
    """The language model could not be reached or returned nothing usable."""


class TranslationError(InsightEngineError):
    """SQL generation failed because the oracle call failed."""


class UnsafeQueryError(InsightEngineError):
    def __init__(self, keyword: str, sql: str = ""):
        self.keyword = keyword
        self.sql = sql
        super().__init__(f"Query contains dangerous keyword: {keyword}")


class BackendError(InsightEngineError):
    """The row store rejected or failed a query."""


# Degradation markers reported in AnswerResult.degraded
INSIGHT_DEGRADED = "InsightDegraded"
CHART_DEGRADED = "ChartDegraded"
