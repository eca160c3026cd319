"""
Question answering over the inventory table.

    question -> SQL (oracle) -> guard -> backend calls -> rows
             -> prose (oracle) and charts (oracle + local math), in parallel

Translation, guard and backend failures end the request and are reported in
`AnswerResult.error`. Prose and chart failures are recovered and reported in
`AnswerResult.degraded`.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from inventory_insight.core.config import get_settings
from inventory_insight.core.errors import (
    BackendError, CHART_DEGRADED, INSIGHT_DEGRADED, InsightEngineError, TranslationError, UnsafeQueryError,
)
from inventory_insight.core.gemini_client import get_gemini_client
from inventory_insight.core.services.backend_factory import get_inventory_backend
from inventory_insight.core.services.inventory_backend import InventoryBackend
from inventory_insight.nl_query.charts import ChartSynthesizer
from inventory_insight.nl_query.guard import check_query
from inventory_insight.nl_query.insights import InsightGenerator
from inventory_insight.nl_query.messages import AnswerResult, ChartAnalysis, ErrorInfo
from inventory_insight.nl_query.metrics import INSTANCE_ID, PIPELINE_REQUESTS, PIPELINE_STEP_DURATION
from inventory_insight.nl_query.sql_mapper import SqlCallMapper
from inventory_insight.nl_query.translator import SQLGenerator

logger = logging.getLogger(__name__)


class InsightPipeline:

    def __init__(self, oracle, backend: InventoryBackend, insight_row_limit: int = 100,
                 chart_sample_size: int = 50):
        self.oracle = oracle
        self.backend = backend
        self.sql_generator = SQLGenerator(oracle, table_name=backend.table_name)
        self.mapper = SqlCallMapper(backend)
        self.insight_generator = InsightGenerator(oracle, row_limit=insight_row_limit)
        self.chart_synthesizer = ChartSynthesizer(oracle, sample_size=chart_sample_size)

    def answer(self, question: str, include_charts: bool = True) -> AnswerResult:
        """
        Answer one free-text question.

        Raises ValueError for an empty question; every other failure is
        returned inside the result.
        """
        if not question or not question.strip():
            raise ValueError("question must not be empty")
        question = question.strip()
        result = AnswerResult(question=question)

        logger.info(f"[PIPELINE] Question: '{question}'")
        try:
            self._translate_and_fetch(result)
        except InsightEngineError as e:
            self._record_failure(result, e)
            PIPELINE_REQUESTS.labels(status="error", instance=INSTANCE_ID).inc()
            return result

        self._summarize(result, include_charts)

        status = "degraded" if result.degraded else "success"
        PIPELINE_REQUESTS.labels(status=status, instance=INSTANCE_ID).inc()
        logger.info(f"[PIPELINE] ✓ Answered with {len(result.rows)} row(s), status={status}")
        return result

    def run(self, question: str) -> AnswerResult:
        """Answer without charts, as the voice bridge needs."""
        return self.answer(question, include_charts=False)

    def analyze_table(self, question: str) -> ChartAnalysis:
        """Chart suggestions computed over the whole inventory table."""
        started = time.time()
        rows = self.backend.fetch_all()
        analysis = self.chart_synthesizer.synthesize(rows, question)
        PIPELINE_STEP_DURATION.labels(step="charts").observe(time.time() - started)
        return analysis

    # ------------------------------------------------------------------

    def _translate_and_fetch(self, result: AnswerResult):
        step_start = time.time()
        result.sql = self.sql_generator.generate_sql(result.question)
        PIPELINE_STEP_DURATION.labels(step="translate").observe(time.time() - step_start)
        result.add_to_call_stack("sql_generation", started_at=step_start, sql=result.sql)

        step_start = time.time()
        check_query(result.sql)
        result.add_to_call_stack("query_guard", started_at=step_start)

        step_start = time.time()
        execution = self.mapper.run(result.sql, result.question)
        PIPELINE_STEP_DURATION.labels(step="execute").observe(time.time() - step_start)
        result.shape = execution.intent.shape
        result.rows = execution.to_rows()
        result.add_to_call_stack(
            "backend_execution",
            started_at=step_start,
            shape=result.shape.value,
            parameters=execution.intent.parameters.to_dict(),
            backend_calls=execution.backend_calls,
            row_count=len(result.rows),
        )

    def _summarize(self, result: AnswerResult, include_charts: bool):
        step_start = time.time()
        with ThreadPoolExecutor(max_workers=2) as executor:
            insight_future = executor.submit(self.insight_generator.generate, result.question, result.rows)
            chart_future = None
            if include_charts:
                chart_future = executor.submit(self.chart_synthesizer.synthesize, result.rows, result.question)

            prose, insight_degraded = insight_future.result()
            analysis: Optional[ChartAnalysis] = chart_future.result() if chart_future else None

        PIPELINE_STEP_DURATION.labels(step="summarize").observe(time.time() - step_start)

        result.prose = prose
        if insight_degraded:
            result.degraded.append(INSIGHT_DEGRADED)
        result.add_to_call_stack(
            "insight_generation",
            started_at=step_start,
            status="degraded" if insight_degraded else "success",
        )

        if analysis is not None:
            result.charts = analysis.charts
            result.chart_insights = analysis.insights
            if analysis.degraded:
                result.degraded.append(CHART_DEGRADED)
            result.add_to_call_stack(
                "chart_synthesis",
                started_at=step_start,
                status="degraded" if analysis.degraded else "success",
                chart_count=len(analysis.charts),
            )

    @staticmethod
    def _record_failure(result: AnswerResult, error: InsightEngineError):
        keyword = error.keyword if isinstance(error, UnsafeQueryError) else None
        result.error = ErrorInfo(type=type(error).__name__, message=str(error), keyword=keyword)

        if isinstance(error, TranslationError):
            step = "sql_generation"
        elif isinstance(error, UnsafeQueryError):
            step = "query_guard"
        elif isinstance(error, BackendError):
            step = "backend_execution"
        else:
            step = "pipeline"
        result.add_to_call_stack(step, status="error", error=str(error))
        logger.error(f"[PIPELINE] ✗ {type(error).__name__}: {error}")


_pipeline: Optional[InsightPipeline] = None
_pipeline_lock = threading.Lock()


def get_pipeline() -> InsightPipeline:
    global _pipeline
    if _pipeline is not None:
        return _pipeline
    with _pipeline_lock:
        if _pipeline is None:
            settings = get_settings()
            _pipeline = InsightPipeline(
                get_gemini_client(),
                get_inventory_backend(),
                insight_row_limit=settings.insight_row_limit,
                chart_sample_size=settings.chart_sample_size,
            )
        return _pipeline
