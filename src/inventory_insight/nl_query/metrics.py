"""
Centralized Prometheus metrics for the question pipeline.
Import from here so every metric is registered exactly once.
"""
import socket
from prometheus_client import Counter, Histogram

INSTANCE_ID = socket.gethostname()

PIPELINE_REQUESTS = Counter(
    'inventory_pipeline_requests_total',
    'Questions answered by the pipeline',
    ['status', 'instance']
)
PIPELINE_STEP_DURATION = Histogram(
    'inventory_pipeline_step_duration_seconds',
    'Time spent per pipeline step',
    ['step'],
    buckets=[0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Query shapes
QUERY_SHAPES = Counter(
    'inventory_query_shapes_total',
    'Recognized SQL shapes',
    ['shape']
)
UNRECOGNIZED_SHAPES = Counter(
    'inventory_unrecognized_shapes_total',
    'SQL strings that fell through to the select-all default'
)
GUARD_REJECTIONS = Counter(
    'inventory_guard_rejections_total',
    'SQL strings rejected by the query guard',
    ['keyword']
)
BACKEND_CALLS = Counter(
    'inventory_backend_calls_total',
    'Calls issued against the inventory row store',
    ['kind']
)

# LLM
LLM_REQUESTS = Counter(
    'llm_requests_total',
    'Total LLM API requests',
    ['component', 'model']
)
LLM_FAILURES = Counter(
    'llm_failures_total',
    'LLM calls that failed or returned unusable output',
    ['component']
)
DEGRADED_RESPONSES = Counter(
    'inventory_degraded_responses_total',
    'Answers delivered with a locally recovered failure',
    ['component']
)

# Voice
VOICE_EVENTS = Counter(
    'voice_events_total',
    'Voice SDK events handled',
    ['event']
)
