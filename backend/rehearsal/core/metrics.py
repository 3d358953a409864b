"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Commitment ledger metrics
commitment_operations = Counter(
    'commitment_operations_total',
    'Commitment ledger mutations',
    ['operation', 'status']  # commit/cancel, success/rejected
)

# Coverage metrics
coverage_computations = Counter(
    'coverage_computations_total',
    'Session coverage computations'
)

coverage_open_gaps = Histogram(
    'coverage_open_gaps',
    'Number of songs with an open capability gap per computation',
    buckets=[0, 1, 2, 5, 10, 20, 50]
)

# Notification metrics
notification_sends = Counter(
    'notification_sends_total',
    'Outbound notification attempts',
    ['kind', 'result']  # invite/remind, sent/skipped/failed/timeout
)

notification_send_latency = Histogram(
    'notification_send_latency_seconds',
    'Latency of a single outbound send',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_commitment(operation: str, success: bool):
    """Record a ledger mutation. Operation: commit, cancel"""
    status = "success" if success else "rejected"
    commitment_operations.labels(operation=operation, status=status).inc()


def record_coverage(open_gaps: int):
    coverage_computations.inc()
    coverage_open_gaps.observe(open_gaps)


def record_send(kind: str, result: str):
    """Record one recipient outcome. Result: sent, skipped, failed, timeout"""
    notification_sends.labels(kind=kind, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
