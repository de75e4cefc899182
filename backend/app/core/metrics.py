"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Participation request metrics
request_creations = Counter(
    'participation_request_creations_total',
    'Participation request creation attempts',
    ['result']  # pending, confirmed, conflict
)

# Admission control metrics
admission_decisions = Counter(
    'admission_decisions_total',
    'Requests moved by the admission controller',
    ['status']  # CONFIRMED, REJECTED, CANCELED
)

admission_conflicts = Counter(
    'admission_conflicts_total',
    'Admission calls that ended in a conflict',
    ['reason']  # not_pending, limit_exceeded, contention
)

admission_latency = Histogram(
    'admission_call_latency_seconds',
    'Time spent inside the event critical section',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Lifecycle metrics
event_transitions = Counter(
    'event_transitions_total',
    'Event lifecycle transitions',
    ['action', 'state']
)

# Concurrency metrics
db_retries = Counter(
    'db_retry_attempts_total',
    'Retry attempts due to capacity version conflicts'
)

guard_wait = Histogram(
    'event_guard_wait_seconds',
    'Time spent waiting to enter an event critical section',
    ['guard'],
    buckets=[0.0001, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

# Collaborator metrics
collaborator_errors = Counter(
    'collaborator_errors_total',
    'Failed calls to external collaborators',
    ['collaborator']  # stats, likes
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_request_creation(result: str):
    """Record request creation. Result: pending, confirmed, conflict"""
    request_creations.labels(result=result).inc()


def record_admission(status: str, count: int = 1):
    """Record requests moved to a final status by the admission controller."""
    if count:
        admission_decisions.labels(status=status).inc(count)


def record_admission_conflict(reason: str):
    admission_conflicts.labels(reason=reason).inc()


def record_transition(action: str, state: str):
    event_transitions.labels(action=action, state=state).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def record_collaborator_error(collaborator: str):
    collaborator_errors.labels(collaborator=collaborator).inc()
