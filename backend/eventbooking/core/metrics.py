"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, rejected, error
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Total booking cancellations',
    ['status']  # success, rejected, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

seats_reserved = Counter(
    'seats_reserved_total',
    'Tickets reserved through confirmed bookings'
)

seats_released = Counter(
    'seats_released_total',
    'Tickets released back to events by cancellations'
)

# Database metrics
db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation']  # read, write, retry
)

db_retries = Counter(
    'db_retry_attempts_total',
    'Database retry attempts due to version conflicts'
)

# Job queue metrics
jobs_enqueued = Counter(
    'jobs_enqueued_total',
    'Jobs appended to the in-process queue',
    ['kind']
)

jobs_processed = Counter(
    'jobs_processed_total',
    'Jobs drained from the queue',
    ['kind', 'status']  # completed, failed
)

job_queue_depth = Gauge(
    'job_queue_depth',
    'Jobs waiting to be drained'
)

job_duration = Histogram(
    'job_duration_seconds',
    'Time spent executing a job',
    ['kind'],
    buckets=[0.001, 0.01, 0.1, 0.5, 1.0, 2.5, 5.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get: hit/miss, set: stored, invalidate: bumped
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, rejected, error"""
    booking_attempts.labels(status=status).inc()


def record_cancellation(status: str):
    booking_cancellations.labels(status=status).inc()


def record_db_operation(operation: str):
    """Record database operation. Operation: read, write, retry"""
    db_operations.labels(operation=operation).inc()
    if operation == "retry":
        db_retries.inc()


def record_job_enqueued(kind: str, depth: int):
    jobs_enqueued.labels(kind=kind).inc()
    job_queue_depth.set(depth)


def record_job_processed(kind: str, status: str, duration: float, depth: int):
    jobs_processed.labels(kind=kind, status=status).inc()
    job_duration.labels(kind=kind).observe(duration)
    job_queue_depth.set(depth)


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
