"""
Prometheus metrics module for Booka.

Metrics live in a private registry and are exposed by ``GET /metrics``.
Service timings come from ``BaseService.measure_operation``; the payment
counters are recorded by the retry worker and the webhook ingestor.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

http_request_duration_seconds = Histogram(
    "booka_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_total = Counter(
    "booka_http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

service_operation_duration_seconds = Histogram(
    "booka_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "booka_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "booka_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

# Payment-specific counters
transaction_retries_total = Counter(
    "booka_transaction_retries_total",
    "Transaction retry attempts by outcome",
    ["outcome"],  # success | failure | resubmitted
    registry=REGISTRY,
)

webhook_events_total = Counter(
    "booka_webhook_events_total",
    "Inbound payment webhooks by provider and result",
    ["provider", "result"],  # stored | invalid_signature | not_configured
    registry=REGISTRY,
)

deposits_initiated_total = Counter(
    "booka_deposits_initiated_total",
    "Deposit initiation outcomes",
    ["provider", "outcome"],  # created | duplicate | skipped
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_http_request(method: str, endpoint: str, duration: float, status_code: int) -> None:
        labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}
        http_request_duration_seconds.labels(**labels).observe(duration)
        http_requests_total.labels(**labels).inc()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: str | None = None,
    ) -> None:
        """Record service operation metrics."""
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_transaction_retry(outcome: str, count: int = 1) -> None:
        if count > 0:
            transaction_retries_total.labels(outcome=outcome).inc(count)

    @staticmethod
    def record_webhook(provider: str, result: str) -> None:
        webhook_events_total.labels(provider=provider, result=result).inc()

    @staticmethod
    def record_deposit(provider: str, outcome: str) -> None:
        deposits_initiated_total.labels(provider=provider, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate the Prometheus exposition payload."""
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
