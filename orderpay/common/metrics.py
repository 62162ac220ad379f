"""Prometheus metric definitions for the order service."""

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
orders_created_total = Counter("orders_created_total", "Orders created on first-time requests", ["service"])
idempotent_replays_total = Counter(
    "idempotent_replays_total",
    "Create-order requests answered from a stored idempotency record",
    ["service"],
)
idempotency_conflicts_total = Counter(
    "idempotency_conflicts_total",
    "Concurrent idempotency inserts that lost the unique-key race",
    ["service"],
)
idempotency_lookup_failures_total = Counter(
    "idempotency_lookup_failures_total",
    "Idempotency lookups degraded to a miss because the store failed",
    ["service"],
)
webhook_verifications_total = Counter(
    "webhook_verifications_total",
    "Inbound webhook signature checks by result",
    ["service", "result"],
)
webhook_deliveries_total = Counter(
    "webhook_deliveries_total",
    "Outbound simulated payment webhooks by outcome",
    ["service", "outcome"],
)
payment_simulation_seconds = Histogram(
    "payment_simulation_seconds",
    "Time from dequeue to webhook response for one simulated payment",
    ["service"],
)
dispatch_queue_depth = Gauge(
    "dispatch_queue_depth",
    "Payment simulation jobs waiting in the in-process queue",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
