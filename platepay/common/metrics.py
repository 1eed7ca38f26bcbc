"""Prometheus metric definitions shared across the checkout services."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


payment_success_total = Counter(
    "payment_success_total",
    "Total successful PayPal operations",
    ["service", "operation"],
)
payment_failure_total = Counter(
    "payment_failure_total",
    "Total failed PayPal operations",
    ["service", "operation", "code"],
)
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
paypal_request_duration_seconds = Histogram(
    "paypal_request_duration_seconds",
    "Duration of single outbound PayPal attempts",
    ["service", "endpoint"],
)
paypal_orders_total = Counter(
    "paypal_orders_total",
    "PayPal order operations by outcome",
    ["service", "operation", "outcome"],
)
retries_total = Counter("retries_total", "Retry count", ["service", "dependency"])


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
