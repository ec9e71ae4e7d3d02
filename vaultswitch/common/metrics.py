"""Prometheus metric definitions for the switch service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


switch_scans_total = Counter("switch_scans_total", "Inactivity scans run", ["service", "outcome"])
switch_scan_duration_seconds = Histogram(
    "switch_scan_duration_seconds",
    "Wall-clock duration of one inactivity scan",
    ["service"],
)
switches_evaluated_total = Counter(
    "switches_evaluated_total",
    "Switches classified during scans",
    ["service", "classification"],
)
notifications_total = Counter(
    "notifications_total",
    "Notification delivery attempts",
    ["service", "kind", "status"],
)
notifications_deduplicated_total = Counter(
    "notifications_deduplicated_total",
    "Notifications skipped because one was already sent inside the dedup window",
    ["service", "kind"],
)
switches_triggered_total = Counter("switches_triggered_total", "Switches moved to TRIGGERED", ["service"])
check_ins_total = Counter("check_ins_total", "Owner check-ins recorded", ["service"])
access_token_validations_total = Counter(
    "access_token_validations_total",
    "Delegated-access token validations",
    ["service", "outcome"],
)
optimistic_conflicts_total = Counter(
    "optimistic_conflicts_total",
    "Conditional switch updates that lost a race",
    ["service", "operation"],
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


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
