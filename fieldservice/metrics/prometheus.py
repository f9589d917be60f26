# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "fieldservice_requests_total",
    "Total HTTP requests to the field-service client",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "fieldservice_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "fieldservice_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Remote gateway ──
GATEWAY_CALLS = Counter(
    "fieldservice_gateway_calls_total",
    "Calls to the spreadsheet API by action and outcome",
    ["action", "outcome"],
)
GATEWAY_LATENCY = Histogram(
    "fieldservice_gateway_call_duration_seconds",
    "Round-trip time of spreadsheet API calls",
    ["action"],
)

# ── Synchronization (updated by service layer only) ──
RELOADS_TOTAL = Counter(
    "fieldservice_reloads_total",
    "Full state reloads by mode and outcome",
    ["mode", "outcome"],
)
LAST_SYNC_TIMESTAMP = Gauge(
    "fieldservice_last_sync_timestamp_seconds",
    "Unix time of the last successful full reload",
)
ROLLBACKS_TOTAL = Counter(
    "fieldservice_rollbacks_total",
    "Optimistic changes reverted after a failed remote call",
    ["collection", "action"],
)
APPLICATIONS_TOTAL = Counter(
    "fieldservice_applications_total",
    "Apply / cancel requests confirmed by the server",
    ["direction"],
)
ASSIGNMENT_SAVES = Counter(
    "fieldservice_assignment_saves_total",
    "Pairing and spot-grid saves",
    ["engine"],
)
