# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics — single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "assistant_requests_total",
    "Total HTTP requests to the assistant gateway",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "assistant_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "assistant_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Upstream generation ──
UPSTREAM_ATTEMPTS = Counter(
    "assistant_upstream_attempts_total",
    "Generation attempts by outcome",
    ["outcome"],
)
UPSTREAM_LATENCY = Histogram(
    "assistant_upstream_duration_seconds",
    "Latency of single generation attempts",
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0],
)
CREDENTIAL_ROTATIONS = Counter(
    "assistant_credential_rotations_total",
    "Credential rotations performed",
)
POOL_EXHAUSTED = Counter(
    "assistant_credential_pool_exhausted_total",
    "Dispatches that failed on every pooled credential",
)
THROTTLE_WAIT = Histogram(
    "assistant_throttle_wait_seconds",
    "Time callers spent waiting for a dispatch slot",
    buckets=[0, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# ── Business Metrics (updated by service layer only) ──
SNAPSHOT_FAILURES = Counter(
    "assistant_snapshot_failures_total",
    "Data-store snapshot reads that degraded to empty",
    ["category"],
)
SNAPSHOT_SKIPPED_RECORDS = Counter(
    "assistant_snapshot_skipped_records_total",
    "Malformed data-store records left out of a snapshot",
    ["category"],
)
RESTRICTED_REQUERIES = Counter(
    "assistant_restricted_requeries_total",
    "Second-stage dispatches triggered by the sentinel reply",
)
AUTH_REQUIRED_TOTAL = Counter(
    "assistant_auth_required_total",
    "Messages short-circuited because they need a signed-in caller",
)
REPORTS_SENT = Counter(
    "assistant_reports_total",
    "Report deliveries by status",
    ["status"],
)
