from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "path", "status"],
)

GATE_DECISIONS = Counter(
    "share_gate_decisions_total",
    "Access gate decisions",
    ["intent", "outcome"],
)
COUNTER_INCREMENTS = Counter(
    "share_counter_increments_total",
    "Share view/download counter updates",
    ["counter", "outcome"],
)
STORAGE_FAILURES = Counter(
    "share_storage_failures_total",
    "Object storage failures during share operations",
    ["operation"],
)


def observe_request(method: str, path: str, status: int, duration: float) -> None:
    REQUEST_COUNT.labels(method=method, path=path, status=str(status)).inc()
    REQUEST_LATENCY.labels(method=method, path=path, status=str(status)).observe(duration)
