"""Prometheus metrics shared by the app and the route handlers"""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "eduspark_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "eduspark_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
AUTH_EVENTS = Counter(
    "eduspark_auth_events_total",
    "Account and session events",
    ["event"],
)
