"""
Prometheus metrics for monitoring.

Metrics collected:
- HTTP request duration, count and in-flight requests
- Access decisions by collection, operation and outcome
- Tenant resolution by source (including rejected cookies)
- Guest-writer quota checks
- Public tenant lookup cache hits and misses
"""

import time
from functools import wraps

from prometheus_client import Counter, Gauge, Histogram, Info

from tenantcms.config import settings

# Application info
app_info = Info("tenantcms_app", "TenantCMS application information")
app_info.info({
    "version": settings.app_version,
    "environment": settings.environment,
})

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method"],
)

# Access control metrics
access_decisions_total = Counter(
    "access_decisions_total",
    "Access decisions by collection, operation and outcome (allow, deny, filter)",
    ["collection", "operation", "outcome"],
)

tenant_resolutions_total = Counter(
    "tenant_resolutions_total",
    "Tenant resolutions by source",
    ["source"],
)

guest_writer_quota_checks_total = Counter(
    "guest_writer_quota_checks_total",
    "Guest-writer quota checks by outcome",
    ["outcome"],
)

# Cache metrics
cache_operations_total = Counter(
    "cache_operations_total",
    "Total cache operations",
    ["namespace", "hit"],
)

# Database metrics
db_query_duration_seconds = Histogram(
    "db_query_duration_seconds",
    "Store operation duration in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)


def track_time(metric: Histogram, labels: dict | None = None):
    """
    Decorator to track async function execution time.

    Usage:
        @track_time(db_query_duration_seconds, {"operation": "count"})
        async def count(...):
            ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                duration = time.perf_counter() - start_time
                if labels:
                    metric.labels(**labels).observe(duration)
                else:
                    metric.observe(duration)
        return wrapper
    return decorator
