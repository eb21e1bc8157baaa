from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# Resolver metrics
# ---------------------------------------------------------------------------
link_resolve_requests_total = Counter(
    "link_resolve_requests_total",
    "Total link metadata resolutions by final outcome",
    ["outcome"],
)
link_resolve_duration_seconds = Histogram(
    "link_resolve_duration_seconds",
    "Wall-clock time spent resolving one link",
    buckets=[0.1, 0.25, 0.5, 1, 2, 3, 5, 7.5, 10],
)
link_fetch_attempts_total = Counter(
    "link_fetch_attempts_total",
    "Outbound fetch attempts by header profile, range mode and result",
    ["profile", "range", "result"],
)


def get_metrics() -> bytes:
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
