"""Celery queue topology: exchanges, queues, task routing, and per-task limits."""

from kombu import Exchange, Queue  # type: ignore[import-untyped]

# ── Exchanges ─────────────────────────────────────────────────────────────────

default_exchange = Exchange("default", type="direct")

# ── Queues ────────────────────────────────────────────────────────────────────

CELERY_QUEUES = (
    # Default: anything without an explicit route
    Queue("default", default_exchange, routing_key="default"),
    # Comparisons: CPU-bound sentence diffs, isolated so they can't starve other work
    Queue("comparisons", default_exchange, routing_key="comparisons"),
    # Retention: version cleanup (lowest priority, never urgent)
    Queue("retention", default_exchange, routing_key="retention"),
)

# ── Task routing ──────────────────────────────────────────────────────────────

CELERY_TASK_ROUTES: dict[str, dict] = {
    "compare_document_versions":           {"queue": "comparisons"},
    "cleanup_old_document_versions":       {"queue": "retention"},
}

# ── Per-task rate limits and time limits ──────────────────────────────────────

CELERY_TASK_ANNOTATIONS: dict[str, dict] = {
    "compare_document_versions": {
        "rate_limit": "60/m",
        "time_limit": 120,
        "soft_time_limit": 90,
    },
    "cleanup_old_document_versions": {
        "time_limit": 900,
        "soft_time_limit": 840,
    },
}
