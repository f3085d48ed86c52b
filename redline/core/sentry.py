"""Centralised Sentry initialisation for library callers and the Celery worker."""

import structlog
import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = structlog.get_logger()

_SENSITIVE_KEYS = {"extracted_text", "extractedText"}


def _scrub_document_text(event: dict, hint: dict) -> dict:
    """Remove extracted document text from breadcrumbs and extra context."""
    extra = event.get("extra", {})
    for key in list(extra):
        if key in _SENSITIVE_KEYS:
            extra[key] = "[REDACTED]"
    for crumb in event.get("breadcrumbs", {}).get("values", []):
        data = crumb.get("data") or {}
        for key in list(data):
            if key in _SENSITIVE_KEYS:
                data[key] = "[REDACTED]"
    return event


def init_sentry(
    dsn: str | None,
    environment: str = "development",
    release: str | None = None,
) -> bool:
    """Initialise Sentry with the SQLAlchemy and Celery integrations.

    Call this BEFORE creating the Celery instance so that
    auto-instrumentation can hook in at import time.

    No-op when dsn is None or empty, so safe to call unconditionally.
    Returns True when Sentry was initialised.
    """
    if not dsn:
        logger.warning("sentry_disabled", reason="SENTRY_DSN not set")
        return False

    is_prod = environment == "production"

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        # Sample 10% of transactions in prod; 100% elsewhere for full visibility
        traces_sample_rate=0.1 if is_prod else 1.0,
        integrations=[
            SqlalchemyIntegration(),
            CeleryIntegration(monitor_beat_tasks=True),
        ],
        send_default_pii=False,      # Contract text never leaves the service
        before_send=_scrub_document_text,
    )
    logger.info(
        "sentry_initialized",
        environment=environment,
        traces_sample_rate=0.1 if is_prod else 1.0,
    )
    return True
