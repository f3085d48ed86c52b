"""Tests for the error envelope, Sentry setup and settings."""

from __future__ import annotations

import uuid

from redline.core import errors
from redline.core.config import Settings
from redline.core.errors import (
    ComparisonCancelledError,
    ComparisonNotFoundError,
    VersionNotFoundError,
    VersionValidationError,
    error_response,
)
from redline.core.sentry import _scrub_document_text, init_sentry


class TestErrorHierarchy:
    def test_not_found_errors_are_lookup_errors(self):
        assert issubclass(VersionNotFoundError, LookupError)
        assert issubclass(ComparisonNotFoundError, LookupError)

    def test_validation_error_is_value_error(self):
        assert issubclass(VersionValidationError, ValueError)

    def test_version_not_found_lists_ids(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        exc = VersionNotFoundError(a, b)
        assert exc.version_ids == (a, b)
        assert str(a) in str(exc) and str(b) in str(exc)


class TestErrorResponse:
    def test_version_not_found(self):
        missing = uuid.uuid4()
        response = error_response(VersionNotFoundError(missing))
        assert response.error == "not_found"
        assert response.detail == {"version_ids": [str(missing)]}

    def test_comparison_not_found(self):
        assert error_response(ComparisonNotFoundError(uuid.uuid4())).error == "not_found"

    def test_validation(self):
        response = error_response(VersionValidationError("wrong document"))
        assert response.error == "validation_error"
        assert response.message == "wrong document"

    def test_cancelled(self):
        assert error_response(ComparisonCancelledError("deadline")).error == "cancelled"

    def test_unexpected_error_is_reported(self, monkeypatch):
        captured = []
        monkeypatch.setattr(errors.sentry_sdk, "capture_exception", captured.append)

        exc = RuntimeError("boom")
        response = error_response(exc)

        assert response.error == "internal_error"
        assert "boom" not in response.message
        assert captured == [exc]


class TestSentry:
    def test_disabled_without_dsn(self):
        assert init_sentry(None) is False
        assert init_sentry("") is False

    def test_scrubs_extracted_text(self):
        event = {
            "extra": {"extracted_text": "secret clause", "document_id": "d1"},
            "breadcrumbs": {"values": [{"data": {"extractedText": "secret clause"}}]},
        }
        scrubbed = _scrub_document_text(event, {})
        assert scrubbed["extra"]["extracted_text"] == "[REDACTED]"
        assert scrubbed["extra"]["document_id"] == "d1"
        assert scrubbed["breadcrumbs"]["values"][0]["data"]["extractedText"] == "[REDACTED]"


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("VERSION_RETENTION_DAYS", "RETENTION_BATCH_SIZE", "APP_ENV"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.VERSION_RETENTION_DAYS == 30
        assert settings.RETENTION_BATCH_SIZE == 10_000
        assert settings.COMPARISON_TIMEOUT_SECONDS == 30.0
        assert settings.SENTRY_DSN is None

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("VERSION_RETENTION_DAYS", "90")
        assert Settings(_env_file=None).VERSION_RETENTION_DAYS == 90
