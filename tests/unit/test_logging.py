"""Tests for structured logging"""

import logging

import pytest
import structlog

from lessonboard.core.logging import (
    REDACTED,
    add_request_id,
    clear_request_id,
    configure_logging,
    get_request_id,
    hash_subject,
    redact_secrets,
    set_request_id,
)


class TestSubjectHashing:
    """Test identity subject hashing for safe logging"""

    def test_hash_subject(self) -> None:
        subject = "auth0|65f1c0ffee"
        hashed = hash_subject(subject)

        assert hashed.startswith("sha256:")
        assert len(hashed) == 23  # "sha256:" (7) + 16 hex chars
        assert subject not in hashed

    def test_hash_subject_consistent(self) -> None:
        assert hash_subject("user-1") == hash_subject("user-1")

    def test_hash_subject_different_subjects(self) -> None:
        assert hash_subject("user-1") != hash_subject("user-2")


class TestRequestIDManagement:
    """Test request_id context variable management"""

    def test_set_request_id_explicit(self) -> None:
        result = set_request_id("test-request-123")

        assert result == "test-request-123"
        assert get_request_id() == "test-request-123"
        clear_request_id()

    def test_set_request_id_auto_generate(self) -> None:
        result = set_request_id()

        assert result.startswith("req_")
        assert len(result) == 16  # "req_" (4) + 12 hex chars
        assert get_request_id() == result
        clear_request_id()

    def test_clear_request_id(self) -> None:
        set_request_id("test-123")
        clear_request_id()
        assert get_request_id() is None


class TestAddRequestIDProcessor:
    """Test request_id processor for structlog"""

    def test_add_request_id_when_set(self) -> None:
        set_request_id("test-request-456")

        result = add_request_id(None, "info", {"event": "test"})

        assert result["request_id"] == "test-request-456"
        assert result["event"] == "test"
        clear_request_id()

    def test_add_request_id_when_not_set(self) -> None:
        clear_request_id()

        result = add_request_id(None, "info", {"event": "test"})

        assert "request_id" not in result


class TestRedactSecrets:
    """Test masking of tokens and keys in log entries"""

    @pytest.mark.parametrize(
        "key", ["access_token", "id_token", "client_secret", "code", "nonce", "Authorization"]
    )
    def test_sensitive_keys_masked(self, key: str) -> None:
        result = redact_secrets(None, "info", {"event": "test", key: "s3cr3t"})
        assert result[key] == REDACTED

    def test_other_keys_untouched(self) -> None:
        event = {"event": "signin_failed", "error_code": "AUTH_REQUIRED", "status_code": 401}
        assert redact_secrets(None, "info", dict(event)) == event

    def test_none_kept(self) -> None:
        assert redact_secrets(None, "info", {"access_token": None})["access_token"] is None


class TestLoggingConfiguration:
    """Test logging configuration"""

    def test_configure_logging_json_format(self, caplog: pytest.LogCaptureFixture) -> None:
        configure_logging(log_level="INFO", log_format="json")
        logger = structlog.get_logger("test.json")

        with caplog.at_level(logging.INFO):
            logger.info("video_lookup_miss", video_id="v9")

        assert "video_lookup_miss" in caplog.text

    def test_configure_logging_console_format(self) -> None:
        configure_logging(log_level="DEBUG", log_format="console")
        # Should not raise
        structlog.get_logger("test.console").debug("debug message")

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    def test_configure_logging_levels(self, level: str) -> None:
        configure_logging(log_level=level, log_format="json")
        structlog.get_logger(f"test_{level}").info("test", level=level)

    def test_subject_not_logged_in_plain_text(self, caplog: pytest.LogCaptureFixture) -> None:
        configure_logging(log_level="INFO", log_format="json")
        logger = structlog.get_logger("test.redaction")
        subject = "auth0|secret-subject"

        with caplog.at_level(logging.INFO):
            logger.info("signin_completed", subject=hash_subject(subject))

        assert subject not in caplog.text

    def test_tokens_not_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        configure_logging(log_level="INFO", log_format="json")
        logger = structlog.get_logger("test.tokens")

        with caplog.at_level(logging.INFO):
            logger.info("token_received", access_token="eyJhbGciOi.secret", code="auth-code-1")

        assert "eyJhbGciOi.secret" not in caplog.text
        assert "auth-code-1" not in caplog.text
        assert REDACTED in caplog.text
