"""Tests for musicdiary.utils.logging."""

from __future__ import annotations

import logging

import pytest
from rich.logging import RichHandler

from musicdiary.ai.client import AIClientError, AIServerError
from musicdiary.utils.logging import PACKAGE_NAME, LogContext, RedactingFilter, level_for, setup_logging

TEST_LOGGER = "musicdiary-tests.logctx"


@pytest.fixture
def package_logger():
    """Restore the package logger after setup_logging replaces its handlers."""
    package = logging.getLogger(PACKAGE_NAME)
    saved = (list(package.handlers), package.level, package.propagate)
    yield package
    package.handlers, package.level, package.propagate = saved[0], saved[1], saved[2]


def make_record(msg, args=()):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


# =============================================================================
# Setup
# =============================================================================


class TestSetupLogging:
    """Tests for handler installation."""

    @pytest.mark.parametrize(
        "verbose,debug,expected",
        [(False, False, "WARNING"), (True, False, "INFO"), (False, True, "DEBUG"), (True, True, "DEBUG")],
    )
    def test_level_for_flags(self, verbose, debug, expected):
        assert level_for(verbose, debug) == expected

    def test_installs_single_redacting_handler(self, package_logger):
        setup_logging("INFO")
        handler = setup_logging("DEBUG")

        assert package_logger.handlers == [handler]
        assert isinstance(handler, RichHandler)
        assert any(isinstance(f, RedactingFilter) for f in handler.filters)
        assert package_logger.level == logging.DEBUG
        assert package_logger.propagate is False

    def test_unknown_level_defaults_to_warning(self, package_logger):
        setup_logging("chatty")

        assert package_logger.level == logging.WARNING

    def test_child_logger_records_are_redacted(self, package_logger):
        handler = setup_logging("INFO")
        key = "AIza" + "C" * 35
        record = logging.LogRecord(f"{PACKAGE_NAME}.ai.client", logging.INFO, __file__, 1, f"key {key}", (), None)

        for log_filter in handler.filters:
            log_filter.filter(record)

        assert key not in record.getMessage()


# =============================================================================
# Redaction
# =============================================================================


class TestRedactingFilter:
    """Tests for API key redaction in log records."""

    def test_redacts_gemini_key(self):
        key = "AIza" + "B" * 35
        record = make_record(f"using {key}")

        RedactingFilter().filter(record)

        assert key not in record.msg
        assert "[REDACTED]" in record.msg

    def test_redacts_key_assignment_in_args(self):
        record = make_record("config: %s", ("api_key=abcdefghijklmnopqrstuvwxyz",))

        RedactingFilter().filter(record)

        assert record.args == ("api_key=[REDACTED]",)

    def test_plain_messages_untouched(self):
        record = make_record("Analyzing memory completed in 1.20s")

        RedactingFilter().filter(record)

        assert record.msg == "Analyzing memory completed in 1.20s"


# =============================================================================
# LogContext
# =============================================================================


class TestLogContext:
    """Tests for the timing context manager."""

    def test_logs_start_and_completion(self, caplog):
        logger = logging.getLogger(TEST_LOGGER)

        with caplog.at_level(logging.DEBUG, logger=TEST_LOGGER):
            with LogContext("Analyzing memory", logger=logger) as ctx:
                pass

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Analyzing memory..."
        assert messages[1].startswith("Analyzing memory completed in")
        assert ctx.elapsed >= 0

    def test_expected_failure_logged_at_debug(self, caplog):
        logger = logging.getLogger(TEST_LOGGER)

        with caplog.at_level(logging.DEBUG, logger=TEST_LOGGER):
            with pytest.raises(AIServerError):
                with LogContext("Analyzing memory", logger=logger, expected=(AIClientError,)):
                    raise AIServerError()

        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert "gave up" in caplog.records[-1].getMessage()
        assert caplog.records[-1].levelno == logging.DEBUG

    def test_unexpected_failure_logged_as_error(self, caplog):
        logger = logging.getLogger(TEST_LOGGER)

        with caplog.at_level(logging.DEBUG, logger=TEST_LOGGER):
            with pytest.raises(TypeError):
                with LogContext("Analyzing memory", logger=logger, expected=(AIClientError,)):
                    raise TypeError("bad call")

        last = caplog.records[-1]
        assert last.levelno == logging.ERROR
        assert "failed after" in last.getMessage()
        assert "TypeError" in last.getMessage()
