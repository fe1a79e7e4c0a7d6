"""Logging for the musicdiary package.

The CLI calls ``setup_logging`` once per invocation. Records from every
``musicdiary.*`` logger go to a Rich handler on stderr, so they never mix
with command output on stdout. The handler carries a ``RedactingFilter``
that masks API keys in every package record.

``LogContext`` times one AI call. Failures the caller is about to absorb
(the provider turns AI client errors into the fallback analysis) are passed
as ``expected`` and only logged at DEBUG, leaving the single user-facing
warning to the caller.

Example:
    >>> setup_logging("INFO")
    >>> with LogContext("Analyzing memory", logger=logger, expected=(AIClientError,)):
    ...     client.generate_json(prompt)
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_NAME = "musicdiary"

# Third-party loggers that chatter at INFO about every HTTP request.
NOISY_LOGGERS = ("google_genai", "httpx", "httpcore", "urllib3", "keyring")

_console = Console(stderr=True)


class RedactingFilter(logging.Filter):
    """Masks anything resembling an API key or bearer token."""

    _ASSIGNED = (
        re.compile(r'((?:api_key|key|token|secret)\s*[=:]\s*)["\']?([a-zA-Z0-9_\-]{20,})["\']?', re.IGNORECASE),
        re.compile(r"(bearer\s+)([a-zA-Z0-9_\-]{20,})", re.IGNORECASE),
    )
    # Gemini keys start with AIza
    _BARE = (re.compile(r"\bAIza[a-zA-Z0-9_\-]{30,}\b"),)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self.redact(a) if isinstance(a, str) else a for a in record.args)
        return True

    def redact(self, text: str) -> str:
        for pattern in self._ASSIGNED:
            text = pattern.sub(r"\1[REDACTED]", text)
        for pattern in self._BARE:
            text = pattern.sub("[REDACTED]", text)
        return text


def level_for(verbose: bool = False, debug: bool = False) -> str:
    """Map the CLI's --verbose/--debug flags to a level name."""
    if debug:
        return "DEBUG"
    return "INFO" if verbose else "WARNING"


def setup_logging(level: str = "WARNING") -> logging.Handler:
    """Route package logs to stderr through Rich, replacing earlier handlers.

    Returns:
        The installed handler.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    package_logger = logging.getLogger(PACKAGE_NAME)
    package_logger.setLevel(numeric_level)
    package_logger.handlers = []
    package_logger.propagate = False

    handler = RichHandler(
        console=_console,
        show_time=False,
        show_path=numeric_level == logging.DEBUG,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setLevel(numeric_level)
    handler.addFilter(RedactingFilter())
    package_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    package_logger.debug(f"Logging configured at {level.upper()}")
    return handler


class LogContext:
    """Times a block and logs its start and outcome.

    Attributes:
        elapsed: Seconds spent inside the block, set on exit.
    """

    def __init__(
        self,
        message: str,
        level: int = logging.INFO,
        logger: logging.Logger | None = None,
        expected: tuple[type[BaseException], ...] = (),
    ) -> None:
        self.message = message
        self.level = level
        self.logger = logger or logging.getLogger(PACKAGE_NAME)
        self.expected = expected
        self.elapsed = 0.0
        self._start = 0.0

    def __enter__(self) -> "LogContext":
        self._start = time.perf_counter()
        self.logger.log(self.level, f"{self.message}...")
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.elapsed = time.perf_counter() - self._start

        if exc_type is None:
            self.logger.log(self.level, f"{self.message} completed in {self.elapsed:.2f}s")
        elif issubclass(exc_type, self.expected):
            self.logger.debug(f"{self.message} gave up after {self.elapsed:.2f}s: {exc_type.__name__}")
        else:
            self.logger.error(f"{self.message} failed after {self.elapsed:.2f}s: {exc_type.__name__}")
