"""Central Gemini API Client for MusicDiary.

This module is the SOLE INTERFACE to the Gemini API. No other file in the
codebase should import google-genai.

The client provides:
- Retry logic with exponential backoff and jitter
- Typed exceptions for predictable error handling
- Structured JSON responses validated by the caller
- Image generation returning raw bytes plus MIME type
- Security-first logging (never logs secrets, prompts, or responses)

Example:
    >>> from musicdiary.ai.client import AIClient, AIClientError
    >>>
    >>> client = AIClient()
    >>> try:
    ...     response = client.generate_json(prompt, response_schema=schema)
    ... except AIClientError:
    ...     use_fallback()

Security Rules:
- NEVER log API keys
- NEVER log full prompts (they contain diary entries)
- NEVER log full responses
"""

from __future__ import annotations

import json
import logging
import random
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Literal

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel, Field

from musicdiary.config import APIKeyNotFoundError, AppConfig, get_api_key, get_config
from musicdiary.exceptions import MusicDiaryError
from musicdiary.utils.logging import RedactingFilter

logger = logging.getLogger(__name__)
logger.addFilter(RedactingFilter())


# =============================================================================
# Exception Hierarchy
# =============================================================================


class AIClientError(MusicDiaryError):
    """Base exception for all AI client errors.

    Attributes:
        message: Human-readable error description (safe to log).
        retriable: Whether the operation can be retried.
        original_error: The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        retriable: bool = False,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retriable = retriable
        self.original_error = original_error

    def __str__(self) -> str:
        return self.message


class AIUnavailableError(AIClientError):
    """AI service is not available (disabled or no key).

    Signals that callers should use the fallback analysis.
    """

    def __init__(
        self,
        reason: Literal["disabled", "no_api_key", "offline"],
        message: str | None = None,
    ) -> None:
        self.reason = reason
        default_messages = {
            "disabled": "AI features are disabled in configuration",
            "no_api_key": "No Gemini API key configured",
            "offline": "Cannot reach Gemini API",
        }
        super().__init__(message or default_messages.get(reason, f"AI unavailable: {reason}"))


class AIAuthenticationError(AIClientError):
    """API key is invalid or expired. Never retriable."""

    def __init__(
        self,
        message: str = "API authentication failed. Please check your API key.",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, retriable=False, original_error=original_error)


class AIRateLimitError(AIClientError):
    """Rate limit exceeded. Retriable after waiting."""

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please wait before retrying.",
        retry_after_seconds: float | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, retriable=True, original_error=original_error)
        self.retry_after_seconds = retry_after_seconds


class AIQuotaExceededError(AIClientError):
    """Quota or billing limit reached. Not retriable."""

    def __init__(
        self,
        message: str = "API quota exceeded. Check your billing and usage limits.",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, retriable=False, original_error=original_error)


class AIServerError(AIClientError):
    """Server-side error (5xx). Retriable."""

    def __init__(
        self,
        message: str = "AI server error. The service may be temporarily unavailable.",
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, retriable=True, original_error=original_error)
        self.status_code = status_code


class AIBadRequestError(AIClientError):
    """Invalid request (bad parameters, unknown model). Not retriable."""

    def __init__(
        self,
        message: str = "Invalid request to AI service.",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, retriable=False, original_error=original_error)


class AITimeoutError(AIClientError):
    """Request timed out. Retriable."""

    def __init__(
        self,
        timeout_seconds: float,
        message: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        msg = message or f"Request timed out after {timeout_seconds} seconds"
        super().__init__(msg, retriable=True, original_error=original_error)
        self.timeout_seconds = timeout_seconds


class ContentBlockedError(AIClientError):
    """Content was blocked by safety filters. Not retriable."""

    def __init__(
        self,
        message: str = "Content blocked by safety filters.",
        blocked_reason: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, retriable=False, original_error=original_error)
        self.blocked_reason = blocked_reason


class EmptyResponseError(AIClientError):
    """The model answered without the expected text or image."""

    def __init__(self, message: str = "No usable content in AI response") -> None:
        super().__init__(message, retriable=False)


# =============================================================================
# Response Models
# =============================================================================


class StructuredAIResponse(BaseModel):
    """Response when requesting JSON output.

    If JSON parsing fails, parse_success is False and parse_error holds the
    reason; data is then an empty dict.
    """

    data: dict[str, Any] | list[Any] = Field(default_factory=dict)
    raw_text: str
    model: str
    latency_ms: float | None = None
    parse_success: bool = True
    parse_error: str | None = None


@dataclass
class ImageResponse:
    """Generated image bytes."""

    data: bytes = field(repr=False)
    mime_type: str
    model: str
    latency_ms: float | None = None


# =============================================================================
# Main AI Client Class
# =============================================================================


class AIClient:
    """Client for all Gemini API communication.

    The SDK client is created lazily on first use, so constructing an
    AIClient never makes a network call.

    Args:
        config: Application configuration. If None, uses get_config().
        api_key: Override API key. If None, resolved via get_api_key().
        sdk_client: Pre-built ``google.genai.Client`` (used by tests).
        sleep: Sleep function used between retries.
    """

    MAX_RETRY_DELAY: float = 30.0

    def __init__(
        self,
        config: AppConfig | None = None,
        api_key: str | None = None,
        sdk_client: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config or get_config()
        self._api_key = api_key
        self._sdk_client = sdk_client
        self._sleep = sleep
        self._logger = logging.getLogger(f"{__name__}.AIClient")

    @property
    def config(self) -> AppConfig:
        return self._config

    def is_available(self) -> bool:
        """True if AI is enabled and a key is configured. No API call."""
        if not self._config.ai.is_enabled():
            return False
        if self._sdk_client is not None or self._api_key:
            return True
        try:
            get_api_key()
            return True
        except APIKeyNotFoundError:
            return False

    def _get_sdk_client(self) -> Any:
        if not self._config.ai.is_enabled():
            raise AIUnavailableError("disabled")

        if self._sdk_client is None:
            if not self._api_key:
                try:
                    self._api_key = get_api_key().get_secret_value()
                except APIKeyNotFoundError as e:
                    raise AIUnavailableError("no_api_key") from e
            self._sdk_client = genai.Client(api_key=self._api_key)
            self._logger.debug("Gemini SDK client created")

        return self._sdk_client

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def generate_json(
        self,
        prompt: str,
        response_schema: Any = None,
        system_instruction: str | None = None,
        model: str | None = None,
        **overrides: Any,
    ) -> StructuredAIResponse:
        """Generate a JSON response and parse it.

        Args:
            prompt: The user prompt.
            response_schema: Schema the model must follow.
            system_instruction: Optional persona / instruction.
            model: Model name (defaults to the configured analysis model).
            **overrides: Extra ``GenerateContentConfig`` fields.

        Returns:
            StructuredAIResponse; parse_success is False when the text was not JSON.

        Raises:
            AIClientError: On API failure after retries, blocked content, or empty text.
        """
        client = self._get_sdk_client()
        model_name = model or self._config.ai.analysis_model

        overrides.setdefault("temperature", self._config.ai.temperature)
        gen_config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=response_schema,
            system_instruction=system_instruction,
            **overrides,
        )

        start_time = time.time()
        raw_response = self._execute_with_retry(
            client.models.generate_content,
            model=model_name,
            contents=prompt,
            config=gen_config,
        )
        latency_ms = (time.time() - start_time) * 1000

        self._check_blocked(raw_response)
        text = raw_response.text
        if not text:
            raise EmptyResponseError("No text in AI response")

        data, parse_error = _parse_json_text(text)
        self._logger.info(f"JSON generation finished in {latency_ms:.0f}ms (model={model_name})")

        return StructuredAIResponse(
            data=data if data is not None else {},
            raw_text=text,
            model=model_name,
            latency_ms=latency_ms,
            parse_success=parse_error is None,
            parse_error=parse_error,
        )

    def generate_image(self, prompt: str, model: str | None = None) -> ImageResponse:
        """Generate an image and return the first inline image part.

        Raises:
            EmptyResponseError: If no image part came back.
            AIClientError: On API failure after retries.
        """
        client = self._get_sdk_client()
        model_name = model or self._config.ai.image_model

        start_time = time.time()
        raw_response = self._execute_with_retry(
            client.models.generate_content,
            model=model_name,
            contents=prompt,
        )
        latency_ms = (time.time() - start_time) * 1000

        self._check_blocked(raw_response)
        for part in _response_parts(raw_response):
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                self._logger.info(f"Image generated in {latency_ms:.0f}ms (model={model_name})")
                return ImageResponse(
                    data=inline.data,
                    mime_type=inline.mime_type or "image/png",
                    model=model_name,
                    latency_ms=latency_ms,
                )

        raise EmptyResponseError("No image generated")

    # -------------------------------------------------------------------------
    # Retry & error mapping
    # -------------------------------------------------------------------------

    def _execute_with_retry(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute ``func``, retrying retriable failures with backoff + jitter."""
        retries = self._config.ai.max_retries
        base_delay = self._config.ai.retry_base_delay

        for attempt in range(retries + 1):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                mapped_error = self._map_exception(e, model=kwargs.get("model"))
                cause = None if mapped_error is e else e

                if not mapped_error.retriable:
                    self._logger.error(f"Generation failed: {type(mapped_error).__name__}")
                    raise mapped_error from cause

                if attempt >= retries:
                    self._logger.error(
                        f"Max retries ({retries}) exhausted: {type(mapped_error).__name__}"
                    )
                    raise mapped_error from cause

                delay = min(base_delay * (2**attempt), self.MAX_RETRY_DELAY)
                total_delay = delay + random.uniform(0, base_delay)
                if isinstance(mapped_error, AIRateLimitError) and mapped_error.retry_after_seconds:
                    total_delay = max(total_delay, mapped_error.retry_after_seconds)

                self._logger.warning(
                    f"Retry {attempt + 1}/{retries} after {total_delay:.1f}s: "
                    f"{type(mapped_error).__name__}"
                )
                self._sleep(total_delay)

        raise AIClientError("Unknown error during retry")

    def _map_exception(self, error: Exception, model: str | None = None) -> AIClientError:
        """Map SDK exceptions to our exception hierarchy."""
        if isinstance(error, AIClientError):
            return error

        error_str = str(error).lower()

        if isinstance(error, genai_errors.APIError):
            code = error.code
            if code in (401, 403):
                return AIAuthenticationError(original_error=error)
            if code == 429:
                if "quota" in error_str and "per minute" not in error_str:
                    return AIQuotaExceededError(original_error=error)
                return AIRateLimitError(original_error=error)
            if code == 404:
                return AIBadRequestError(
                    f"Model not found: {model or self._config.ai.analysis_model}", original_error=error
                )
            if code == 504:
                return AITimeoutError(self._config.ai.timeout_seconds, original_error=error)
            if code is not None and code >= 500:
                return AIServerError(status_code=code, original_error=error)
            if code is not None and 400 <= code < 500:
                return AIBadRequestError(str(error), original_error=error)

        # Fallback pattern matching on error message
        if "blocked" in error_str or "safety" in error_str:
            return ContentBlockedError(original_error=error)
        if "timeout" in error_str or "timed out" in error_str or "deadline" in error_str:
            return AITimeoutError(self._config.ai.timeout_seconds, original_error=error)
        if "connection" in error_str or "network" in error_str:
            return AIServerError("Network error talking to Gemini", original_error=error)
        if "429" in error_str or "rate limit" in error_str:
            return AIRateLimitError(original_error=error)

        return AIClientError(str(error), retriable=False, original_error=error)

    def _check_blocked(self, raw_response: Any) -> None:
        feedback = getattr(raw_response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if block_reason:
            raise ContentBlockedError(blocked_reason=str(block_reason))


# =============================================================================
# Helpers
# =============================================================================


def _response_parts(raw_response: Any) -> list[Any]:
    candidates = getattr(raw_response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


def _parse_json_text(text: str) -> tuple[dict[str, Any] | list[Any] | None, str | None]:
    """Parse JSON, tolerating a markdown code fence around it."""
    text = text.strip()
    try:
        return json.loads(text), None
    except json.JSONDecodeError as e:
        fenced = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
        if fenced:
            try:
                return json.loads(fenced.group(1)), None
            except json.JSONDecodeError:
                return None, f"JSON parse error in code block: {e.msg}"
        return None, f"JSON parse error: {e.msg}"


def get_client(config: AppConfig | None = None) -> AIClient:
    """Factory function to create a configured AI client."""
    return AIClient(config=config)
