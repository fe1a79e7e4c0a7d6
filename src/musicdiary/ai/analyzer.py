"""Analysis provider: Gemini-backed emotion analysis and mood artwork.

Provider failure is an expected outcome, not an exceptional one. ``analyze``
returns an ``AnalysisOutcome`` that carries either the model's analysis or
the fixed fallback payload, and ``generate_image`` returns an empty string
when no image could be produced. Only errors outside the AI client's
taxonomy (programming errors) escape.

Example:
    >>> provider = GeminiAnalysisProvider(AIClient())
    >>> outcome = provider.analyze("", song, 30, ["Nostalgic"], date.today(), Language.EN)
    >>> if outcome.is_fallback:
    ...     print("AI unavailable:", outcome.error)
    >>> image_url = provider.generate_image(outcome.analysis.image_prompt)
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from pydantic import ValidationError

from musicdiary.ai.client import AIClient, AIClientError
from musicdiary.ai.fallback import fallback_analysis
from musicdiary.ai.prompts import (
    SYSTEM_INSTRUCTIONS,
    analysis_schema,
    build_analysis_prompt,
    build_image_prompt,
)
from musicdiary.core.models import AnalysisResult, Language, SongInput
from musicdiary.utils.logging import LogContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of an analysis attempt.

    Attributes:
        analysis: The analysis to store (real or fallback).
        is_fallback: True when the fallback payload was substituted.
        error: Short reason for the fallback, safe to log.
    """

    analysis: AnalysisResult
    is_fallback: bool = False
    error: str | None = None

    @classmethod
    def success(cls, analysis: AnalysisResult) -> "AnalysisOutcome":
        return cls(analysis=analysis)

    @classmethod
    def fallback(cls, language: Language, error: str) -> "AnalysisOutcome":
        return cls(analysis=fallback_analysis(language), is_fallback=True, error=error)


class AnalysisProvider(Protocol):
    """What the creation sequence needs from the AI side."""

    def analyze(
        self,
        content: str,
        song: SongInput,
        mood_score: int,
        tags: list[str],
        record_date: date,
        language: Language,
    ) -> AnalysisOutcome: ...

    def generate_image(self, prompt: str) -> str: ...


class GeminiAnalysisProvider:
    """AnalysisProvider backed by the Gemini client."""

    def __init__(self, client: AIClient) -> None:
        self._client = client

    def analyze(
        self,
        content: str,
        song: SongInput,
        mood_score: int,
        tags: list[str],
        record_date: date,
        language: Language,
    ) -> AnalysisOutcome:
        language = Language(language)
        prompt = build_analysis_prompt(content, song, mood_score, tags, record_date, language)

        try:
            with LogContext("Analyzing memory", logger=logger, expected=(AIClientError,)):
                response = self._client.generate_json(
                    prompt,
                    response_schema=analysis_schema(language),
                    system_instruction=SYSTEM_INSTRUCTIONS[language],
                )
        except AIClientError as e:
            logger.warning(f"Analysis unavailable, using fallback: {type(e).__name__}")
            return AnalysisOutcome.fallback(language, e.message)

        if not response.parse_success or not isinstance(response.data, dict):
            logger.warning("Analysis response was not a JSON object, using fallback")
            return AnalysisOutcome.fallback(language, response.parse_error or "unexpected JSON shape")

        try:
            analysis = AnalysisResult.model_validate(response.data)
        except ValidationError as e:
            logger.warning(f"Analysis response failed validation ({e.error_count()} errors), using fallback")
            return AnalysisOutcome.fallback(language, "analysis response failed validation")

        return AnalysisOutcome.success(analysis)

    def generate_image(self, prompt: str) -> str:
        """Return a ``data:`` URL for the artwork, or ``""`` on failure."""
        try:
            with LogContext("Generating mood artwork", logger=logger, expected=(AIClientError,)):
                image = self._client.generate_image(build_image_prompt(prompt))
        except AIClientError as e:
            logger.warning(f"Image generation failed: {type(e).__name__}")
            return ""

        encoded = base64.b64encode(image.data).decode("ascii")
        return f"data:{image.mime_type};base64,{encoded}"
