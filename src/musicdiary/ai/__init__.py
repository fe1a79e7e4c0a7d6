"""AI layer: the Gemini client, prompts, and the analysis provider."""

from musicdiary.ai.analyzer import AnalysisOutcome, AnalysisProvider, GeminiAnalysisProvider
from musicdiary.ai.client import (
    AIClient,
    AIClientError,
    AIUnavailableError,
    StructuredAIResponse,
    get_client,
)
from musicdiary.ai.fallback import fallback_analysis, is_fallback_analysis

__all__ = [
    "AIClient",
    "AIClientError",
    "AIUnavailableError",
    "AnalysisOutcome",
    "AnalysisProvider",
    "GeminiAnalysisProvider",
    "StructuredAIResponse",
    "fallback_analysis",
    "get_client",
    "is_fallback_analysis",
]
