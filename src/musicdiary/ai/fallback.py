"""Fallback analysis used when the Gemini call fails.

The payload is fixed: a sentinel emotion label, a localized apology, a
neutral slate color and a generic abstract-art prompt. A record saved with
it still keeps the user's song, mood, tags and diary text.
"""

from __future__ import annotations

from musicdiary.core.models import AnalysisResult, Language

FALLBACK_MOOD_COLOR = "#cbd5e1"
FALLBACK_IMAGE_PROMPT = "abstract minimalist geometric art, soft colors"

FALLBACK_EMOTION = {
    Language.JA: "解析不能",
    Language.EN: "Unanalyzable",
}

FALLBACK_MESSAGE = {
    Language.JA: "申し訳ありません、分析中にエラーが発生しました。もう少し時間を置いてから試してみてください。",
    Language.EN: "Sorry, something went wrong while analyzing. Please try again a little later.",
}


def fallback_analysis(language: Language | str = Language.JA) -> AnalysisResult:
    """The fixed degraded analysis for ``language``."""
    language = Language(language)
    return AnalysisResult(
        inferred_emotion=FALLBACK_EMOTION[language],
        analysis_text=FALLBACK_MESSAGE[language],
        mood_color=FALLBACK_MOOD_COLOR,
        image_prompt=FALLBACK_IMAGE_PROMPT,
    )


def is_fallback_analysis(analysis: AnalysisResult) -> bool:
    """True if ``analysis`` carries a fallback sentinel emotion."""
    return analysis.inferred_emotion in FALLBACK_EMOTION.values()
