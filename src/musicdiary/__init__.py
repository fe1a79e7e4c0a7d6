"""MusicDiary: a life log of music and emotions.

Record a remembered song with a mood score, up to three emotion tags and an
optional note. Gemini turns it into a short empathetic reflection, a mood
color and an abstract artwork; the diary is kept as one local JSON slot.
"""

__version__ = "1.0.0"

from musicdiary.composer import CreationResult, CreationState, CreationStatus, RecordComposer
from musicdiary.core import (
    AnalysisResult,
    Language,
    MemoryDraft,
    MemoryRecord,
    MemoryStore,
    SongInput,
)
from musicdiary.exceptions import MusicDiaryError

__all__ = [
    "__version__",
    "AnalysisResult",
    "CreationResult",
    "CreationState",
    "CreationStatus",
    "Language",
    "MemoryDraft",
    "MemoryRecord",
    "MemoryStore",
    "MusicDiaryError",
    "RecordComposer",
    "SongInput",
]
