"""Core domain: records, persistence, and read-only projections."""

from musicdiary.core.models import (
    AnalysisResult,
    Feedback,
    Language,
    MemoryDraft,
    MemoryRecord,
    SongInput,
    date_to_timestamp,
)
from musicdiary.core.storage import InMemoryStorage, JSONFileStorage, KeyValueStorage
from musicdiary.core.store import MemoryStore
from musicdiary.core.tags import EMOTION_TAGS, TagSelection

__all__ = [
    "AnalysisResult",
    "EMOTION_TAGS",
    "Feedback",
    "InMemoryStorage",
    "JSONFileStorage",
    "KeyValueStorage",
    "Language",
    "MemoryDraft",
    "MemoryRecord",
    "MemoryStore",
    "SongInput",
    "TagSelection",
    "date_to_timestamp",
]
