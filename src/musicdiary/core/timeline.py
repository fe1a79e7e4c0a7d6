"""Timeline projection and per-record display helpers."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import quote_plus

from musicdiary.core.models import MOOD_MIN, Language, MemoryRecord, SongInput

YOUTUBE_SEARCH_URL = "https://www.youtube.com/results?search_query={query}"


def timeline(records: Iterable[MemoryRecord]) -> list[MemoryRecord]:
    """Flat reverse-chronological list of records."""
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


def format_record_date(record: MemoryRecord, language: Language | str | None = None) -> str:
    """Localized date of a record, e.g. ``2024年6月10日`` or ``Jun 10, 2024``."""
    language = Language(language or record.language or Language.JA)
    when = record.recorded_at
    if language == Language.JA:
        return f"{when.year}年{when.month}月{when.day}日"
    return f"{when.strftime('%b')} {when.day}, {when.year}"


def mood_percent(record: MemoryRecord) -> int:
    """Mood score mapped onto 0-100 for a gauge."""
    return record.mood_score - MOOD_MIN


def youtube_search_url(song: SongInput) -> str:
    """Search link for listening to the song again."""
    return YOUTUBE_SEARCH_URL.format(query=quote_plus(f"{song.artist} {song.title}"))
