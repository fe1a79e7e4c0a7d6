"""Clipboard export of a single record.

The summary is handed to a sink callable. Whatever the sink does only
decides the transient "copied" acknowledgment; the record is never touched.
"""

from __future__ import annotations

import logging
from typing import Callable

from musicdiary.core.models import MemoryRecord
from musicdiary.core.timeline import format_record_date

logger = logging.getLogger(__name__)

SHARE_EXCERPT_LENGTH = 60

ClipboardSink = Callable[[str], None]


def format_share_text(record: MemoryRecord) -> str:
    """Short human-readable summary: date, song, emotion, truncated reflection."""
    excerpt = record.analysis.analysis_text[:SHARE_EXCERPT_LENGTH]
    return (
        f"MusicDiary: {format_record_date(record)}\n"
        f"🎵 {record.song.title} / {record.song.artist}\n"
        f"💌 {record.analysis.inferred_emotion}\n\n"
        f'"{excerpt}..."'
    )


def copy_to_clipboard(record: MemoryRecord, sink: ClipboardSink) -> bool:
    """Hand the summary to ``sink``. Returns False if the sink failed."""
    try:
        sink(format_share_text(record))
    except Exception as e:
        logger.warning(f"Clipboard export failed: {type(e).__name__}")
        return False
    return True
