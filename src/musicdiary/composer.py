"""RecordComposer: collects input and runs the record creation sequence.

The sequence is:

    IDLE -> VALIDATING -> ANALYZING -> GENERATING_IMAGE -> PERSISTING -> IDLE

Validation failures return to IDLE silently without calling the provider.
A failed analysis is absorbed by the provider's fallback payload and a
failed image leaves the image reference empty; both still save a record.
Anything else aborts the attempt, saves nothing, keeps the inputs and
reports one generic localized notice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable

from musicdiary.ai.analyzer import AnalysisProvider
from musicdiary.core.models import (
    MOOD_MAX,
    MOOD_MIN,
    Language,
    MemoryDraft,
    MemoryRecord,
    SongInput,
)
from musicdiary.core.store import MemoryStore
from musicdiary.core.tags import TagSelection
from musicdiary.exceptions import CompositionInProgressError
from musicdiary.i18n import t

logger = logging.getLogger(__name__)


class CreationState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ANALYZING = "analyzing"
    GENERATING_IMAGE = "generating_image"
    PERSISTING = "persisting"


class CreationStatus(str, Enum):
    SAVED = "saved"
    REJECTED = "rejected"
    FAILED = "failed"


_STEP_MESSAGES = {
    CreationState.ANALYZING: "step_analyzing",
    CreationState.GENERATING_IMAGE: "step_image",
    CreationState.PERSISTING: "step_saving",
}

ProgressCallback = Callable[[CreationState, str], None]


@dataclass(frozen=True)
class CreationResult:
    """Outcome of one ``submit()``.

    Attributes:
        status: SAVED, REJECTED (validation) or FAILED (unexpected error).
        record: The stored record when SAVED.
        used_fallback: The analysis is the fallback payload.
        message: Localized notice for FAILED attempts.
        write_failed: The record is only in memory; the slot write failed.
    """

    status: CreationStatus
    record: MemoryRecord | None = None
    used_fallback: bool = False
    message: str | None = None
    write_failed: bool = False

    @property
    def saved(self) -> bool:
        return self.status == CreationStatus.SAVED


@dataclass
class ComposerInput:
    """Raw form fields, reset to defaults after every save."""

    record_date: date | str
    song_title: str = ""
    artist_name: str = ""
    mood_score: int = 0
    tags: TagSelection = field(default_factory=TagSelection)
    diary_text: str = ""


class RecordComposer:
    """Drives record creation through an AnalysisProvider and a MemoryStore.

    Args:
        store: Where new records go.
        provider: Analysis and artwork provider.
        language: Language for the analysis and user-facing notices.
        today: Returns the current date (the default record date).
        on_progress: Called on every state transition with a localized step message.
    """

    def __init__(
        self,
        store: MemoryStore,
        provider: AnalysisProvider,
        language: Language | str = Language.JA,
        today: Callable[[], date] = date.today,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._today = today
        self.on_progress = on_progress
        self.language = Language(language)
        self.state = CreationState.IDLE
        self.inputs = ComposerInput(record_date=today())

    # -------------------------------------------------------------------------
    # Input handling
    # -------------------------------------------------------------------------

    def toggle_tag(self, label: str) -> bool:
        return self.inputs.tags.toggle(label)

    def reset(self) -> None:
        """Clear every input back to its default (today, empty, mood 0, no tags)."""
        self.inputs = ComposerInput(record_date=self._today())

    @property
    def is_busy(self) -> bool:
        return self.state != CreationState.IDLE

    @property
    def can_submit(self) -> bool:
        """Mirrors the save button: enabled with a title and artist while idle."""
        return (
            not self.is_busy
            and bool(self.inputs.song_title.strip())
            and bool(self.inputs.artist_name.strip())
        )

    # -------------------------------------------------------------------------
    # Creation sequence
    # -------------------------------------------------------------------------

    def submit(self) -> CreationResult:
        """Run the full analyze-then-save sequence for the current inputs.

        Raises:
            CompositionInProgressError: If a sequence is already running.
        """
        if self.is_busy:
            raise CompositionInProgressError()

        try:
            self._enter(CreationState.VALIDATING)
            record_date = self._validated_date()
            song = SongInput(
                title=self.inputs.song_title.strip(),
                artist=self.inputs.artist_name.strip(),
            )
            mood_score = self._validated_mood()
            if record_date is None or mood_score is None or not song.is_complete():
                logger.debug("Creation rejected by validation")
                return CreationResult(CreationStatus.REJECTED)

            return self._run(record_date, song, mood_score)
        finally:
            self._enter(CreationState.IDLE)

    def _run(self, record_date: date, song: SongInput, mood_score: int) -> CreationResult:
        inputs = self.inputs
        tags = inputs.tags.as_list()

        try:
            self._enter(CreationState.ANALYZING)
            outcome = self._provider.analyze(
                inputs.diary_text,
                song,
                mood_score,
                tags,
                record_date,
                self.language,
            )

            self._enter(CreationState.GENERATING_IMAGE)
            image_url = self._provider.generate_image(outcome.analysis.image_prompt)

            self._enter(CreationState.PERSISTING)
            record = self._store.create(
                MemoryDraft(
                    content=inputs.diary_text,
                    mood_score=mood_score,
                    mood_tags=tags,
                    record_date=record_date,
                    song=song,
                    analysis=outcome.analysis,
                    image_url=image_url,
                    language=self.language,
                )
            )
        except Exception:
            logger.exception("Unexpected failure while saving memory")
            return CreationResult(CreationStatus.FAILED, message=t("error_msg", self.language))

        self.reset()
        return CreationResult(
            CreationStatus.SAVED,
            record=record,
            used_fallback=outcome.is_fallback,
            write_failed=self._store.last_write_error is not None,
        )

    def _validated_date(self) -> date | None:
        value = self.inputs.record_date
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(value.strip())
        except (AttributeError, ValueError):
            return None

    def _validated_mood(self) -> int | None:
        """The mood score as an int within bounds, or None."""
        value = self.inputs.mood_score
        if isinstance(value, bool):
            return None
        if isinstance(value, str):
            try:
                value = int(value.strip())
            except ValueError:
                return None
        if not isinstance(value, int) or not MOOD_MIN <= value <= MOOD_MAX:
            return None
        return value

    def _enter(self, state: CreationState) -> None:
        self.state = state
        if self.on_progress is not None:
            key = _STEP_MESSAGES.get(state)
            self.on_progress(state, t(key, self.language) if key else "")
