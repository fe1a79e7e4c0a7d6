"""MemoryStore: sole owner of the diary collection.

The store keeps the authoritative in-process list of records and mirrors it
to a single storage slot. Every mutation (create, feedback, delete) re-sorts
the list by timestamp descending and writes the whole collection back before
returning. There is no partial or batched persistence.

Write failures never roll back the in-memory list: for the rest of the
session memory is the source of truth. The failure is logged and kept on
``last_write_error`` so the front end can warn the user.

Example:
    >>> store = MemoryStore(JSONFileStorage(Path("~/.musicdiary")))
    >>> store.load()
    >>> record = store.create(draft)
    >>> store.set_feedback(record.id, True)
    >>> store.delete(record.id)
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Iterator

from pydantic import ValidationError

from musicdiary.core.models import MemoryDraft, MemoryRecord, date_to_timestamp
from musicdiary.core.storage import KeyValueStorage
from musicdiary.exceptions import StorageWriteError

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "music_diary_data_v1"


def sort_records(records: list[MemoryRecord]) -> list[MemoryRecord]:
    """Sort by timestamp descending. Stable, so equal timestamps keep their order."""
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


class MemoryStore:
    """Authoritative list of memory records plus its durable mirror.

    Args:
        storage: The persistence slot backend.
        storage_key: Name of the slot holding the collection.
        clock: Returns the current time in seconds; used for id generation.
        raise_on_write_error: Re-raise StorageWriteError after updating memory.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], float] = time.time,
        raise_on_write_error: bool = False,
    ) -> None:
        self._storage = storage
        self._key = storage_key
        self._clock = clock
        self._raise_on_write_error = raise_on_write_error
        self._records: list[MemoryRecord] = []
        self._issued_ids: set[str] = set()
        self.last_write_error: StorageWriteError | None = None

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def records(self) -> tuple[MemoryRecord, ...]:
        """Snapshot of the current list, most recent first."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[MemoryRecord]:
        return iter(tuple(self._records))

    def get(self, record_id: str) -> MemoryRecord | None:
        """Find a record by id."""
        return next((r for r in self._records if r.id == record_id), None)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def load(self) -> list[MemoryRecord]:
        """Read the persisted collection, replacing the in-memory list.

        Absent slot gives an empty list, as does content that is not a JSON
        array. Elements that fail validation are skipped with a warning and
        the rest are kept; this never raises.
        """
        raw = self._storage.get(self._key)
        records: list[MemoryRecord] = []

        if raw is None:
            logger.debug("No stored collection found, starting empty")
        else:
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"Stored collection is not valid JSON ({e.msg}), starting empty")
                payload = []
            if not isinstance(payload, list):
                logger.warning(f"Stored collection is a {type(payload).__name__}, not a list, starting empty")
                payload = []
            records = self._validate_records(payload)

        self._records = sort_records(records)
        logger.info(f"Loaded {len(self._records)} memories")
        return list(self._records)

    def create(self, draft: MemoryDraft) -> MemoryRecord:
        """Create, insert and persist a new record.

        The caller guarantees the song title and artist are non-blank.

        Returns:
            The stored record.
        """
        record = MemoryRecord(
            id=self._next_id(),
            content=draft.content,
            mood_score=draft.mood_score,
            mood_tags=tuple(draft.mood_tags),
            timestamp=date_to_timestamp(draft.record_date),
            song=draft.song,
            analysis=draft.analysis,
            image_url=draft.image_url,
            user_feedback=None,
            language=draft.language,
        )

        # New record first so it wins ties on timestamp.
        self._records = sort_records([record, *self._records])
        self._persist()
        logger.info(f"Created memory {record.id}")
        return record

    def set_feedback(self, record_id: str, is_correct: bool) -> MemoryRecord | None:
        """Set the feedback on a record. Unknown ids are ignored.

        Returns:
            The updated record, or None if the id was not found.
        """
        for index, record in enumerate(self._records):
            if record.id == record_id:
                updated = record.with_feedback(is_correct)
                self._records[index] = updated
                self._persist()
                return updated

        logger.debug(f"Feedback for unknown memory {record_id} ignored")
        return None

    def delete(self, record_id: str) -> bool:
        """Remove a record if present and persist.

        Returns:
            True if a record was removed.
        """
        remaining = [r for r in self._records if r.id != record_id]
        removed = len(remaining) != len(self._records)
        self._records = remaining
        self._persist()
        if removed:
            logger.info(f"Deleted memory {record_id}")
        return removed

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _next_id(self) -> str:
        taken = self._issued_ids | {r.id for r in self._records}
        candidate = int(self._clock() * 1000)
        while str(candidate) in taken:
            candidate += 1
        new_id = str(candidate)
        self._issued_ids.add(new_id)
        return new_id

    def _persist(self) -> None:
        payload = json.dumps([r.to_json_dict() for r in self._records], ensure_ascii=False)
        try:
            self._storage.set(self._key, payload)
            self.last_write_error = None
        except StorageWriteError as e:
            self.last_write_error = e
            logger.error(f"Failed to persist {len(self._records)} memories: {e}")
            if self._raise_on_write_error:
                raise

    @staticmethod
    def _validate_records(payload: list) -> list[MemoryRecord]:
        records: list[MemoryRecord] = []
        skipped = 0
        for index, item in enumerate(payload):
            try:
                records.append(MemoryRecord.model_validate(item))
            except ValidationError as e:
                skipped += 1
                logger.warning(f"Skipping stored memory at index {index}: {e.error_count()} validation errors")
        if skipped:
            logger.warning(f"Skipped {skipped} of {len(payload)} stored memories")
        return records
