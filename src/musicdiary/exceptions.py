"""Exception hierarchy shared across MusicDiary.

All application errors inherit from MusicDiaryError so the CLI can report
them uniformly. AI client errors live in musicdiary.ai.client and
configuration errors in musicdiary.config; both derive from this base.
"""


class MusicDiaryError(Exception):
    """Base exception for all MusicDiary errors."""

    pass


class StorageError(MusicDiaryError):
    """Base exception for persistence slot failures."""

    pass


class StorageWriteError(StorageError):
    """Writing the serialized collection to the slot failed.

    Attributes:
        key: The storage key that could not be written.
        original_error: The underlying exception, if any.
    """

    def __init__(self, key: str, message: str | None = None, original_error: Exception | None = None) -> None:
        super().__init__(message or f"Failed to write storage key '{key}'")
        self.key = key
        self.original_error = original_error


class CompositionInProgressError(MusicDiaryError):
    """A creation sequence is already running on this composer."""

    def __init__(self) -> None:
        super().__init__("A memory is already being saved")
