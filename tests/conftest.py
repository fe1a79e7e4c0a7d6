"""Central Pytest Fixtures for MusicDiary.

This module provides reusable test data, mock objects, and storage backends
across all test modules.

Fixtures included:
- Core data: sample_song, sample_analysis, sample_draft, make_record
- Storage: memory_storage, store, fixed clock
- AI: mock_config, fake_provider, failing_provider
- Config isolation: an autouse fixture that clears the config cache and
  any API key environment variables
"""

from datetime import date
from unittest.mock import MagicMock

import pytest

from musicdiary.ai.analyzer import AnalysisOutcome
from musicdiary.config import reset_config
from musicdiary.core.models import (
    AnalysisResult,
    Language,
    MemoryDraft,
    MemoryRecord,
    SongInput,
    date_to_timestamp,
)
from musicdiary.core.storage import InMemoryStorage
from musicdiary.core.store import MemoryStore

# =============================================================================
# Helper Classes
# =============================================================================


class StepClock:
    """Clock returning a fixed instant that only moves when told to."""

    def __init__(self, start: float = 1_718_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """AnalysisProvider returning canned results and recording its calls."""

    def __init__(self, outcome: AnalysisOutcome, image_url: str = "data:image/png;base64,AAAA") -> None:
        self.outcome = outcome
        self.image_url = image_url
        self.analyze_calls: list[dict] = []
        self.image_calls: list[str] = []

    def analyze(self, content, song, mood_score, tags, record_date, language):
        self.analyze_calls.append(
            {
                "content": content,
                "song": song,
                "mood_score": mood_score,
                "tags": list(tags),
                "record_date": record_date,
                "language": language,
            }
        )
        return self.outcome

    def generate_image(self, prompt):
        self.image_calls.append(prompt)
        return self.image_url


# =============================================================================
# Config Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests away from real keys, config files and the home directory."""
    for name in ("GEMINI_API_KEY", "API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("MUSICDIARY_STORAGE__DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr("keyring.get_password", lambda service, username: None)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def mock_config():
    """Create a mock AppConfig with AI enabled and fast retries."""
    config = MagicMock()
    config.ai.is_enabled.return_value = True
    config.ai.analysis_model = "gemini-2.5-flash"
    config.ai.image_model = "gemini-2.5-flash-image"
    config.ai.temperature = 0.8
    config.ai.timeout_seconds = 60
    config.ai.max_retries = 2
    config.ai.retry_base_delay = 0.01
    return config


@pytest.fixture
def mock_disabled_config():
    """Create a mock AppConfig with AI disabled."""
    config = MagicMock()
    config.ai.is_enabled.return_value = False
    return config


# =============================================================================
# Core Data
# =============================================================================


@pytest.fixture
def sample_song() -> SongInput:
    return SongInput(title="Fly Me to the Moon", artist="Sample Artist")


@pytest.fixture
def sample_analysis() -> AnalysisResult:
    return AnalysisResult(
        inferred_emotion="Quiet resolve",
        analysis_text="The gentle swing of this song mirrors the calm determination in your note.",
        mood_color="#3b82f6",
        image_prompt="soft blue waves under a pale moon",
    )


@pytest.fixture
def sample_draft(sample_song, sample_analysis) -> MemoryDraft:
    return MemoryDraft(
        content="Walked home under a full moon.",
        mood_score=30,
        mood_tags=["Nostalgic"],
        record_date=date(2024, 6, 10),
        song=sample_song,
        analysis=sample_analysis,
        image_url="",
        language=Language.EN,
    )


@pytest.fixture
def make_record(sample_song, sample_analysis):
    """Factory for records with a given id and date."""

    def _make(record_id: str, when: date, **overrides) -> MemoryRecord:
        fields = {
            "id": record_id,
            "content": "",
            "mood_score": 0,
            "mood_tags": [],
            "timestamp": date_to_timestamp(when),
            "song": sample_song,
            "analysis": sample_analysis,
            "image_url": "",
            "language": Language.EN,
        }
        fields.update(overrides)
        return MemoryRecord(**fields)

    return _make


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def store(memory_storage, clock) -> MemoryStore:
    return MemoryStore(memory_storage, clock=clock)


# =============================================================================
# Providers
# =============================================================================


@pytest.fixture
def fake_provider(sample_analysis) -> FakeProvider:
    return FakeProvider(AnalysisOutcome.success(sample_analysis))


@pytest.fixture
def failing_provider() -> FakeProvider:
    """Provider whose analysis has already degraded to the fallback payload."""
    return FakeProvider(
        AnalysisOutcome.fallback(Language.EN, "No Gemini API key configured"),
        image_url="",
    )
