"""Tests for CLI commands using Click's testing utilities."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from rich.console import Console

from musicdiary import __version__
from musicdiary.cli import main as cli_main
from musicdiary.cli.main import cli
from musicdiary.core.storage import JSONFileStorage
from musicdiary.core.store import MemoryStore

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def runner(monkeypatch) -> CliRunner:
    """Create a Click test runner with AI disabled and a wide console."""
    monkeypatch.setenv("MUSICDIARY_AI__MODE", "disabled")
    monkeypatch.setattr(cli_main, "console", Console(width=200))
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "diary"


@pytest.fixture
def seeded(data_dir, sample_draft):
    """One saved record on disk."""
    return MemoryStore(JSONFileStorage(data_dir)).create(sample_draft)


def invoke(runner: CliRunner, data_dir: Path, *args: str, **kwargs):
    return runner.invoke(cli, ["--data-dir", str(data_dir), *args], **kwargs)


def stored(data_dir: Path) -> list[dict]:
    return json.loads((data_dir / "music_diary_data_v1.json").read_text(encoding="utf-8"))


# =============================================================================
# Add
# =============================================================================


class TestAddCommand:
    """Tests for record creation from the command line."""

    def test_add_without_ai_saves_fallback_record(self, runner, data_dir) -> None:
        """With AI disabled the record is still saved, with the fallback analysis."""
        result = invoke(
            runner,
            data_dir,
            "add",
            "-t", "Fly Me to the Moon",
            "-a", "Sample Artist",
            "--date", "2024-06-10",
            "--mood", "30",
            "--tag", "nostalgic",
            "--lang", "en",
        )

        assert result.exit_code == 0, result.output
        assert "Memory saved" in result.output
        assert "AI analysis was unavailable" in result.output

        records = stored(data_dir)
        assert len(records) == 1
        assert records[0]["song"] == {"title": "Fly Me to the Moon", "artist": "Sample Artist"}
        assert records[0]["moodScore"] == 30
        assert records[0]["moodTags"] == ["Nostalgic"]
        assert records[0]["analysis"]["inferredEmotion"] == "Unanalyzable"
        assert records[0]["imageUrl"] == ""
        assert records[0]["userFeedback"] is None

    def test_add_uses_japanese_tag_labels(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "add", "-t", "T", "-a", "A", "--tag", "Nostalgic", "--lang", "ja")

        assert result.exit_code == 0, result.output
        assert stored(data_dir)[0]["moodTags"] == ["懐かしい"]

    def test_add_blank_title_rejected(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "add", "-t", "  ", "-a", "Sample Artist", "--lang", "en")

        assert result.exit_code == 1
        assert "Please enter a song title and artist" in result.output
        assert not (data_dir / "music_diary_data_v1.json").exists()

    def test_add_unknown_tag(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "add", "-t", "T", "-a", "A", "--tag", "sleepy")

        assert result.exit_code == 1
        assert "Unknown tag" in result.output

    def test_add_extra_tags_ignored(self, runner, data_dir) -> None:
        result = invoke(
            runner, data_dir, "add", "-t", "T", "-a", "A", "--lang", "en",
            "--tag", "relax", "--tag", "focus", "--tag", "blue", "--tag", "excited",
        )

        assert result.exit_code == 0, result.output
        assert stored(data_dir)[0]["moodTags"] == ["Relax", "Focus", "Blue"]

    def test_add_mood_out_of_range(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "add", "-t", "T", "-a", "A", "--mood", "80")

        assert result.exit_code == 2

    def test_add_bad_date(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "add", "-t", "T", "-a", "A", "--date", "10/06/2024")

        assert result.exit_code == 2


# =============================================================================
# Browsing
# =============================================================================


class TestBrowseCommands:
    """Tests for list, show, calendar and tags."""

    def test_list_empty(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "list", "--lang", "en")

        assert result.exit_code == 0
        assert "No memories yet" in result.output

    def test_list_shows_records(self, runner, data_dir, seeded) -> None:
        result = invoke(runner, data_dir, "list", "--lang", "en")

        assert result.exit_code == 0
        assert "My Timeline" in result.output
        assert "Fly Me to the Moon" in result.output
        assert seeded.id in result.output

    def test_show(self, runner, data_dir, seeded) -> None:
        result = invoke(runner, data_dir, "show", seeded.id, "--lang", "en")

        assert result.exit_code == 0
        assert "Quiet resolve" in result.output
        assert "youtube.com/results" in result.output

    def test_show_missing(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "show", "nope", "--lang", "en")

        assert result.exit_code == 1
        assert "Memory not found" in result.output

    def test_calendar(self, runner, data_dir, seeded) -> None:
        result = invoke(
            runner, data_dir, "calendar", "--year", "2024", "--month", "6", "--day", "10", "--lang", "en"
        )

        assert result.exit_code == 0
        assert "2024-06" in result.output
        assert "WED" in result.output
        assert "♪1" in result.output
        assert seeded.id in result.output

    def test_tags(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "tags")

        assert result.exit_code == 0
        assert "Nostalgic" in result.output
        assert "懐かしい" in result.output


# =============================================================================
# Mutations
# =============================================================================


class TestRecordCommands:
    """Tests for feedback, delete and share."""

    def test_feedback(self, runner, data_dir, seeded) -> None:
        result = invoke(runner, data_dir, "feedback", seeded.id, "--incorrect")

        assert result.exit_code == 0
        assert stored(data_dir)[0]["userFeedback"] == "incorrect"

    def test_feedback_requires_verdict(self, runner, data_dir, seeded) -> None:
        result = invoke(runner, data_dir, "feedback", seeded.id)

        assert result.exit_code == 2

    def test_feedback_missing_record(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "feedback", "nope", "--correct", "--lang", "en")

        assert result.exit_code == 1
        assert "Memory not found" in result.output

    def test_delete(self, runner, data_dir, seeded) -> None:
        result = invoke(runner, data_dir, "delete", seeded.id, "--yes")

        assert result.exit_code == 0
        assert stored(data_dir) == []

    def test_delete_cancelled(self, runner, data_dir, seeded) -> None:
        result = invoke(runner, data_dir, "delete", seeded.id, "--lang", "en", input="n\n")

        assert result.exit_code == 0
        assert len(stored(data_dir)) == 1

    def test_share(self, runner, data_dir, seeded) -> None:
        result = invoke(runner, data_dir, "share", seeded.id)

        assert result.exit_code == 0
        assert "MusicDiary: Jun 10, 2024" in result.output
        assert "🎵 Fly Me to the Moon / Sample Artist" in result.output


# =============================================================================
# Config & version
# =============================================================================


class TestConfigCommands:
    """Tests for config and version commands."""

    def test_config_show(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "config", "show")

        assert result.exit_code == 0
        assert "disabled" in result.output
        assert "not set" in result.output
        assert str(data_dir) in result.output

    def test_set_key(self, runner, data_dir) -> None:
        key = "AIza" + "k" * 35
        with patch("keyring.set_password") as set_password:
            result = invoke(runner, data_dir, "config", "set-key", input=f"{key}\n")

        assert result.exit_code == 0
        set_password.assert_called_once_with("musicdiary", "gemini_api_key", key)

    def test_set_key_invalid(self, runner, data_dir) -> None:
        with patch("keyring.set_password") as set_password:
            result = invoke(runner, data_dir, "config", "set-key", input="short\n")

        assert result.exit_code == 1
        set_password.assert_not_called()

    def test_clear_key(self, runner, data_dir) -> None:
        with patch("keyring.delete_password"):
            result = invoke(runner, data_dir, "config", "clear-key", "--force")

        assert result.exit_code == 0
        assert "API key removed" in result.output

    def test_version(self, runner, data_dir) -> None:
        result = invoke(runner, data_dir, "version")

        assert result.exit_code == 0
        assert f"MusicDiary {__version__}" in result.output

    def test_config_file_option(self, runner, data_dir, tmp_path) -> None:
        config_file = tmp_path / "alt.yaml"
        config_file.write_text("storage:\n  storage_key: alt_slot\n", encoding="utf-8")

        result = invoke(runner, data_dir, "--config", str(config_file), "config", "show")

        assert result.exit_code == 0
        assert "alt_slot" in result.output
