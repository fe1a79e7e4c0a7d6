"""User-facing strings in Japanese and English."""

from __future__ import annotations

from musicdiary.core.models import Language

UI_TEXT: dict[str, dict[str, str]] = {
    "subtitle": {"ja": "音楽と感情のライフログ", "en": "Life log of music & emotions"},
    "title_record": {"ja": "思い出の曲を記録する", "en": "Record a Memory Song"},
    "confirm_delete": {
        "ja": "この記録を削除してもよろしいですか？",
        "en": "Are you sure you want to delete this memory?",
    },
    "saved": {"ja": "思い出を保存しました", "en": "Memory saved"},
    "step_analyzing": {"ja": "音楽と感情を分析しています...", "en": "Analyzing music and emotions..."},
    "step_image": {"ja": "イメージを生成しています...", "en": "Generating visual..."},
    "step_saving": {"ja": "保存しています...", "en": "Saving..."},
    "timeline": {"ja": "マイ・タイムライン", "en": "My Timeline"},
    "empty_title": {"ja": "記録はまだありません", "en": "No memories yet"},
    "empty_desc": {"ja": "最初の1曲を記録してみましょう", "en": "Let's record your first song."},
    "error_msg": {
        "ja": "エラーが発生しました。しばらくしてから再度お試しください。",
        "en": "An error occurred. Please try again later.",
    },
    "missing_song": {
        "ja": "曲名とアーティスト名を入力してください",
        "en": "Please enter a song title and artist",
    },
    "write_failed": {
        "ja": "保存領域への書き込みに失敗しました。この記録は現在のセッションでのみ保持されます。",
        "en": "Could not write to storage. This memory is kept for the current session only.",
    },
    "quiet": {"ja": "静 / 冷", "en": "Quiet / Cool"},
    "active": {"ja": "動 / 温", "en": "Active / Warm"},
    "not_found": {"ja": "記録が見つかりません", "en": "Memory not found"},
    "fallback_notice": {
        "ja": "AI分析は利用できませんでしたが、記録は保存されました",
        "en": "AI analysis was unavailable, but your memory was saved",
    },
}


def t(key: str, language: Language | str = Language.JA) -> str:
    """Look up a UI string."""
    return UI_TEXT[key][Language(language).value]
