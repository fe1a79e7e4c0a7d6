"""Emotion tag vocabulary and bounded tag selection."""

from __future__ import annotations

from dataclasses import dataclass, field

from musicdiary.core.models import MAX_MOOD_TAGS, Language


@dataclass(frozen=True)
class TagDefinition:
    """One tag in the fixed vocabulary, with its display labels."""

    id: str
    ja: str
    en: str

    def label(self, language: Language | str) -> str:
        return self.ja if Language(language) == Language.JA else self.en


EMOTION_TAGS: tuple[TagDefinition, ...] = (
    TagDefinition("relax", "リラックス", "Relax"),
    TagDefinition("focus", "集中", "Focus"),
    TagDefinition("blue", "憂鬱", "Blue"),
    TagDefinition("excited", "ワクワク", "Excited"),
    TagDefinition("nostalgic", "懐かしい", "Nostalgic"),
    TagDefinition("determined", "決意", "Determined"),
    TagDefinition("tired", "疲れた", "Tired"),
    TagDefinition("grateful", "感謝", "Grateful"),
    TagDefinition("angry", "怒り", "Angry"),
    TagDefinition("calm", "穏やか", "Calm"),
    TagDefinition("lonely", "孤独", "Lonely"),
    TagDefinition("accomplished", "達成感", "Accomplished"),
)


def tag_labels(language: Language | str) -> list[str]:
    """Display labels of the whole vocabulary in one language."""
    return [tag.label(language) for tag in EMOTION_TAGS]


def find_tag(text: str) -> TagDefinition | None:
    """Look a tag up by id or by either label (case-insensitive for English)."""
    needle = text.strip()
    for tag in EMOTION_TAGS:
        if needle in (tag.id, tag.ja) or needle.lower() == tag.en.lower():
            return tag
    return None


@dataclass
class TagSelection:
    """Up to three selected tag labels, in selection order.

    ``toggle`` removes a selected label, appends a new one while there is
    room, and does nothing once three are selected.
    """

    selected: list[str] = field(default_factory=list)
    limit: int = MAX_MOOD_TAGS

    def toggle(self, label: str) -> bool:
        """Toggle a label. Returns True if the selection changed."""
        if label in self.selected:
            self.selected.remove(label)
            return True
        if len(self.selected) < self.limit:
            self.selected.append(label)
            return True
        return False

    def is_full(self) -> bool:
        return len(self.selected) >= self.limit

    def clear(self) -> None:
        self.selected.clear()

    def as_list(self) -> list[str]:
        return list(self.selected)

    def __contains__(self, label: object) -> bool:
        return label in self.selected

    def __len__(self) -> int:
        return len(self.selected)
