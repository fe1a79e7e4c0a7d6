"""Prompt construction for the Gemini analysis and image calls.

The analysis call asks for a JSON object with four string fields, enforced
through a response schema. Prompts are written in the record's language so
the reflection comes back in that language; the image prompt field is
always requested in English.
"""

from __future__ import annotations

from datetime import date

from google.genai import types

from musicdiary.core.models import Language, SongInput

IMAGE_PROMPT_PREFIX = (
    "Minimalist, modern abstract art. High quality, serene atmosphere. "
    "Use warm, organic shapes."
)

_SCHEMA_DESCRIPTIONS = {
    Language.JA: {
        "inferredEmotion": "その曲を聞きながらその時の気分のユーザーの「一言で表す感情・ムード」。例：静かな決意、安らぎ、憂鬱な雨、高揚感など。",
        "analysisText": "ユーザーへの共感あふれるメッセージ。歌詞のフレーズや曲調の展開など音楽の具体的な要素を交えつつ、日記・タグ・スコアから読み取れる気持ちに優しく寄り添う内容にする。",
        "moodColor": "その感情を表すカラーコード (e.g. #3b82f6).",
        "imagePrompt": "曲の雰囲気と感情を融合させた、ミニマルで抽象的なアートワークを生成するための英語プロンプト。色はmoodColorを参考にすること。",
    },
    Language.EN: {
        "inferredEmotion": "A short phrase naming the user's emotion or mood while listening, e.g. quiet resolve, comfort, melancholy rain, elation.",
        "analysisText": "An empathetic message to the user that refers to concrete musical elements (lyrics, melody, arrangement) and gently connects them to the feelings expressed in the diary, tags and score.",
        "moodColor": "A hex color code representing the emotion (e.g. #3b82f6).",
        "imagePrompt": "An English prompt for a minimal, abstract artwork blending the song's atmosphere with the emotion. Use moodColor as the color reference.",
    },
}

SYSTEM_INSTRUCTIONS = {
    Language.JA: (
        "あなたは音楽のソムリエであり、心理カウンセラーのような包容力を持つAIです。"
        "歌詞の深読みやサウンドの機微を捉えるのが得意です。"
    ),
    Language.EN: (
        "You are a music sommelier with the warmth of a counselor. "
        "You read lyrics closely and notice the subtleties of sound."
    ),
}


def analysis_schema(language: Language) -> types.Schema:
    """Response schema for the analysis call; all four fields required."""
    descriptions = _SCHEMA_DESCRIPTIONS[language]
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            name: types.Schema(type=types.Type.STRING, description=text)
            for name, text in descriptions.items()
        },
        required=list(descriptions),
    )


def format_prompt_date(value: date, language: Language) -> str:
    if language == Language.JA:
        return f"{value.year}年{value.month}月{value.day}日"
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def describe_mood(score: int, language: Language) -> str:
    """Quiet/active reading of a mood score, e.g. ``動的・高温・高揚``."""
    if language == Language.JA:
        return "静的・低温・憂鬱" if score < 0 else "動的・高温・高揚"
    return "quiet, cool, low" if score < 0 else "active, warm, uplifted"


def build_analysis_prompt(
    content: str,
    song: SongInput,
    mood_score: int,
    tags: list[str],
    record_date: date,
    language: Language,
) -> str:
    """User prompt for the emotion analysis."""
    when = format_prompt_date(record_date, language)
    mood = describe_mood(mood_score, language)

    if language == Language.JA:
        diary = content or "（特になし）"
        return f"""
ユーザーが「{when}」の記録として「思い出の曲」と「その時の気分」を入力しました。
この曲の【歌詞】や【メロディ・曲調】の特徴を踏まえ、ユーザーの心に寄り添う温かいメッセージを送ってください。

【入力情報】
日付: {when}
曲名: {song.title}
アーティスト: {song.artist}
ムードスコア (-50が静/悲、+50が動/喜): {mood_score} ({mood})
選択された感情タグ: {', '.join(tags)}
日記/メモの内容: "{diary}"

【重要な指針】
1. 曲の具体的な要素（歌詞やサウンド）を引き合いに出し、それがユーザーの感情とどうリンクしているかを語ってください。
2. 「過去のことですね」等の言及は避け、「{when}という日」の体験として寄り添ってください。
3. どんなに暗い感情であっても否定せず、受け止めてください。

出力は日本語で、「です・ます」調の優しいトーンでお願いします。
""".strip()

    diary = content or "(nothing written)"
    return f"""
The user recorded a "memory song" and their mood for {when}.
Drawing on this song's lyrics and its melody and arrangement, send them a warm message that meets them where they are.

[Input]
Date: {when}
Title: {song.title}
Artist: {song.artist}
Mood score (-50 quiet/sad, +50 active/happy): {mood_score} ({mood})
Selected emotion tags: {', '.join(tags)}
Diary / note: "{diary}"

[Guidelines]
1. Refer to concrete elements of the song (lyrics, sound) and explain how they connect to the user's feelings.
2. Do not frame it as "something in the past"; stay with the experience of {when}.
3. Never dismiss an emotion, however dark. Accept it.

Respond in English, in a gentle and accepting tone.
""".strip()


def build_image_prompt(image_prompt: str) -> str:
    """Full prompt for the artwork model."""
    return f"{IMAGE_PROMPT_PREFIX} {image_prompt}".strip()
