"""Utility helpers for MusicDiary."""
