"""Command line interface for MusicDiary."""
