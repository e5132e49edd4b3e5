"""Spaced-repetition scheduling engine for flashcard blocks."""

__version__ = "0.1.0"
