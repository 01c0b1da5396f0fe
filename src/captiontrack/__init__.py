"""Subtitle normalization and track selection for word-by-word highlighting."""

__version__ = "0.1.0"
