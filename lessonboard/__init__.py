"""Lessonboard: authenticated dashboard with a multi-part video lesson player."""

__version__ = "0.3.0"
