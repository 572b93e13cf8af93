"""HTTP routes."""

from lessonboard.api import auth, chat, health, metrics, pages, videos

__all__ = [
    "auth",
    "chat",
    "health",
    "metrics",
    "pages",
    "videos",
]
