"""Data models for the application."""

from lessonboard.models.chat import ChatMessage, ChatRole
from lessonboard.models.user import Principal
from lessonboard.models.video import Video, VideoPart

__all__ = [
    "ChatMessage",
    "ChatRole",
    "Principal",
    "Video",
    "VideoPart",
]
