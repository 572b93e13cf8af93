"""Chat data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ChatRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message."""

    id: str
    content: str
    role: ChatRole
    timestamp: datetime
