"""Mock Q&A chat backend.

Stands in for a real assistant API: replies after an artificial delay and
fails a configurable share of sends to exercise the error path.
"""

import asyncio
import random
import secrets
from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

import structlog
from cachetools import TTLCache

from lessonboard.core.metrics import MetricsCollector
from lessonboard.models.chat import ChatMessage, ChatRole

logger = structlog.get_logger(__name__)

GREETING = "你好！我是AI助手，很高兴为你服务。有什么问题可以问我？"


class ChatError(Exception):
    """Base exception for chat errors."""

    pass


class TransientSendError(ChatError):
    """Simulated network failure; the user may retry."""

    pass


class RegenerateError(ChatError):
    """The assistant reply could not be regenerated."""

    pass


def _new_message(content: str, role: ChatRole) -> ChatMessage:
    return ChatMessage(
        id=uuid4().hex[:12],
        content=content,
        role=role,
        timestamp=datetime.now(timezone.utc),
    )


def greeting_message() -> ChatMessage:
    """First assistant message of every conversation."""
    return _new_message(GREETING, ChatRole.ASSISTANT)


def user_message(content: str) -> ChatMessage:
    return _new_message(content, ChatRole.USER)


class ChatHistoryStore:
    """Server-side conversations keyed by an opaque id.

    Only the id travels in the session cookie. Idle conversations expire
    after ttl seconds, and the least recently used ones are evicted beyond
    maxsize.
    """

    def __init__(self, maxsize: int = 1000, ttl: float = 24 * 3600):
        self._conversations: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def __len__(self) -> int:
        return len(self._conversations)

    @staticmethod
    def new_id() -> str:
        return secrets.token_urlsafe(16)

    def get(self, conversation_id: Any) -> Optional[List[ChatMessage]]:
        if not isinstance(conversation_id, str) or not conversation_id:
            return None
        history = self._conversations.get(conversation_id)
        return list(history) if history is not None else None

    def save(self, conversation_id: str, history: List[ChatMessage]) -> None:
        self._conversations[conversation_id] = list(history)

    def discard(self, conversation_id: Optional[str]) -> None:
        if conversation_id:
            self._conversations.pop(conversation_id, None)


class ChatService:
    """Simulated assistant with randomized transient failures."""

    def __init__(
        self,
        reply_delay: float = 1.0,
        failure_rate: float = 0.2,
        max_history: int = 20,
        rng: Optional[random.Random] = None,
        history: Optional[ChatHistoryStore] = None,
    ):
        """
        Initialize the chat service.

        Args:
            reply_delay: Seconds to wait before answering
            failure_rate: Probability in [0, 1] that a round trip fails
            max_history: Messages kept per conversation
            rng: Random source, injectable for deterministic tests
            history: Conversation store, a default in-memory one when omitted
        """
        self.reply_delay = reply_delay
        self.failure_rate = failure_rate
        self.max_history = max_history
        self._rng = rng or random.Random()
        self.history = history if history is not None else ChatHistoryStore()

    async def _round_trip(self) -> bool:
        """Simulated network round trip. Returns False on failure."""
        if self.reply_delay > 0:
            await asyncio.sleep(self.reply_delay)
        return self._rng.random() >= self.failure_rate

    async def send(self, content: str) -> ChatMessage:
        """
        Send a user message and get the assistant reply.

        Args:
            content: User message, already stripped and non-empty

        Returns:
            The assistant reply

        Raises:
            ValueError: If content is blank
            TransientSendError: On a simulated network failure
        """
        content = content.strip()
        if not content:
            raise ValueError("Message content cannot be empty")

        if not await self._round_trip():
            logger.warning("chat_send_failed", length=len(content))
            MetricsCollector.record_chat_send("failed")
            raise TransientSendError("网络连接失败，请重试")

        MetricsCollector.record_chat_send("ok")
        logger.info("chat_reply_sent", length=len(content))
        return _new_message(
            f"我收到了你的消息：\"{content}\"。这是一个模拟回复，实际使用时可以接入真实的AI服务。",
            ChatRole.ASSISTANT,
        )

    async def regenerate(self, history: List[ChatMessage], index: int) -> List[ChatMessage]:
        """
        Replace the assistant reply at index with a fresh one.

        Args:
            history: Conversation so far
            index: Position of an assistant message preceded by a user message

        Returns:
            New conversation list with the reply replaced

        Raises:
            RegenerateError: If index does not point at a regenerable reply or
                             the simulated round trip fails
        """
        if index <= 0 or index >= len(history):
            raise RegenerateError("No reply to regenerate at this position")

        prompt = history[index - 1]
        if prompt.role is not ChatRole.USER or history[index].role is not ChatRole.ASSISTANT:
            raise RegenerateError("No reply to regenerate at this position")

        if not await self._round_trip():
            MetricsCollector.record_chat_send("regenerate_failed")
            raise RegenerateError("重新生成失败，请重试")

        MetricsCollector.record_chat_send("regenerated")
        updated = list(history)
        updated[index] = _new_message(
            f"重新生成的回复：{prompt.content}。这是一个不同的AI回复示例。",
            ChatRole.ASSISTANT,
        )
        return updated

    def trim(self, history: List[ChatMessage]) -> List[ChatMessage]:
        """Keep the greeting and the most recent messages within max_history."""
        if len(history) <= self.max_history:
            return history
        return history[:1] + history[-(self.max_history - 1):]
