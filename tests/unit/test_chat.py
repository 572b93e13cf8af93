"""Tests for the mock chat service"""

from unittest.mock import MagicMock

import pytest

from lessonboard.models.chat import ChatRole
from lessonboard.services.chat import (
    GREETING,
    ChatHistoryStore,
    ChatService,
    RegenerateError,
    TransientSendError,
    greeting_message,
    user_message,
)


def make_service(roll: float, failure_rate: float = 0.2, max_history: int = 20) -> ChatService:
    rng = MagicMock()
    rng.random.return_value = roll
    return ChatService(reply_delay=0, failure_rate=failure_rate, max_history=max_history, rng=rng)


class TestChatService:
    """Test sending and regenerating"""

    @pytest.mark.asyncio
    async def test_send_success(self) -> None:
        service = make_service(roll=0.9)
        reply = await service.send("什么是IGBT？")

        assert reply.role is ChatRole.ASSISTANT
        assert "什么是IGBT？" in reply.content

    @pytest.mark.asyncio
    async def test_send_failure(self) -> None:
        service = make_service(roll=0.1)
        with pytest.raises(TransientSendError):
            await service.send("hello")

    @pytest.mark.asyncio
    async def test_failure_threshold(self) -> None:
        """A roll equal to the failure rate succeeds"""
        service = make_service(roll=0.2, failure_rate=0.2)
        reply = await service.send("hello")
        assert reply.role is ChatRole.ASSISTANT

    @pytest.mark.asyncio
    async def test_never_fails_with_zero_rate(self) -> None:
        service = make_service(roll=0.0, failure_rate=0.0)
        assert (await service.send("hello")).role is ChatRole.ASSISTANT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", "\n"])
    async def test_send_blank_rejected(self, content: str) -> None:
        service = make_service(roll=0.9)
        with pytest.raises(ValueError):
            await service.send(content)

    @pytest.mark.asyncio
    async def test_regenerate_replaces_reply(self) -> None:
        service = make_service(roll=0.9)
        history = [greeting_message(), user_message("问题"), await service.send("问题")]

        updated = await service.regenerate(history, 2)

        assert len(updated) == 3
        assert updated[:2] == history[:2]
        assert updated[2].id != history[2].id
        assert "问题" in updated[2].content
        assert history[2] is not updated[2]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index", [0, 1, 3, -1])
    async def test_regenerate_invalid_index(self, index: int) -> None:
        service = make_service(roll=0.9)
        history = [greeting_message(), user_message("问题"), await service.send("问题")]
        with pytest.raises(RegenerateError):
            await service.regenerate(history, index)

    @pytest.mark.asyncio
    async def test_regenerate_failure(self) -> None:
        service = make_service(roll=0.9)
        history = [greeting_message(), user_message("问题"), await service.send("问题")]
        service._rng.random.return_value = 0.0  # type: ignore[attr-defined]

        with pytest.raises(RegenerateError):
            await service.regenerate(history, 2)

    def test_trim_keeps_greeting(self) -> None:
        service = make_service(roll=0.9, max_history=5)
        history = [greeting_message()] + [user_message(str(i)) for i in range(10)]

        trimmed = service.trim(history)

        assert len(trimmed) == 5
        assert trimmed[0].content == GREETING
        assert [m.content for m in trimmed[1:]] == ["6", "7", "8", "9"]

    def test_trim_short_history_unchanged(self) -> None:
        service = make_service(roll=0.9, max_history=5)
        history = [greeting_message(), user_message("a")]
        assert service.trim(history) == history



class TestChatHistoryStore:
    """Test server-side conversation storage"""

    def test_save_and_get(self) -> None:
        store = ChatHistoryStore()
        conversation_id = store.new_id()
        history = [greeting_message(), user_message("你好")]

        store.save(conversation_id, history)

        assert store.get(conversation_id) == history
        assert store.get(conversation_id) is not history

    @pytest.mark.parametrize("conversation_id", [None, "", "unknown", 42, {"id": "x"}])
    def test_get_missing(self, conversation_id: object) -> None:
        assert ChatHistoryStore().get(conversation_id) is None

    def test_ids_are_unique(self) -> None:
        assert ChatHistoryStore.new_id() != ChatHistoryStore.new_id()

    def test_discard(self) -> None:
        store = ChatHistoryStore()
        store.save("c1", [greeting_message()])

        store.discard("c1")
        store.discard(None)

        assert store.get("c1") is None
        assert len(store) == 0

    def test_evicts_beyond_maxsize(self) -> None:
        store = ChatHistoryStore(maxsize=2)
        for conversation_id in ("c1", "c2", "c3"):
            store.save(conversation_id, [greeting_message()])

        assert len(store) == 2
        assert store.get("c1") is None
        assert store.get("c3") is not None

    def test_service_default_store(self) -> None:
        service = ChatService(reply_delay=0)
        assert isinstance(service.history, ChatHistoryStore)
        assert len(service.history) == 0
