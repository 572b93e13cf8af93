"""Q&A chat pages.

The conversation is kept on the server. The signed session cookie only
carries its id. A failed send leaves the history untouched and hands the
typed message back to the form so the user can retry.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from starlette.responses import Response

from lessonboard.core.rendering import render
from lessonboard.models.chat import ChatMessage
from lessonboard.services.chat import (
    ChatService,
    RegenerateError,
    TransientSendError,
    greeting_message,
    user_message,
)

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["chat"], include_in_schema=False)

QA_PATH = "/chat/qa"
CONVERSATION_KEY = "chat_id"
SEND_ERROR_MESSAGE = "发送消息时出现错误"
MAX_MESSAGE_LENGTH = 2000


# Dependency placeholder for the chat backend
async def get_chat_service() -> ChatService:
    """Get chat service instance."""
    raise NotImplementedError("Chat service dependency not configured")


def load_history(request: Request, chat: ChatService) -> List[ChatMessage]:
    """Read the conversation for this session, starting with the greeting."""
    history = chat.history.get(request.session.get(CONVERSATION_KEY))
    return history or [greeting_message()]


def save_history(request: Request, chat: ChatService, history: List[ChatMessage]) -> None:
    conversation_id = request.session.get(CONVERSATION_KEY)
    if not isinstance(conversation_id, str) or not conversation_id:
        conversation_id = chat.history.new_id()
        request.session[CONVERSATION_KEY] = conversation_id
    chat.history.save(conversation_id, history)


def _render_chat(
    request: Request,
    history: List[ChatMessage],
    draft: str = "",
    error: Optional[Dict[str, Any]] = None,
) -> Response:
    return render(
        request,
        "chat_qa.html",
        {
            "messages": history,
            "draft": draft,
            "error": error,
            "qa_path": QA_PATH,
        },
    )


def _back_to_chat() -> RedirectResponse:
    return RedirectResponse(QA_PATH, status_code=status.HTTP_303_SEE_OTHER)


@router.get(QA_PATH)
async def chat_page(
    request: Request,
    chat: ChatService = Depends(get_chat_service),  # noqa: B008
) -> Response:
    """Render the conversation."""
    return _render_chat(request, load_history(request, chat))


@router.post(QA_PATH)
async def send_message(
    request: Request,
    message: str = Form(""),  # noqa: B008
    chat: ChatService = Depends(get_chat_service),  # noqa: B008
) -> Response:
    """
    Send a message and append the exchange to the conversation.

    Blank input is ignored. On a transient failure the user message is not
    kept and the form is rendered again with the input restored.
    """
    content = message.strip()[:MAX_MESSAGE_LENGTH]
    if not content:
        return _back_to_chat()

    history = load_history(request, chat)
    question = user_message(content)
    try:
        reply = await chat.send(content)
    except TransientSendError as e:
        return _render_chat(
            request,
            history,
            draft=message,
            error={"message": SEND_ERROR_MESSAGE, "details": str(e), "can_retry": True},
        )

    save_history(request, chat, chat.trim(history + [question, reply]))
    return _back_to_chat()


@router.post(QA_PATH + "/regenerate/{index}")
async def regenerate_reply(
    request: Request,
    index: int,
    chat: ChatService = Depends(get_chat_service),  # noqa: B008
) -> Response:
    """Replace one assistant reply with a fresh answer."""
    history = load_history(request, chat)
    try:
        history = await chat.regenerate(history, index)
    except RegenerateError as e:
        logger.warning("chat_regenerate_failed", index=index, error=str(e))
        return _render_chat(
            request,
            history,
            error={"message": str(e), "can_retry": False},
        )

    save_history(request, chat, history)
    return _back_to_chat()


@router.post(QA_PATH + "/clear")
async def clear_conversation(
    request: Request,
    chat: ChatService = Depends(get_chat_service),  # noqa: B008
) -> Response:
    chat.history.discard(request.session.pop(CONVERSATION_KEY, None))
    return _back_to_chat()
