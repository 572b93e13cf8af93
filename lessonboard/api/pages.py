"""Top-level dashboard pages."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from starlette.responses import Response

from lessonboard.core.rendering import render
from lessonboard.middleware.auth import HOME_PATH, LOGIN_PATH, get_current_user
from lessonboard.models.user import Principal

router = APIRouter(tags=["pages"], include_in_schema=False)


@router.get("/")
async def index(
    user: Optional[Principal] = Depends(get_current_user),  # noqa: B008
) -> Response:
    """Send visitors to the dashboard or the login page."""
    target = HOME_PATH if user is not None else LOGIN_PATH
    return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/dashboard")
async def dashboard(request: Request) -> Response:
    return render(request, "dashboard.html")


@router.get("/chat")
async def chat_home(request: Request) -> Response:
    return render(request, "chat.html")
