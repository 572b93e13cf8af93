"""Middleware package for the application."""

from lessonboard.middleware.auth import (
    AuthGateMiddleware,
    SessionAuth,
    get_current_user,
    require_user,
)

__all__ = [
    "AuthGateMiddleware",
    "SessionAuth",
    "get_current_user",
    "require_user",
]
