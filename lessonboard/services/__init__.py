"""Application services."""

from lessonboard.services.catalog import CatalogLoadError, VideoCatalog, load_catalog
from lessonboard.services.chat import ChatService, RegenerateError, TransientSendError
from lessonboard.services.navigation import (
    NavigationState,
    PageResolution,
    build_navigation,
    parse_page,
    resolve_page,
    resolve_part,
    sync_page,
)
from lessonboard.services.player import (
    PlayerSession,
    PlayerState,
    PlayerSupervisor,
    PlayerUrlResult,
    build_player_url,
)

__all__ = [
    "CatalogLoadError",
    "VideoCatalog",
    "load_catalog",
    "ChatService",
    "RegenerateError",
    "TransientSendError",
    "NavigationState",
    "PageResolution",
    "build_navigation",
    "parse_page",
    "resolve_page",
    "resolve_part",
    "sync_page",
    "PlayerSession",
    "PlayerState",
    "PlayerSupervisor",
    "PlayerUrlResult",
    "build_player_url",
]
