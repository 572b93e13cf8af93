"""Embedded Bilibili player: URL construction and view state.

The embed URL is only ever built from a validated bvid, a coerced page number
and a fixed allow-list of query keys. Every pair is re-checked against
restrictive character classes before it is written.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar
from urllib.parse import urlencode

import structlog

from lessonboard.core.metrics import MetricsCollector
from lessonboard.core.validation import bvid_validator, page_validator, validate_url_params

logger = structlog.get_logger(__name__)

T = TypeVar("T")

PLAYER_BASE_URL = "https://player.bilibili.com/player.html"

# Fixed iframe security posture
PLAYER_SANDBOX = "allow-scripts allow-same-origin allow-presentation allow-forms"
PLAYER_REFERRER_POLICY = "strict-origin-when-cross-origin"

# Display flags always sent to the player
DISPLAY_FLAGS: Dict[str, str] = {
    "as_wide": "1",
    "high_quality": "1",
    "danmaku": "0",
}


@dataclass(frozen=True)
class PlayerUrlResult:
    """Outcome of building an embed URL. Rejected results carry no URL."""

    is_valid: bool
    url: Optional[str] = None
    bvid: Optional[str] = None
    page: int = 1
    errors: List[str] = field(default_factory=list)


def build_player_url(
    bvid: Any, page: Any = 1, autoplay: bool = False, muted: bool = True
) -> PlayerUrlResult:
    """
    Build the embed URL for a bvid and page.

    Args:
        bvid: External video identifier; must match the bvid grammar exactly
        page: Part number; coerced, floored and clamped to [1, 9999]
        autoplay: Add autoplay=1
        muted: Add muted=1

    Returns:
        PlayerUrlResult with the URL, or a rejected result
    """
    validation = bvid_validator.validate(bvid)
    if not validation.is_valid:
        logger.warning("player_url_rejected", bvid=repr(bvid)[:64], reason=validation.error_message)
        MetricsCollector.record_player_url("rejected")
        return PlayerUrlResult(is_valid=False, errors=[validation.error_message or "Invalid bvid"])

    valid_page = page_validator.sanitize(page)

    params: Dict[str, str] = {"bvid": validation.sanitized_value or bvid, "p": str(valid_page)}
    params.update(DISPLAY_FLAGS)
    if autoplay:
        params["autoplay"] = "1"
    if muted:
        params["muted"] = "1"

    checked = validate_url_params(params)
    if not checked.is_valid:
        logger.warning("player_url_params_dropped", rejected_keys=checked.rejected_keys)

    if "bvid" not in checked.sanitized:
        MetricsCollector.record_player_url("rejected")
        return PlayerUrlResult(is_valid=False, errors=["bvid failed parameter validation"])

    MetricsCollector.record_player_url("built")
    return PlayerUrlResult(
        is_valid=True,
        url=f"{PLAYER_BASE_URL}?{urlencode(checked.sanitized)}",
        bvid=checked.sanitized["bvid"],
        page=valid_page,
    )


class PlayerState(str, Enum):
    """State of the embedded player view."""

    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class InvalidTransitionError(Exception):
    """Raised on a player state transition that is not allowed."""

    pass


class PlayerLoadError(Exception):
    """The embedded frame reported a load failure."""

    pass


class PlayerSession:
    """State machine for one embedded player.

    Transitions:
        Loading -> Loaded | Errored
        Errored -> Loading          (retry)
        Loading | Loaded -> Loading (bvid or page change)

    The load outcome can be awaited with wait(). The frame's load and error
    events are external, so wait() has no timeout of its own.
    """

    def __init__(self, bvid: str, page: int = 1):
        self.bvid = bvid
        self.page = page
        self.state = PlayerState.LOADING
        self.error_message: Optional[str] = None
        self._outcome: Optional[asyncio.Future] = None

    def _future(self) -> asyncio.Future:
        if self._outcome is None:
            self._outcome = asyncio.get_running_loop().create_future()
        return self._outcome

    def _require(self, *allowed: PlayerState) -> None:
        if self.state not in allowed:
            raise InvalidTransitionError(f"Cannot leave {self.state.value} this way")

    def mark_loaded(self) -> None:
        """Frame signalled load."""
        self._require(PlayerState.LOADING)
        self.state = PlayerState.LOADED
        self.error_message = None
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_result(PlayerState.LOADED)

    def mark_errored(self, message: str = "Video failed to load") -> None:
        """Frame signalled an error."""
        self._require(PlayerState.LOADING)
        self.state = PlayerState.ERRORED
        self.error_message = message
        logger.error("player_load_failed", bvid=self.bvid, page=self.page, error=message)
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_exception(PlayerLoadError(message))

    def retry(self) -> None:
        """Manual retry after an error."""
        self._require(PlayerState.ERRORED)
        self._reset()

    def change(self, bvid: str, page: int) -> None:
        """Switch to another video or part. A no-op when nothing changed."""
        self._require(PlayerState.LOADING, PlayerState.LOADED)
        if (bvid, page) == (self.bvid, self.page):
            return
        self.bvid = bvid
        self.page = page
        self._reset()

    def _reset(self) -> None:
        if self._outcome is not None and not self._outcome.done():
            self._outcome.cancel()
        self._outcome = None
        self.state = PlayerState.LOADING
        self.error_message = None

    async def wait(self) -> PlayerState:
        """
        Wait for the current load to finish.

        Returns:
            PlayerState.LOADED

        Raises:
            PlayerLoadError: If the frame reported an error
            asyncio.CancelledError: If the bvid or page changed meanwhile
        """
        if self.state is PlayerState.LOADED:
            return self.state
        if self.state is PlayerState.ERRORED:
            raise PlayerLoadError(self.error_message or "Video failed to load")
        return await self._future()


class PlayerSupervisor:
    """Contains faults raised while producing the player subtree.

    A fault moves the supervisor to Errored with a message instead of
    propagating. reset() returns it to Loading so the subtree can be retried.
    """

    def __init__(self, name: str = "player"):
        self.name = name
        self.state = PlayerState.LOADING
        self.error: Optional[BaseException] = None

    @property
    def has_error(self) -> bool:
        return self.state is PlayerState.ERRORED

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error else None

    def run(self, render: Callable[[], T], fallback: Optional[T] = None) -> Optional[T]:
        """
        Call render, converting any exception into the Errored state.

        Args:
            render: Produces the subtree
            fallback: Returned instead of the subtree on failure

        Returns:
            The rendered subtree, or fallback on failure
        """
        try:
            result = render()
        except Exception as e:
            self.state = PlayerState.ERRORED
            self.error = e
            logger.error(
                "player_subtree_failed",
                supervisor=self.name,
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            return fallback
        self.state = PlayerState.LOADED
        self.error = None
        return result

    def reset(self) -> None:
        self.state = PlayerState.LOADING
        self.error = None
