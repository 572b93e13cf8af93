"""Video lesson pages and JSON endpoints.

- /videos/power-electronics: catalog browser
- /videos/power-electronics/{video_id}: multi-part player page
- /api/v1/videos, /api/v1/videos/{video_id}, /api/v1/player-url: JSON equivalents
"""

from typing import Any, Optional, Tuple

import structlog
from fastapi import APIRouter, Depends, Query, Request
from starlette.responses import Response

from lessonboard.api.schemas import (
    NavigationResponse,
    PlayerEventRequest,
    PlayerEventResponse,
    PlayerResponse,
    VideoDetailResponse,
    VideoListResponse,
    VideoPartResponse,
    VideoResponse,
)
from lessonboard.core.config import PlayerConfig
from lessonboard.core.errors import APIError, ErrorCode
from lessonboard.core.rendering import render
from lessonboard.core.validation import is_valid_bvid
from lessonboard.middleware.auth import require_user
from lessonboard.models.video import Video
from lessonboard.services.catalog import VideoCatalog
from lessonboard.services.navigation import NavigationState, build_navigation, part_url
from lessonboard.services.player import (
    PLAYER_REFERRER_POLICY,
    PLAYER_SANDBOX,
    PlayerSession,
    PlayerState,
    PlayerSupervisor,
    PlayerUrlResult,
    build_player_url,
)

logger = structlog.get_logger(__name__)

COURSE_PATH = "/videos/power-electronics"

router = APIRouter(tags=["videos"])


# Dependency placeholders, overridden at application assembly
async def get_catalog() -> VideoCatalog:
    """Get video catalog instance."""
    raise NotImplementedError("Catalog dependency not configured")


async def get_player_config() -> PlayerConfig:
    """Get player defaults."""
    return PlayerConfig()


def _current_url(request: Request) -> str:
    path = request.url.path
    return f"{path}?{request.url.query}" if request.url.query else path


def _lookup(catalog: VideoCatalog, video_id: str) -> Video:
    video = catalog.find_video(video_id)
    if video is None:
        raise APIError(
            ErrorCode.VIDEO_NOT_FOUND,
            f"Video '{video_id}' not found",
        )
    return video


def _player_for(
    video: Video, navigation: NavigationState, player_config: PlayerConfig
) -> Tuple[PlayerSupervisor, Optional[PlayerUrlResult]]:
    supervisor = PlayerSupervisor(name=f"player:{video.id}")
    result = supervisor.run(
        lambda: build_player_url(
            video.bvid,
            navigation.current_page,
            autoplay=player_config.autoplay,
            muted=player_config.muted,
        )
    )
    return supervisor, result


@router.get(COURSE_PATH, include_in_schema=False)
async def video_list_page(
    request: Request,
    catalog: VideoCatalog = Depends(get_catalog),  # noqa: B008
) -> Response:
    """Render the course's video list."""
    videos = catalog.list_videos()
    return render(request, "videos.html", {"videos": videos, "course_path": COURSE_PATH})


@router.get(COURSE_PATH + "/{video_id}", include_in_schema=False)
async def video_detail_page(
    request: Request,
    video_id: str,
    catalog: VideoCatalog = Depends(get_catalog),  # noqa: B008
    player_config: PlayerConfig = Depends(get_player_config),  # noqa: B008
) -> Response:
    """
    Render the player page for one video.

    The requested part comes from the "page" query parameter. When it is
    out of range or not canonical the page rewrites the address bar to the
    canonical URL once, without navigating.
    """
    video = _lookup(catalog, video_id)
    navigation = build_navigation(
        video.parts,
        request.query_params.get("page"),
        _current_url(request),
        sidebar_open=request.query_params.get("sidebar") == "open",
    )
    if navigation.resolution.needs_sync:
        logger.info(
            "video_page_corrected",
            video_id=video.id,
            requested_page=request.query_params.get("page"),
            valid_page=navigation.current_page,
        )

    supervisor, player = _player_for(video, navigation, player_config)

    detail_path = f"{COURSE_PATH}/{video.id}"
    return render(
        request,
        "video_detail.html",
        {
            "video": video,
            "navigation": navigation,
            "player": player,
            "player_state": PlayerState.LOADING.value,
            "supervisor": supervisor,
            "sandbox": PLAYER_SANDBOX,
            "referrer_policy": PLAYER_REFERRER_POLICY,
            "course_path": COURSE_PATH,
            "part_urls": {part.page: part_url(detail_path, part.page) for part in video.parts},
        },
    )


@router.get(
    "/api/v1/videos",
    response_model=VideoListResponse,
    dependencies=[Depends(require_user)],
)
async def list_videos(
    catalog: VideoCatalog = Depends(get_catalog),  # noqa: B008
) -> Any:
    """List all catalog videos."""
    videos = [VideoResponse.from_video(video) for video in catalog.list_videos()]
    return VideoListResponse(videos=videos, total=len(videos))


@router.get(
    "/api/v1/videos/{video_id}",
    response_model=VideoDetailResponse,
    dependencies=[Depends(require_user)],
    responses={404: {"description": "Video not found"}},
)
async def get_video(
    request: Request,
    video_id: str,
    page: Optional[str] = Query(None, description="Requested part number"),  # noqa: B008
    catalog: VideoCatalog = Depends(get_catalog),  # noqa: B008
    player_config: PlayerConfig = Depends(get_player_config),  # noqa: B008
) -> Any:
    """
    Get a video with its resolved part and embed URL.

    Args:
        video_id: Catalog identifier
        page: Raw page value; resolved the same way as on the player page

    Returns:
        Video, navigation state and player
    """
    video = _lookup(catalog, video_id)
    detail_path = f"{COURSE_PATH}/{video.id}"
    current_url = f"{detail_path}?{request.url.query}" if request.url.query else detail_path
    navigation = build_navigation(video.parts, page, current_url)
    _, player = _player_for(video, navigation, player_config)

    part = navigation.resolution.current_part
    response = VideoDetailResponse(
        video=VideoResponse.from_video(video),
        navigation=NavigationResponse(
            current_page=navigation.current_page,
            requested_page=navigation.resolution.requested_page,
            needs_sync=navigation.resolution.needs_sync,
            canonical_url=navigation.canonical_url,
            current_part=VideoPartResponse.from_part(part) if part else None,
        ),
    )
    if player is not None and player.is_valid and player.url:
        response.player = PlayerResponse(
            url=player.url,
            bvid=player.bvid or video.bvid,
            page=player.page,
            sandbox=PLAYER_SANDBOX,
            referrer_policy=PLAYER_REFERRER_POLICY,
        )
    else:
        response.player_errors = player.errors if player else ["Player could not be built"]
    return response


@router.get(
    "/api/v1/player-url",
    response_model=PlayerResponse,
    dependencies=[Depends(require_user)],
    responses={400: {"description": "Invalid parameters"}},
)
async def get_player_url(
    bvid: str = Query(..., description="Bilibili BV id"),  # noqa: B008
    page: Optional[str] = Query(None, description="Part number"),  # noqa: B008
    autoplay: bool = Query(False),  # noqa: B008
    muted: bool = Query(True),  # noqa: B008
) -> Any:
    """Build an embed URL for arbitrary parameters."""
    result = build_player_url(bvid, page if page is not None else 1, autoplay=autoplay, muted=muted)
    if not result.is_valid or not result.url:
        raise APIError(
            ErrorCode.INVALID_PARAMETERS,
            "Invalid player parameters",
            details="; ".join(result.errors),
        )
    return PlayerResponse(
        url=result.url,
        bvid=result.bvid or bvid,
        page=result.page,
        sandbox=PLAYER_SANDBOX,
        referrer_policy=PLAYER_REFERRER_POLICY,
    )


@router.post(
    "/api/v1/player/events",
    response_model=PlayerEventResponse,
    dependencies=[Depends(require_user)],
    responses={400: {"description": "Invalid parameters"}},
)
async def report_player_event(event: PlayerEventRequest) -> Any:
    """
    Record the load outcome of an embedded player.

    The browser reports frame load and error events here so that load
    failures show up in the server logs.
    """
    if not is_valid_bvid(event.bvid):
        raise APIError(ErrorCode.INVALID_PARAMETERS, "Invalid bvid")

    # Each report is the outcome of one fresh frame load: the session checks
    # the Loading transition and logs failures
    session = PlayerSession(event.bvid, event.page)
    if event.event == "loaded":
        session.mark_loaded()
    else:
        session.mark_errored(event.message or "Video failed to load")
    return PlayerEventResponse(state=session.state.value)
