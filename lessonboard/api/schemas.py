"""Request and response schemas for JSON endpoints.

This module provides Pydantic models for request validation and response serialization with
OpenAPI examples.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from lessonboard.models.video import Video, VideoPart


class VideoPartResponse(BaseModel):
    """One part of a video."""

    page: int = Field(..., examples=[1])
    title: str = Field(..., examples=["绪论"])
    duration: str = Field(..., examples=["12:34"])

    @classmethod
    def from_part(cls, part: VideoPart) -> "VideoPartResponse":
        return cls(page=part.page, title=part.title, duration=part.duration)


class VideoResponse(BaseModel):
    """Catalog video."""

    id: str = Field(..., examples=["pe-01"])
    title: str = Field(..., examples=["电力电子技术"])
    bvid: str = Field(..., examples=["BV1xx411c7mD"])
    cover: str = Field(..., examples=["/static/covers/pe-01.jpg"])
    duration: str = Field(..., examples=["1:23:45"])
    description: Optional[str] = None
    parts: List[VideoPartResponse]

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            title=video.title,
            bvid=video.bvid,
            cover=video.cover,
            duration=video.duration,
            description=video.description,
            parts=[VideoPartResponse.from_part(part) for part in video.parts],
        )


class VideoListResponse(BaseModel):
    """Response for the video list endpoint."""

    videos: List[VideoResponse]
    total: int = Field(..., examples=[12])


class NavigationResponse(BaseModel):
    """Resolved part navigation for a video view."""

    current_page: int = Field(..., examples=[3])
    requested_page: int = Field(..., examples=[5])
    needs_sync: bool = Field(..., examples=[True])
    canonical_url: str = Field(..., examples=["/videos/power-electronics/pe-01?page=3"])
    current_part: Optional[VideoPartResponse] = None


class PlayerResponse(BaseModel):
    """Embed URL and the fixed iframe security attributes."""

    url: str = Field(
        ...,
        examples=[
            "https://player.bilibili.com/player.html?bvid=BV1xx411c7mD&p=2&as_wide=1&high_quality=1&danmaku=0&muted=1"
        ],
    )
    bvid: str = Field(..., examples=["BV1xx411c7mD"])
    page: int = Field(..., examples=[2])
    sandbox: str = Field(..., examples=["allow-scripts allow-same-origin allow-presentation allow-forms"])
    referrer_policy: str = Field(..., examples=["strict-origin-when-cross-origin"])


class VideoDetailResponse(BaseModel):
    """Video with navigation state and player."""

    video: VideoResponse
    navigation: NavigationResponse
    player: Optional[PlayerResponse] = None
    player_errors: List[str] = Field(default_factory=list)


class ComponentHealth(BaseModel):
    """Health status of a single component."""

    status: Literal["healthy", "unhealthy"] = Field(..., examples=["healthy"])
    details: Optional[Dict[str, Any]] = Field(default=None, examples=[{"videos": 12}])


class HealthResponse(BaseModel):
    """Detailed health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., examples=["healthy"])
    timestamp: str = Field(..., examples=["2025-12-25T10:30:00Z"])
    version: str = Field(..., examples=["0.3.0"])
    uptime_seconds: float = Field(..., examples=[3600.5])
    components: Dict[str, ComponentHealth]


class LivenessResponse(BaseModel):
    """Simple liveness check response for container orchestration."""

    status: Literal["alive"] = Field(..., examples=["alive"])


class ReadinessResponse(BaseModel):
    """Readiness check response for load balancer integration."""

    status: Literal["ready", "not_ready"] = Field(..., examples=["ready"])
    ready: bool = Field(..., examples=[True])
    message: Optional[str] = Field(default=None, examples=["Catalog not loaded"])


class ErrorDetail(BaseModel):
    """Structured error response.

    All errors follow this format with machine-readable error codes
    and optional suggestions for resolution.
    """

    error_code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["VIDEO_NOT_FOUND", "INVALID_PARAMETERS", "AUTH_REQUIRED"],
    )
    message: str = Field(..., description="Human-readable error message")
    details: Optional[str] = Field(None, description="Additional error context")
    timestamp: str = Field(..., examples=["2025-12-25T10:30:00Z"])
    request_id: Optional[str] = Field(None, description="Request ID for tracing")
    suggestion: Optional[str] = Field(None, description="Suggested action to resolve the error")


class PlayerEventRequest(BaseModel):
    """Load outcome reported by the embedded player frame."""

    bvid: str = Field(..., examples=["BV1xx411c7mD"])
    page: int = Field(1, ge=1, le=9999, examples=[2])
    event: Literal["loaded", "error"] = Field(..., examples=["error"])
    message: Optional[str] = Field(None, max_length=200)


class PlayerEventResponse(BaseModel):
    """Player state after applying an event."""

    state: Literal["loading", "loaded", "errored"] = Field(..., examples=["errored"])
