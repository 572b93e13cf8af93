"""Part navigation for multi-part videos.

Resolves the requested page of a video to a valid part and computes the
canonical URL for the resolved page. The "page" query parameter is only
present in the URL when it differs from the default page 1.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from lessonboard.core.validation import page_validator
from lessonboard.models.video import VideoPart

PAGE_PARAM = "page"
DEFAULT_PAGE = 1


@dataclass(frozen=True)
class PageResolution:
    """Outcome of resolving a requested page against a video's parts."""

    valid_page: int
    current_part: Optional[VideoPart]
    requested_page: int
    needs_sync: bool

    @property
    def has_part(self) -> bool:
        return self.current_part is not None


@dataclass(frozen=True)
class NavigationState:
    """Per-view navigation state for the video page."""

    resolution: PageResolution
    parts: Sequence[VideoPart]
    canonical_url: str
    sidebar_open: bool = False

    @property
    def current_page(self) -> int:
        return self.resolution.valid_page

    @property
    def current_index(self) -> int:
        for index, part in enumerate(self.parts):
            if part.page == self.current_page:
                return index
        return 0

    @property
    def previous_part(self) -> Optional[VideoPart]:
        index = self.current_index
        return self.parts[index - 1] if self.parts and index > 0 else None

    @property
    def next_part(self) -> Optional[VideoPart]:
        index = self.current_index
        return self.parts[index + 1] if index < len(self.parts) - 1 else None

    @property
    def progress_percent(self) -> int:
        if not self.parts:
            return 0
        return round((self.current_index + 1) / len(self.parts) * 100)


def parse_page(raw: Any) -> int:
    """
    Parse an untrusted page value.

    Missing or non-numeric input defaults to 1. The result is not clamped to
    any video's part count.
    """
    if raw is None:
        return DEFAULT_PAGE
    return page_validator.sanitize(raw)


def resolve_page(requested: int, parts_count: int) -> int:
    """Clamp a requested page into [1, parts_count]."""
    return max(1, min(requested, parts_count))


def resolve_part(parts: Sequence[VideoPart], raw_page: Any) -> PageResolution:
    """
    Resolve the page requested through the URL to a part.

    Args:
        parts: The video's ordered parts
        raw_page: Raw "page" query value, or None when absent

    Returns:
        PageResolution. needs_sync is set when the URL does not already carry
        the canonical form of the resolved page.
    """
    requested = parse_page(raw_page)

    if not parts:
        return PageResolution(
            valid_page=DEFAULT_PAGE,
            current_part=None,
            requested_page=requested,
            needs_sync=raw_page is not None,
        )

    valid_page = resolve_page(requested, len(parts))
    current_part = next((part for part in parts if part.page == valid_page), parts[0])

    if raw_page is None:
        needs_sync = valid_page != DEFAULT_PAGE
    else:
        needs_sync = valid_page == DEFAULT_PAGE or str(raw_page) != str(valid_page)

    return PageResolution(
        valid_page=valid_page,
        current_part=current_part,
        requested_page=requested,
        needs_sync=needs_sync,
    )


def sync_page(url: str, page: int) -> str:
    """
    Return url with its "page" query parameter set for page.

    Page 1 removes the parameter. Other query parameters keep their order.
    Applying the function twice gives the same URL.
    """
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != PAGE_PARAM]
    if page != DEFAULT_PAGE:
        query.append((PAGE_PARAM, str(page)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def build_navigation(
    parts: Sequence[VideoPart], raw_page: Any, current_url: str, sidebar_open: bool = False
) -> NavigationState:
    """Resolve the page and compute the canonical URL in one step."""
    resolution = resolve_part(parts, raw_page)
    canonical_url = sync_page(current_url, resolution.valid_page)
    return NavigationState(
        resolution=resolution,
        parts=parts,
        canonical_url=canonical_url,
        sidebar_open=sidebar_open,
    )


def part_url(base_path: str, page: int) -> str:
    """Link target for a part of a video."""
    return sync_page(base_path, page)
