"""Video catalog data models."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class VideoPart:
    """One part ("page") of a multi-part video lesson."""

    page: int
    title: str
    duration: str  # e.g. "12:34"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VideoPart":
        return cls(page=data["page"], title=data["title"], duration=data["duration"])


@dataclass(frozen=True)
class Video:
    """A video lesson from the static catalog."""

    id: str
    title: str
    bvid: str
    cover: str
    duration: str  # total, e.g. "1:23:45"
    parts: Tuple[VideoPart, ...]
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Video":
        """Build a Video from a record that already passed shape validation."""
        return cls(
            id=data["id"],
            title=data["title"],
            bvid=data["bvid"],
            cover=data["cover"],
            duration=data["duration"],
            parts=tuple(VideoPart.from_dict(part) for part in data["parts"]),
            description=data.get("description"),
        )

    @property
    def part_count(self) -> int:
        return len(self.parts)
