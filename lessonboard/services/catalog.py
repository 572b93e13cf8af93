"""Read-only video catalog.

The catalog is loaded once from a JSON fixture and injected wherever it is
needed. Lookups never raise: a miss or a malformed record is logged and
reported as "not found".
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import structlog

from lessonboard.core.metrics import MetricsCollector
from lessonboard.core.validation import video_shape_validator
from lessonboard.models.video import Video

logger = structlog.get_logger(__name__)


class CatalogLoadError(Exception):
    """Raised when the catalog fixture cannot be read."""

    pass


class VideoCatalog:
    """In-memory collection of catalog records with validated lookups."""

    def __init__(self, records: Sequence[Any]):
        """
        Initialize the catalog.

        Args:
            records: Raw video records, typically parsed from the JSON fixture.
                     Records are kept as given and validated on access.
        """
        self._records: List[Any] = list(records)
        self._index: Dict[str, Any] = {}
        for record in self._records:
            if isinstance(record, dict) and isinstance(record.get("id"), str):
                # First record wins for duplicate ids
                self._index.setdefault(record["id"], record)

    def __len__(self) -> int:
        return len(self._records)

    def find_video(self, video_id: Any) -> Optional[Video]:
        """
        Look up a video by identifier.

        Args:
            video_id: Catalog identifier, must be a non-empty string

        Returns:
            The Video, or None when the id is invalid, unknown, or the record
            fails shape validation
        """
        if not isinstance(video_id, str) or not video_id:
            logger.warning("video_lookup_invalid_id", video_id=repr(video_id))
            MetricsCollector.record_catalog_lookup("invalid_id")
            return None

        record = self._index.get(video_id)
        if record is None:
            logger.info("video_lookup_miss", video_id=video_id)
            MetricsCollector.record_catalog_lookup("miss")
            return None

        validation = video_shape_validator.validate_video(record)
        if not validation.is_valid:
            logger.warning(
                "video_record_invalid",
                video_id=video_id,
                reason=validation.error_message,
            )
            MetricsCollector.record_catalog_lookup("invalid_record")
            return None

        MetricsCollector.record_catalog_lookup("hit")
        return Video.from_dict(record)

    def list_videos(self) -> List[Video]:
        """
        List all valid videos in fixture order.

        Invalid records are skipped with a warning.
        """
        videos: List[Video] = []
        for position, record in enumerate(self._records):
            validation = video_shape_validator.validate_video(record)
            if not validation.is_valid:
                logger.warning(
                    "video_record_skipped",
                    position=position,
                    reason=validation.error_message,
                )
                continue
            videos.append(Video.from_dict(record))
        return videos


def load_catalog(path: str) -> VideoCatalog:
    """
    Load the catalog fixture from disk.

    Args:
        path: Path to a JSON file holding an array of video records

    Returns:
        VideoCatalog over the file's records

    Raises:
        CatalogLoadError: If the file is missing, unreadable or not a JSON array
    """
    catalog_path = Path(path)
    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CatalogLoadError(f"Catalog file not found: {catalog_path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogLoadError(f"Catalog file could not be read: {e}") from e

    if not isinstance(data, list):
        raise CatalogLoadError("Catalog file must contain a JSON array")

    catalog = VideoCatalog(data)
    logger.info("catalog_loaded", path=str(catalog_path), records=len(catalog))
    return catalog
