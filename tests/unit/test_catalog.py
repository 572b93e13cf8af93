"""Tests for the video catalog"""

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from lessonboard.core.config import DEFAULT_CATALOG_PATH
from lessonboard.services.catalog import CatalogLoadError, VideoCatalog, load_catalog


class TestVideoCatalog:
    """Test catalog lookups"""

    @pytest.fixture
    def catalog(self, video_records: List[Dict[str, Any]]) -> VideoCatalog:
        return VideoCatalog(video_records)

    def test_find_video_hit(self, catalog: VideoCatalog) -> None:
        video = catalog.find_video("v1")
        assert video is not None
        assert video.id == "v1"
        assert video.bvid == "BV1xx411c7mD"
        assert [part.page for part in video.parts] == [1, 2, 3]
        assert video.part_count == 3
        assert video.description == "课程介绍"

    def test_find_video_without_description(self, catalog: VideoCatalog) -> None:
        video = catalog.find_video("v2")
        assert video is not None
        assert video.description is None

    def test_find_video_miss(self, catalog: VideoCatalog) -> None:
        assert catalog.find_video("missing") is None

    @pytest.mark.parametrize("video_id", ["", None, 1, ["v1"]])
    def test_find_video_invalid_id(self, catalog: VideoCatalog, video_id: Any) -> None:
        assert catalog.find_video(video_id) is None

    def test_find_video_invalid_record(self, catalog: VideoCatalog) -> None:
        """A malformed record is reported as not found"""
        assert catalog.find_video("broken") is None

    def test_list_videos_skips_invalid(self, catalog: VideoCatalog) -> None:
        assert [video.id for video in catalog.list_videos()] == ["v1", "v2"]

    def test_len_counts_all_records(self, catalog: VideoCatalog) -> None:
        assert len(catalog) == 3

    def test_duplicate_id_first_wins(self, video_records: List[Dict[str, Any]]) -> None:
        duplicate = dict(video_records[1], id="v1", title="Duplicate")
        catalog = VideoCatalog(video_records + [duplicate])
        video = catalog.find_video("v1")
        assert video is not None
        assert video.title == "绪论"

    def test_non_dict_records_ignored(self) -> None:
        catalog = VideoCatalog(["v1", 42, None])
        assert catalog.find_video("v1") is None
        assert catalog.list_videos() == []

    def test_parts_are_immutable(self, catalog: VideoCatalog) -> None:
        video = catalog.find_video("v1")
        assert video is not None
        assert isinstance(video.parts, tuple)
        with pytest.raises(AttributeError):
            video.parts[0].page = 5  # type: ignore[misc]


class TestLoadCatalog:
    """Test loading the catalog fixture"""

    def test_load_from_file(self, tmp_path: Path, video_records: List[Dict[str, Any]]) -> None:
        path = tmp_path / "videos.json"
        path.write_text(json.dumps(video_records, ensure_ascii=False), encoding="utf-8")

        catalog = load_catalog(str(path))

        assert len(catalog) == 3
        assert catalog.find_video("v2") is not None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CatalogLoadError, match="not found"):
            load_catalog(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "videos.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(CatalogLoadError, match="could not be read"):
            load_catalog(str(path))

    def test_not_an_array(self, tmp_path: Path) -> None:
        path = tmp_path / "videos.json"
        path.write_text('{"id": "v1"}', encoding="utf-8")
        with pytest.raises(CatalogLoadError, match="JSON array"):
            load_catalog(str(path))

    def test_bundled_catalog_is_valid(self) -> None:
        """Every record shipped with the package passes shape validation"""
        catalog = load_catalog(DEFAULT_CATALOG_PATH)
        assert len(catalog) > 0
        assert len(catalog.list_videos()) == len(catalog)
