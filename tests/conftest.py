"""Pytest configuration and shared fixtures"""

import os
from typing import Any, Dict, List

import pytest


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables before each test"""
    # Clear any APP_ prefixed environment variables
    for key in list(os.environ.keys()):
        if key.startswith("APP_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def video_records() -> List[Dict[str, Any]]:
    """Catalog records: two valid videos and one malformed record."""
    return [
        {
            "id": "v1",
            "title": "绪论",
            "bvid": "BV1xx411c7mD",
            "cover": "/covers/v1.jpg",
            "duration": "1:02:15",
            "description": "课程介绍",
            "parts": [
                {"page": 1, "title": "第一部分", "duration": "18:40"},
                {"page": 2, "title": "第二部分", "duration": "21:05"},
                {"page": 3, "title": "第三部分", "duration": "22:30"},
            ],
        },
        {
            "id": "v2",
            "title": "电力电子器件",
            "bvid": "BV1GJ411x7h7",
            "cover": "/covers/v2.jpg",
            "duration": "45:33",
            "parts": [{"page": 1, "title": "器件概述", "duration": "45:33"}],
        },
        {
            "id": "broken",
            "title": "Broken",
            "bvid": "not-a-bvid",
            "cover": "/covers/broken.jpg",
            "duration": "1:00",
            "parts": [{"page": 1, "title": "x", "duration": "1:00"}],
        },
    ]
