"""Tests for ProfileService with a mocked Supabase client."""

import json
import logging
from unittest.mock import MagicMock

import pytest

from core.exceptions import DatabaseException, ResourceNotFoundException
from services.profile_service import ProfileService


def _service(rows=None, error=None):
    """ProfileService whose query chain returns ``rows`` or raises ``error``."""
    client = MagicMock()
    query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = MagicMock(data=rows or [])

    service = ProfileService()
    service._db_client = client
    return service, client


def _photo(url="https://cdn.test/bass.jpg"):
    return {
        "url": url,
        "timestamp": "2024-06-01T10:00:00Z",
        "fishInfo": {"name": "Largemouth Bass", "confidence": 0.92, "estimatedSize": "40cm"},
    }


def _gear(item_id="gear-1"):
    return {
        "id": item_id,
        "name": "Stradic 2500",
        "category": "Reel",
        "imageUrl": "https://cdn.test/reel.jpg",
        "timestamp": "2024-06-01T10:00:00Z",
        "brand": "Shimano",
    }


class TestGetProfileRow:
    def test_queries_profiles_table(self):
        service, client = _service(rows=[{"id": "user-1", "gallery_photos": [], "gear_items": []}])

        row = service.get_profile_row("user-1")

        assert row["id"] == "user-1"
        client.table.assert_called_once_with("profiles")
        client.table.return_value.select.assert_called_once_with("id, gallery_photos, gear_items")
        client.table.return_value.select.return_value.eq.assert_called_once_with("id", "user-1")

    def test_missing_profile(self):
        service, _ = _service(rows=[])

        with pytest.raises(ResourceNotFoundException):
            service.get_profile_row("user-1")

    def test_query_failure(self):
        service, _ = _service(error=RuntimeError("connection reset"))

        with pytest.raises(DatabaseException) as exc_info:
            service.get_profile_row("user-1")

        assert exc_info.value.status_code == 500


class TestRefreshProfile:
    def test_parses_dicts_and_json_strings(self):
        service, _ = _service(rows=[{
            "id": "user-1",
            "gallery_photos": [_photo(), json.dumps(_photo("https://cdn.test/trout.jpg"))],
            "gear_items": [json.dumps(_gear())],
        }])

        profile = service.refresh_profile("user-1")

        assert profile.id == "user-1"
        assert [photo.url for photo in profile.gallery_photos] == [
            "https://cdn.test/bass.jpg",
            "https://cdn.test/trout.jpg",
        ]
        assert profile.gallery_photos[0].fish_info.estimated_size == "40cm"
        assert profile.gear_items[0].image_url == "https://cdn.test/reel.jpg"
        assert profile.gear_items[0].brand == "Shimano"

    def test_skips_unreadable_elements(self, caplog):
        service, _ = _service(rows=[{
            "id": "user-1",
            "gallery_photos": ["{not json", _photo()],
            "gear_items": [{"name": "no id"}, _gear("gear-2")],
        }])

        with caplog.at_level(logging.WARNING):
            profile = service.refresh_profile("user-1")

        assert len(profile.gallery_photos) == 1
        assert [item.id for item in profile.gear_items] == ["gear-2"]
        assert "Skipping unreadable gallery photo #0" in caplog.text
        assert "Skipping unreadable gear item #0" in caplog.text

    def test_null_arrays(self):
        service, _ = _service(rows=[{"id": "user-1", "gallery_photos": None, "gear_items": None}])

        profile = service.refresh_profile("user-1")

        assert profile.gallery_photos == []
        assert profile.gear_items == []
