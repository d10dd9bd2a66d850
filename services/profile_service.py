"""
Profile store access for Lishka Upload Service.
"""

from typing import Any, Callable, List, TypeVar
from pydantic import ValidationError
from services.base import BaseService
from core.config import get_settings
from core.exceptions import DatabaseException, ResourceNotFoundException
from models.profile_model import Profile, to_gear_item, to_image_metadata

T = TypeVar("T")


class ProfileService(BaseService):
    """Reads the gallery and gear arrays stored on a user's profile row."""

    def __init__(self):
        super().__init__()
        self.settings = get_settings()

    def get_profile_row(self, user_id: str) -> dict:
        """
        Fetch the raw profile row.

        Args:
            user_id: ID of the profile owner

        Returns:
            Profile row

        Raises:
            ResourceNotFoundException: If the user has no profile
            DatabaseException: If the query fails
        """
        try:
            result = (
                self.db.table(self.settings.profiles_table)
                .select("id, gallery_photos, gear_items")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            self.logger.error(f"Failed to load profile {user_id}: {e}")
            raise DatabaseException("Failed to load profile", operation="get_profile") from e

        if not result.data:
            raise ResourceNotFoundException("Profile", user_id)

        return result.data[0]

    def refresh_profile(self, user_id: str) -> Profile:
        """
        Load the profile with its gallery photos and gear items parsed.

        Elements that cannot be parsed are skipped.

        Args:
            user_id: ID of the profile owner

        Returns:
            Parsed profile
        """
        row = self.get_profile_row(user_id)

        gallery_photos = self._parse_elements(row.get("gallery_photos"), to_image_metadata, "gallery photo", user_id)
        gear_items = self._parse_elements(row.get("gear_items"), to_gear_item, "gear item", user_id)

        self.logger.info(
            f"Profile {user_id} refreshed: {len(gallery_photos)} photos, {len(gear_items)} gear items"
        )
        return Profile(id=row.get("id", user_id), gallery_photos=gallery_photos, gear_items=gear_items)

    def _parse_elements(self, items: Any, parser: Callable[[Any], T], label: str, user_id: str) -> List[T]:
        parsed = []
        for index, item in enumerate(items or []):
            try:
                parsed.append(parser(item))
            except (ValueError, ValidationError) as e:
                self.logger.warning(f"Skipping unreadable {label} #{index} for profile {user_id}: {e}")
        return parsed
