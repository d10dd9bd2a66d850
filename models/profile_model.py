"""
Pydantic models for the gallery and gear records stored on a user profile.
"""

import json
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class FishInfo(BaseModel):
    """Fish identification attached to a gallery photo."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    confidence: float = 0.0
    estimated_size: Optional[str] = Field(default=None, alias="estimatedSize")
    estimated_weight: Optional[str] = Field(default=None, alias="estimatedWeight")


class PhotoLocation(BaseModel):
    latitude: float
    longitude: float
    address: Optional[str] = None


class ImageMetadata(BaseModel):
    """A gallery photo stored in ``profiles.gallery_photos``."""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    timestamp: str
    fish_info: Optional[FishInfo] = Field(default=None, alias="fishInfo")
    location: Optional[PhotoLocation] = None
    original_file_name: Optional[str] = Field(default=None, alias="originalFileName")
    user_confirmed: Optional[bool] = Field(default=None, alias="userConfirmed")


class GearItem(BaseModel):
    """A gear item stored in ``profiles.gear_items``."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    category: str
    image_url: str = Field(alias="imageUrl")
    timestamp: str
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    price: Optional[str] = None
    condition: Optional[str] = None
    purchase_date: Optional[str] = Field(default=None, alias="purchaseDate")
    user_confirmed: Optional[bool] = Field(default=None, alias="userConfirmed")
    gear_type: Optional[str] = Field(default=None, alias="gearType")
    ai_confidence: Optional[float] = Field(default=None, alias="aiConfidence")
    size: Optional[str] = None
    weight: Optional[str] = None
    target_fish: Optional[str] = Field(default=None, alias="targetFish")
    fishing_technique: Optional[str] = Field(default=None, alias="fishingTechnique")
    estimated_value: Optional[str] = Field(default=None, alias="estimatedValue")


class Profile(BaseModel):
    """The parts of a profile row the upload flow reads back."""
    id: str
    gallery_photos: List[ImageMetadata] = []
    gear_items: List[GearItem] = []


def _load_element(item: Any) -> Any:
    # Older rows store array elements as JSON strings
    if isinstance(item, str):
        return json.loads(item)
    return item


def to_gear_item(item: Any) -> GearItem:
    """Parse a ``gear_items`` array element."""
    return GearItem.model_validate(_load_element(item))


def to_image_metadata(item: Any) -> ImageMetadata:
    """Parse a ``gallery_photos`` array element."""
    return ImageMetadata.model_validate(_load_element(item))
