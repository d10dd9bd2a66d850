from typing import List, Optional
from core.config import Settings
from core.exceptions import ValidationException
from models.upload_model import UploadedImage

GEAR_IDENTIFIED_MARKER = "Gear uploaded! Identified:"


def allowed_file(filename: str, allowed_extensions: List[str]) -> bool:
    return any(filename.lower().endswith(ext) for ext in allowed_extensions)


def is_image(image: UploadedImage, allowed_extensions: List[str]) -> bool:
    """Accept a declared image/* type, or a known image extension when the type is missing."""
    if image.content_type and image.content_type != "application/octet-stream":
        return image.content_type.startswith("image/")
    return allowed_file(image.filename, allowed_extensions)


def validate_images(images: List[UploadedImage], settings: Settings) -> None:
    """
    Reject empty selections, non-images, empty files and oversized files.

    Raises:
        ValidationException: On the first offending file
    """
    if not images:
        raise ValidationException("No files selected", field="files")

    max_mb = settings.max_file_size / (1024 * 1024)
    for image in images:
        if not is_image(image, settings.allowed_image_extensions):
            raise ValidationException(
                f"{image.filename} is not an image",
                field="files",
                details={"filename": image.filename, "content_type": image.content_type}
            )
        if image.size == 0:
            raise ValidationException(f"{image.filename} is empty", field="files", details={"filename": image.filename})
        if image.size > settings.max_file_size:
            raise ValidationException(
                f"Photo must be less than {max_mb:.0f}MB (current: {image.size / (1024 * 1024):.1f}MB)",
                field="files",
                details={"filename": image.filename, "size": image.size}
            )


def identified_gear_message(message: Optional[str]) -> Optional[str]:
    if message and GEAR_IDENTIFIED_MARKER in message:
        return message
    return None
