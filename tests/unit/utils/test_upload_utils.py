"""Tests for upload validation helpers."""

import pytest

from conftest import make_settings
from core.exceptions import ValidationException
from models.upload_model import UploadedImage
from utils.upload_utils import identified_gear_message, is_image, validate_images


def _image(name="catch.jpg", content=b"data", content_type="image/jpeg"):
    return UploadedImage(filename=name, content=content, content_type=content_type)


class TestIsImage:
    def test_declared_image_type(self, settings):
        assert is_image(_image("photo", content_type="image/heic"), settings.allowed_image_extensions)

    def test_declared_non_image_type(self, settings):
        assert not is_image(_image("photo.jpg", content_type="text/plain"), settings.allowed_image_extensions)

    @pytest.mark.parametrize("content_type", [None, "application/octet-stream"])
    def test_falls_back_to_extension(self, settings, content_type):
        assert is_image(_image("IMG_1.HEIC", content_type=content_type), settings.allowed_image_extensions)
        assert not is_image(_image("notes.txt", content_type=content_type), settings.allowed_image_extensions)


class TestValidateImages:
    def test_empty_selection(self, settings):
        with pytest.raises(ValidationException, match="No files selected"):
            validate_images([], settings)

    def test_empty_file(self, settings):
        with pytest.raises(ValidationException, match="is empty"):
            validate_images([_image(content=b"")], settings)

    def test_size_limit_message(self, settings):
        big = _image(content=b"0" * (16 * 1024 * 1024))

        with pytest.raises(ValidationException) as exc_info:
            validate_images([big], settings)

        assert exc_info.value.message == "Photo must be less than 15MB (current: 16.0MB)"
        assert exc_info.value.status_code == 400

    def test_file_at_limit_passes(self, monkeypatch):
        settings = make_settings(monkeypatch, MAX_FILE_SIZE=10)
        validate_images([_image(content=b"0" * 10)], settings)

    def test_first_bad_file_reported(self, settings):
        with pytest.raises(ValidationException) as exc_info:
            validate_images([_image("ok.jpg"), _image("doc.pdf", content_type="application/pdf")], settings)

        assert exc_info.value.details["filename"] == "doc.pdf"


class TestIdentifiedGearMessage:
    def test_marker(self):
        message = "Gear uploaded! Identified: Rapala X-Rap"
        assert identified_gear_message(message) == message

    def test_other_messages(self):
        assert identified_gear_message("Saved") is None
        assert identified_gear_message(None) is None
