"""
Base service classes for Lishka Upload Service services.
"""

from abc import ABC
from typing import Dict, List, Optional, Tuple
import httpx
from supabase import Client
from core.config import get_settings
from core.database import db_manager
from core.logging import LoggerMixin
from core.middleware import REFRESH_TOKEN_HEADER
from models.upload_model import UploadedImage


class BaseService(LoggerMixin, ABC):
    """Base service class for services backed by the profile store."""

    def __init__(self):
        """Initialize the base service."""
        self._db_client: Optional[Client] = None

    @property
    def db(self) -> Client:
        """Get the database client."""
        if self._db_client is None:
            self._db_client = db_manager.client
        return self._db_client



class BackendService(LoggerMixin, ABC):
    """Base class for services that call the Lishka backend over HTTP."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None
    ):
        self.settings = get_settings()
        self.http = http_client
        self.access_token = access_token
        self.refresh_token = refresh_token

    def build_headers(self) -> Dict[str, str]:
        """Headers for a multipart request; httpx sets the content type."""
        headers = {"Accept": "*/*"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.refresh_token:
            headers[REFRESH_TOKEN_HEADER] = self.refresh_token
        return headers

    @staticmethod
    def build_files(images: List[UploadedImage]) -> List[Tuple[str, Tuple[str, bytes, str]]]:
        """Repeated ``file`` multipart fields, one per image."""
        return [
            ("file", (image.filename, image.content, image.content_type or "application/octet-stream"))
            for image in images
        ]
