"""
Registry of per-user upload contexts.
"""

from typing import Dict, Optional
import httpx
from core.config import get_settings
from core.logging import LoggerMixin
from services.classification_service import ClassificationService
from services.profile_service import ProfileService
from services.upload_context import UploadContext
from services.upload_stream_service import UploadStreamService


class UploadSessionManager(LoggerMixin):
    """Owns the shared backend HTTP client and one ``UploadContext`` per user."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        profile_service: Optional[ProfileService] = None
    ):
        self.settings = get_settings()
        self.http = http_client or httpx.AsyncClient(
            base_url=self.settings.backend_url,
            timeout=self.settings.request_timeout
        )
        self.profile_service = profile_service or ProfileService()
        self._contexts: Dict[str, UploadContext] = {}

    def get_or_create(
        self,
        user_id: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None
    ) -> UploadContext:
        """
        Get the user's context, creating it on first use.

        The backend credentials are updated on every call so a refreshed
        token is used by the next upload.
        """
        context = self._contexts.get(user_id)
        if context is None:
            context = UploadContext(
                user_id=user_id,
                classification_service=ClassificationService(self.http, access_token, refresh_token),
                stream_service=UploadStreamService(self.http, access_token, refresh_token),
                profile_service=self.profile_service,
                settings=self.settings
            )
            self._contexts[user_id] = context
            self.logger.info(f"Upload session started for user {user_id}")
        else:
            for service in (context.classification_service, context.stream_service):
                service.access_token = access_token
                service.refresh_token = refresh_token
        return context

    def get(self, user_id: str) -> Optional[UploadContext]:
        return self._contexts.get(user_id)

    def end(self, user_id: str) -> bool:
        """End a user's session and cancel its pending timers."""
        context = self._contexts.pop(user_id, None)
        if context is None:
            return False
        context.close()
        self.logger.info(f"Upload session ended for user {user_id}")
        return True

    def stats(self) -> Dict[str, int]:
        contexts = list(self._contexts.values())
        return {
            "active_sessions": len(contexts),
            "uploading": sum(1 for context in contexts if context.is_uploading),
            "queued_items": sum(len(context.queue) for context in contexts),
        }

    def __len__(self) -> int:
        return len(self._contexts)

    async def aclose(self) -> None:
        for user_id in list(self._contexts):
            self.end(user_id)
        await self.http.aclose()
