"""
Request dependencies for FastAPI endpoints.
"""

from fastapi import Depends, Request, HTTPException, status
from core.logging import get_logger
from services.upload_context import UploadContext
from services.upload_sessions import UploadSessionManager

logger = get_logger(__name__)


async def get_current_user_id(request: Request) -> str:
    """
    Dependency to get the current authenticated user's ID.

    Raises:
        HTTPException: If user is not authenticated
    """
    user_id = getattr(request.state, "user_id", None)

    if not user_id:
        logger.error("User ID not found in request state")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    return user_id


def get_session_manager(request: Request) -> UploadSessionManager:
    """Dependency to get the application's upload session manager."""
    return request.app.state.upload_sessions


async def get_upload_context(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    sessions: UploadSessionManager = Depends(get_session_manager)
) -> UploadContext:
    """
    Dependency to get the caller's upload context.

    The context lives for the whole user session, not just this request.
    """
    return sessions.get_or_create(
        user_id,
        access_token=getattr(request.state, "access_token", None),
        refresh_token=getattr(request.state, "refresh_token", None)
    )
