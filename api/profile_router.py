"""
Profile read-back routes for Lishka Upload Service.
"""

from fastapi import APIRouter, HTTPException, Depends
from models.profile_model import Profile
from models.upload_model import ErrorResponse
from services.upload_sessions import UploadSessionManager
from core.logging import get_logger
from core.dependencies import get_current_user_id, get_session_manager
from core.exceptions import LishkaException

logger = get_logger(__name__)
router = APIRouter(prefix="/profile", tags=["profile"])


@router.get(
    "",
    response_model=Profile,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing token"},
        404: {"model": ErrorResponse, "description": "Profile not found"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    },
    summary="Get Gallery and Gear",
    description="Gallery photos and gear items saved on the caller's profile."
)
def get_profile(
    user_id: str = Depends(get_current_user_id),
    sessions: UploadSessionManager = Depends(get_session_manager)
):
    try:
        profile = sessions.profile_service.refresh_profile(user_id)
    except LishkaException as e:
        logger.error(f"Profile error: {e.message}")
        raise HTTPException(
            status_code=e.status_code,
            detail={"error": e.error_code, "message": e.message}
        )

    context = sessions.get(user_id)
    if context is not None:
        context.profile = profile

    return profile
