"""
Upload orchestration API routes for Lishka Upload Service.
"""

from typing import List
from fastapi import APIRouter, UploadFile, File, HTTPException, status, Depends
from models.upload_model import ErrorResponse, UploadedImage, UploadStateResponse
from services.upload_context import UploadContext
from services.upload_sessions import UploadSessionManager
from core.logging import get_logger
from core.dependencies import get_current_user_id, get_session_manager, get_upload_context
from core.exceptions import LishkaException, ResourceNotFoundException

logger = get_logger(__name__)
router = APIRouter(prefix="/uploads", tags=["uploads"])


def _http_error(e: LishkaException) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={"error": e.error_code, "message": e.message, "details": e.details}
    )


@router.post(
    "",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=UploadStateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No files or an invalid file"},
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing token"},
        413: {"model": ErrorResponse, "description": "Upload too large"},
        502: {"model": ErrorResponse, "description": "Upload or classification service error"},
        504: {"model": ErrorResponse, "description": "Upload timed out"}
    },
    summary="Upload Photos",
    description="Upload one or more photos. Several photos are classified and split between the gallery and gear lanes."
)
async def upload_photos(
    files: List[UploadFile] = File(..., description="Photos of fish or fishing gear"),
    context: UploadContext = Depends(get_upload_context)
):
    """
    Upload photos for the current user.

    - **files**: one file goes straight to the universal upload; several are
      classified as fish or gear first

    Returns the upload state once the streams have finished. While another
    upload is running the request is ignored and the unchanged state is returned.
    """
    images = [
        UploadedImage(filename=f.filename or "upload", content=await f.read(), content_type=f.content_type)
        for f in files
    ]
    logger.info(f"Upload request from {context.user_id}: {len(images)} file(s)")

    try:
        await context.handle_photo_upload(images)
    except LishkaException as e:
        logger.error(f"Upload error: {e.message}")
        raise _http_error(e)

    return context.snapshot()


@router.get(
    "/state",
    response_model=UploadStateResponse,
    summary="Upload State",
    description="Current lanes, banner, error and queue of the caller's upload session."
)
async def get_upload_state(context: UploadContext = Depends(get_upload_context)):
    return context.snapshot()


@router.post(
    "/{item_id}/retry",
    response_model=UploadStateResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid or missing token"},
        404: {"model": ErrorResponse, "description": "Queue item not found"}
    },
    summary="Retry Upload",
    description="Retry a queued upload after the retry delay. Gives up after the maximum number of attempts."
)
async def retry_upload(item_id: str, context: UploadContext = Depends(get_upload_context)):
    if item_id not in context.queue:
        raise _http_error(ResourceNotFoundException("Upload", item_id))

    await context.retry_upload(item_id)
    return context.snapshot()


@router.delete(
    "/queue",
    response_model=UploadStateResponse,
    summary="Clear Upload Queue"
)
async def clear_queue(context: UploadContext = Depends(get_upload_context)):
    context.clear_queue()
    return context.snapshot()


@router.delete(
    "/error",
    response_model=UploadStateResponse,
    summary="Dismiss Upload Error"
)
async def clear_error(context: UploadContext = Depends(get_upload_context)):
    context.clear_error()
    return context.snapshot()


@router.delete(
    "/message",
    response_model=UploadStateResponse,
    summary="Dismiss Upload Banner"
)
async def close_uploaded_info_msg(context: UploadContext = Depends(get_upload_context)):
    context.close_uploaded_info_msg()
    return context.snapshot()


@router.delete(
    "/session",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="End Upload Session",
    description="Drop the caller's upload state and cancel its pending timers."
)
async def end_session(
    user_id: str = Depends(get_current_user_id),
    sessions: UploadSessionManager = Depends(get_session_manager)
):
    sessions.end(user_id)


@router.delete(
    "/{item_id}",
    response_model=UploadStateResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Queue item not found"}
    },
    summary="Cancel Upload",
    description="Remove a queued upload. Uploads that already started keep running."
)
async def cancel_upload(item_id: str, context: UploadContext = Depends(get_upload_context)):
    if not context.cancel_upload(item_id):
        raise _http_error(ResourceNotFoundException("Upload", item_id))
    return context.snapshot()
