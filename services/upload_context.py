"""
Per-session upload orchestration for Lishka Upload Service.

An ``UploadContext`` belongs to one authenticated user session. It decides
whether files need classifying, routes them to the fish, gear or universal
streaming lane, keeps the pending-upload queue and exposes progress and
error state to the API.
"""

import asyncio
from typing import List, Optional
from core.config import Settings, get_settings
from core.exceptions import LishkaException, UploadServiceException, UploadStreamException
from core.logging import LoggerMixin
from models.profile_model import Profile
from models.upload_model import (
    LaneState,
    UploadError,
    UploadErrorType,
    UploadedImage,
    UploadPhotoStreamData,
    UploadQueueItem,
    UploadQueueItemResponse,
    UploadStateResponse,
    UploadStepStatus,
    UploadTarget
)
from services.classification_service import ClassificationService
from services.profile_service import ProfileService
from services.upload_lane import TimerScheduler, UploadLane
from services.upload_queue import UploadQueue, now_ms
from services.upload_stream_service import LANE_FAILURE_MSG, UploadStreamService, parse_chunk
from utils.upload_utils import identified_gear_message, validate_images

FISH_UPLOADED_MSG = "Fish Photo Uploaded and Saved to Gallery"
GEAR_UPLOADED_MSG = "Gear item uploaded and saved to gallery"
MAX_RETRIES_MSG = "Maximum retry attempts exceeded"
INVALID_RESPONSE_MSG = "Invalid server response"


class UploadContext(LoggerMixin):
    """Upload state and operations for one user session."""

    def __init__(
        self,
        user_id: str,
        classification_service: ClassificationService,
        stream_service: UploadStreamService,
        profile_service: Optional[ProfileService] = None,
        settings: Optional[Settings] = None
    ):
        self.user_id = user_id
        self.classification_service = classification_service
        self.stream_service = stream_service
        self.profile_service = profile_service
        self.settings = settings or get_settings()

        self.queue = UploadQueue(self.settings.upload_queue_size)
        self.lanes = {target: UploadLane(target) for target in UploadTarget}
        self.timers = TimerScheduler()

        self.upload_error: Optional[UploadError] = None
        # Lane whose stream recorded the current error; None for batch-level errors
        self.error_lane: Optional[UploadTarget] = None
        self.identify_gear_message: Optional[str] = None
        self.show_uploaded_info_msg = False
        self.uploaded_info_msg: Optional[str] = None
        self.classifying_image = False
        self.is_upload_locked = False
        self.profile: Optional[Profile] = None

    # Error state

    def set_error(
        self,
        message: str,
        error_type: UploadErrorType,
        retryable: bool = True,
        lane: Optional[UploadTarget] = None
    ) -> None:
        self.error_lane = lane
        self.upload_error = UploadError(
            message=message,
            type=error_type,
            timestamp=now_ms(),
            retryable=retryable
        )

    def clear_error(self) -> None:
        self.upload_error = None
        self.error_lane = None

    # Public operations

    async def handle_photo_upload(self, files: List[UploadedImage]) -> None:
        """
        Upload one or more images.

        A single image goes straight to the universal lane and any failure is
        re-raised for inline display. Several images are classified first and
        split between the gear and fish lanes; their failures only end up in
        the error state.

        Args:
            files: Images selected by the user

        Raises:
            ValidationException: If the selection is empty or contains a bad file
            UploadServiceException: If a single-image upload fails
        """
        if self.is_upload_locked or self.classifying_image:
            self.logger.warning("[UPLOAD] Upload already in progress, ignoring new upload")
            return

        validate_images(files, self.settings)

        self.logger.info(
            f"[UPLOAD] Uploading {len(files)} file(s) for user {self.user_id}: "
            f"{', '.join(f.filename for f in files)}"
        )

        self.is_upload_locked = True
        self.clear_error()
        try:
            if len(files) == 1:
                item = self.queue.enqueue(files, UploadTarget.UNIVERSAL)
                await self._run_item(item)
                return

            await self._upload_batch(files)
        finally:
            self.classifying_image = False
            self.is_upload_locked = False

    async def retry_upload(self, item_id: str) -> None:
        """
        Retry a queued upload after the retry delay.

        Gives up with a terminal error once the item has been retried
        ``max_retry_attempts`` times. Never raises.

        Args:
            item_id: ID of the queue item
        """
        item = self.queue.get(item_id)
        if item is None:
            self.logger.warning(f"[UPLOAD] Queue item not found for retry: {item_id}")
            return

        if item.retry_count >= self.settings.max_retry_attempts:
            self.logger.warning(f"[UPLOAD] Giving up on {item_id} after {item.retry_count} retries")
            self.set_error(MAX_RETRIES_MSG, UploadErrorType.UPLOAD, retryable=False)
            self.queue.remove(item_id)
            return

        self.queue.increment_retry(item_id)
        self.logger.info(f"[UPLOAD] Retrying {item_id} (attempt {item.retry_count})")

        await asyncio.sleep(self.settings.upload_retry_delay)

        if item_id not in self.queue:
            self.logger.info(f"[UPLOAD] {item_id} was cancelled before its retry started")
            return
        if self.is_upload_locked:
            self.logger.warning(f"[UPLOAD] Upload already in progress, skipping retry of {item_id}")
            return

        self.is_upload_locked = True
        self.clear_error()
        try:
            await self._run_item(item)
        except LishkaException as e:
            self.logger.error(f"[UPLOAD] Retry failed: {e.message}")
        finally:
            self.is_upload_locked = False

    def cancel_upload(self, item_id: str) -> bool:
        """Remove a queued upload. A stream that already started keeps running."""
        removed = self.queue.remove(item_id)
        self.logger.info(f"[UPLOAD] Upload cancelled: {item_id}" if removed else f"[UPLOAD] Nothing to cancel for {item_id}")
        return removed

    def clear_queue(self) -> None:
        self.queue.clear()

    def close_uploaded_info_msg(self) -> None:
        self.timers.cancel("message")
        self.timers.cancel("auto_hide")
        self.show_uploaded_info_msg = False
        self.uploaded_info_msg = None

    @property
    def is_uploading(self) -> bool:
        return self.is_upload_locked or any(lane.is_streaming for lane in self.lanes.values())

    def snapshot(self) -> UploadStateResponse:
        return UploadStateResponse(
            photo=self.lanes[UploadTarget.FISH].snapshot(),
            gear=self.lanes[UploadTarget.GEAR].snapshot(),
            universal=self.lanes[UploadTarget.UNIVERSAL].snapshot(),
            identify_gear_message=self.identify_gear_message,
            show_uploaded_info_msg=self.show_uploaded_info_msg,
            uploaded_info_msg=self.uploaded_info_msg,
            classifying_image=self.classifying_image,
            is_uploading=self.is_uploading,
            upload_error=self.upload_error,
            upload_queue=[
                UploadQueueItemResponse(
                    id=item.id,
                    filenames=[f.filename for f in item.files],
                    type=item.type,
                    retry_count=item.retry_count,
                    timestamp=item.timestamp
                )
                for item in self.queue.items
            ],
            queue_size=len(self.queue),
            gallery_photo_count=len(self.profile.gallery_photos) if self.profile else None,
            gear_item_count=len(self.profile.gear_items) if self.profile else None,
        )

    def close(self) -> None:
        """Cancel pending timers when the session ends."""
        self.timers.cancel_all()

    # Orchestration

    async def _upload_batch(self, files: List[UploadedImage]) -> None:
        self.classifying_image = True
        try:
            assignments, failures = await self.classification_service.classify_batch(files)
        finally:
            self.classifying_image = False

        if failures:
            self.set_error("Failed to classify image", UploadErrorType.CLASSIFICATION, retryable=True)

        gear = [image for image, target in assignments if target == UploadTarget.GEAR]
        fish = [image for image, target in assignments if target == UploadTarget.FISH]
        self.logger.info(f"[UPLOAD] Classified batch: {len(gear)} gear, {len(fish)} fish")

        items = [
            self.queue.enqueue(subset, target)
            for target, subset in ((UploadTarget.GEAR, gear), (UploadTarget.FISH, fish))
            if subset
        ]
        results = await asyncio.gather(*(self._run_item(item) for item in items), return_exceptions=True)
        for item, result in zip(items, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                self.logger.error(f"[UPLOAD] {item.type.value} upload {item.id} failed: {result}")

    async def _run_item(self, item: UploadQueueItem) -> None:
        """Stream a queue item; it stays queued when the stream fails."""
        await self._stream_lane(item.type, item.files)
        self.queue.remove(item.id)

    async def _stream_lane(self, target: UploadTarget, files: List[UploadedImage]) -> None:
        lane = self.lanes[target]
        self.timers.cancel(f"{target.value}.cleanup")
        lane.start()
        last: Optional[UploadPhotoStreamData] = None

        try:
            async for chunk in self.stream_service.stream(target, files):
                self.logger.debug(f"[STREAM] Received chunk: {chunk}")
                try:
                    data = parse_chunk(chunk)
                except ValueError as e:
                    self.logger.warning(f"[UPLOAD] Invalid upload data structure: {e}")
                    self.set_error(INVALID_RESPONSE_MSG, UploadErrorType.UPLOAD, retryable=False, lane=target)
                    continue
                self._apply_chunk(lane, data)
                last = data
        except UploadServiceException as e:
            self.logger.error(f"[STREAM] Error uploading {target.value}: {e.message}")
            lane.fail()
            self.set_error(e.message, e.error_type, e.retryable, lane=target)
            raise
        except Exception as e:
            self.logger.error(f"[STREAM] Error uploading {target.value}: {e}", exc_info=True)
            lane.fail()
            self.set_error(LANE_FAILURE_MSG[target], UploadErrorType.UPLOAD, retryable=True, lane=target)
            raise UploadStreamException(LANE_FAILURE_MSG[target]) from e

        if last is not None and last.data.has_failed_step:
            message = last.data.errors[0] if last.data.errors else LANE_FAILURE_MSG[target]
            self.logger.error(f"[STREAM] Server reported a failed step for {target.value}: {message}")
            lane.fail()
            self.set_error(message, UploadErrorType.UPLOAD, retryable=True, lane=target)
            raise UploadStreamException(message)

        await self._complete_lane(lane)

    def _apply_chunk(self, lane: UploadLane, data: UploadPhotoStreamData) -> None:
        if lane.target != UploadTarget.FISH and self._is_gear_identification(data):
            self.identify_gear_message = data.data.message
        lane.apply(data)
        # Errors recorded by another lane stay visible until that lane moves on
        if self.error_lane in (None, lane.target):
            self.clear_error()

    @staticmethod
    def _is_gear_identification(data: UploadPhotoStreamData) -> bool:
        status = data.data
        if identified_gear_message(status.message) is None:
            return False
        if status.analyzing == UploadStepStatus.COMPLETED and status.uploading == UploadStepStatus.PROCESSING:
            return True
        return status.classification_result is not None and status.classification_result.type == "gear"

    async def _complete_lane(self, lane: UploadLane) -> None:
        lane.complete()
        self.logger.info(f"[STREAM] {lane.target.value} upload saved for user {self.user_id}")
        await self._refresh_profile()

        if lane.target == UploadTarget.GEAR:
            banner = self.identify_gear_message or GEAR_UPLOADED_MSG
        elif lane.target == UploadTarget.UNIVERSAL:
            banner = self.identify_gear_message or FISH_UPLOADED_MSG
        else:
            banner = FISH_UPLOADED_MSG

        self.timers.schedule(
            f"{lane.target.value}.cleanup",
            self.settings.upload_cleanup_delay,
            lambda: self._cleanup_lane(lane)
        )
        self.timers.cancel("auto_hide")
        self.timers.schedule(
            "message",
            self.settings.upload_message_delay,
            lambda: self._show_banner(banner)
        )

    async def _refresh_profile(self) -> None:
        if self.profile_service is None:
            return
        try:
            self.profile = await asyncio.to_thread(self.profile_service.refresh_profile, self.user_id)
        except Exception as e:
            self.logger.warning(f"[UPLOAD] Profile refresh failed for {self.user_id}: {e}")

    def _cleanup_lane(self, lane: UploadLane) -> None:
        if lane.state == LaneState.COMPLETED:
            lane.reset()
        if lane.target != UploadTarget.FISH:
            self.identify_gear_message = None

    def _show_banner(self, message: str) -> None:
        self.show_uploaded_info_msg = True
        self.uploaded_info_msg = message
        self.timers.schedule("auto_hide", self.settings.upload_auto_hide_delay, self._hide_banner)

    def _hide_banner(self) -> None:
        self.show_uploaded_info_msg = False
        self.uploaded_info_msg = None
