"""
Streaming upload client for Lishka Upload Service.

The backend answers each upload with a chunked body of JSON status objects,
one per line, optionally framed as server-sent events.
"""

import json
from typing import AsyncIterator, List
import httpx
from services.base import BackendService
from core.exceptions import (
    NetworkException,
    PayloadTooLargeException,
    UploadStreamException,
    UploadTimeoutException
)
from models.upload_model import UploadedImage, UploadPhotoStreamData, UploadTarget

STREAM_PATHS = {
    UploadTarget.FISH: ("user/gallery-photos/stream", "user/gallery-photos/batch-stream"),
    UploadTarget.GEAR: ("user/gear-items/stream", "user/gear-items/batch-stream"),
    UploadTarget.UNIVERSAL: ("user/universal-upload/stream", "user/universal-upload/stream"),
}

DONE_SENTINEL = "[DONE]"

LANE_FAILURE_MSG = {
    UploadTarget.FISH: "Failed to upload photo",
    UploadTarget.GEAR: "Failed to upload gear item",
    UploadTarget.UNIVERSAL: "Failed to upload photo",
}


def resolve_stream_path(target: UploadTarget, file_count: int) -> str:
    """Pick the single or batch endpoint for a lane."""
    single, batch = STREAM_PATHS[target]
    return batch if file_count > 1 else single


def parse_chunk(line: str) -> UploadPhotoStreamData:
    """
    Parse and validate one stream chunk.

    Raises:
        ValueError: If the chunk is not JSON or does not have the expected shape
    """
    return UploadPhotoStreamData.model_validate(json.loads(line))


class UploadStreamService(BackendService):
    """Starts streaming uploads and yields the raw status chunks."""

    async def stream(self, target: UploadTarget, images: List[UploadedImage]) -> AsyncIterator[str]:
        """
        POST the images to the lane's endpoint and yield each status chunk.

        Args:
            target: Upload lane
            images: Images to upload

        Yields:
            Chunk payloads with SSE framing removed

        Raises:
            PayloadTooLargeException: Backend rejected the body size
            UploadTimeoutException: Backend did not answer in time
            NetworkException: Backend could not be reached or dropped the stream
            UploadStreamException: Any other non-success answer
        """
        path = resolve_stream_path(target, len(images))
        self.logger.info(f"[STREAM] Starting {target.value} upload of {len(images)} file(s) to {path}")

        try:
            async with self.http.stream(
                "POST",
                path,
                files=self.build_files(images),
                headers=self.build_headers(),
                timeout=self.settings.stream_timeout,
            ) as response:
                if response.status_code == httpx.codes.REQUEST_ENTITY_TOO_LARGE:
                    raise PayloadTooLargeException(path=path)
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    self.logger.error(f"[STREAM] {path} answered {response.status_code}: {body[:200]}")
                    raise UploadStreamException(LANE_FAILURE_MSG[target], path=path, status_code=response.status_code)

                async for line in response.aiter_lines():
                    payload = self._unframe(line)
                    if payload is None:
                        continue
                    yield payload

        except httpx.TimeoutException as e:
            self.logger.error(f"[STREAM] Upload to {path} timed out: {e}")
            raise UploadTimeoutException(path=path) from e
        except httpx.TransportError as e:
            self.logger.error(f"[STREAM] Upload to {path} failed: {e}")
            raise NetworkException(path=path) from e

        self.logger.info(f"[STREAM] {target.value} upload stream finished")

    @staticmethod
    def _unframe(line: str):
        line = line.strip()
        if not line or line.startswith(":"):
            return None
        if line.startswith("data:"):
            line = line[len("data:"):].strip()
        elif line.startswith(("event:", "id:", "retry:")):
            return None
        if not line or line == DONE_SENTINEL:
            return None
        return line
