"""
Bounded FIFO of pending upload batches.
"""

import random
import string
import time
from typing import List, Optional
from core.logging import get_logger
from models.upload_model import UploadedImage, UploadQueueItem, UploadTarget

logger = get_logger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def now_ms() -> int:
    return int(time.time() * 1000)


def make_queue_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{now_ms()}-{suffix}"


class UploadQueue:
    """Keeps at most ``capacity`` items; the oldest is dropped when full."""

    def __init__(self, capacity: int = 5):
        self.capacity = capacity
        self._items: List[UploadQueueItem] = []

    def enqueue(self, files: List[UploadedImage], target: UploadTarget) -> UploadQueueItem:
        item = UploadQueueItem(
            id=make_queue_id(),
            files=list(files),
            type=target,
            retry_count=0,
            timestamp=now_ms()
        )
        if len(self._items) >= self.capacity:
            dropped = self._items.pop(0)
            logger.warning(f"[UPLOAD] Queue is full, removing oldest item {dropped.id}")
        self._items.append(item)
        return item

    def get(self, item_id: str) -> Optional[UploadQueueItem]:
        return next((item for item in self._items if item.id == item_id), None)

    def remove(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        return len(self._items) != before

    def increment_retry(self, item_id: str) -> Optional[UploadQueueItem]:
        item = self.get(item_id)
        if item is not None:
            item.retry_count += 1
        return item

    def clear(self) -> None:
        self._items = []

    @property
    def items(self) -> List[UploadQueueItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: str) -> bool:
        return self.get(item_id) is not None
