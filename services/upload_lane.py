"""
Per-lane upload state machine and the delayed transitions that drive it.

A lane moves ``idle -> streaming -> completed | failed``. A completed lane
returns to ``idle`` through a delayed cleanup transition scheduled on a
``TimerScheduler``.
"""

import asyncio
from typing import Callable, Dict, Optional
from core.logging import LoggerMixin
from models.upload_model import LaneSnapshot, LaneState, UploadPhotoStreamData, UploadTarget


class TimerScheduler(LoggerMixin):
    """Named one-shot timers on the running event loop."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, name: str, delay: float, callback: Callable[[], None]) -> None:
        """Run ``callback`` after ``delay`` seconds, replacing a pending timer of the same name."""
        self.cancel(name)

        async def fire():
            await asyncio.sleep(delay)
            self._tasks.pop(name, None)
            try:
                callback()
            except Exception:
                self.logger.exception(f"Timer {name} failed")

        self._tasks[name] = asyncio.get_running_loop().create_task(fire(), name=f"upload-timer:{name}")

    def cancel(self, name: str) -> None:
        task = self._tasks.pop(name, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for name in list(self._tasks):
            self.cancel(name)

    def is_pending(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def drain(self) -> None:
        """Wait until no timer is pending, including timers scheduled by timers."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
            self._tasks = {name: task for name, task in self._tasks.items() if not task.done()}


class UploadLane(LoggerMixin):
    """One streaming upload lane (fish photos, gear items or universal)."""

    def __init__(self, target: UploadTarget):
        self.target = target
        self.state = LaneState.IDLE
        self.data: Optional[UploadPhotoStreamData] = None

    def start(self) -> None:
        self.logger.debug(f"[STREAM] {self.target.value} lane: {self.state.value} -> streaming")
        self.state = LaneState.STREAMING
        self.data = None

    def apply(self, data: UploadPhotoStreamData) -> None:
        # Chunks arrive in server order; the latest one wins
        self.data = data

    def complete(self) -> None:
        self.logger.debug(f"[STREAM] {self.target.value} lane: {self.state.value} -> completed")
        self.state = LaneState.COMPLETED

    def fail(self) -> None:
        self.logger.debug(f"[STREAM] {self.target.value} lane: {self.state.value} -> failed")
        self.state = LaneState.FAILED

    def reset(self) -> None:
        self.state = LaneState.IDLE
        self.data = None

    @property
    def is_streaming(self) -> bool:
        return self.state == LaneState.STREAMING

    def snapshot(self) -> LaneSnapshot:
        return LaneSnapshot(state=self.state, data=self.data)
