"""Frame scheduling for the analysis tick loop."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional, Protocol

FrameCallback = Callable[[float], None]


class FrameHandle(Protocol):
    """Pending frame request returned by a FrameScheduler."""

    def cancel(self) -> None: ...


class FrameScheduler(Protocol):
    """
    One-shot "ready for the next frame" source, in the manner of a display clock.

    The callback receives the frame timestamp in milliseconds. Consumers that want
    a continuous loop request the next frame from inside the callback, so a slow
    frame delays the following one instead of overlapping it.
    """

    def request_frame(self, callback: FrameCallback) -> FrameHandle: ...


class AsyncioFrameScheduler:
    """FrameScheduler backed by ``loop.call_later`` at a nominal frame rate."""

    def __init__(
        self,
        frame_rate_hz: float = 60.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if frame_rate_hz <= 0:
            raise ValueError(f"frame_rate_hz must be positive, got {frame_rate_hz}")
        self._interval_s = 1.0 / frame_rate_hz
        self._loop = loop

    @property
    def interval_s(self) -> float:
        return self._interval_s

    def request_frame(self, callback: FrameCallback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(self._interval_s, self._fire, loop, callback)

    @staticmethod
    def _fire(loop: asyncio.AbstractEventLoop, callback: FrameCallback) -> None:
        callback(loop.time() * 1000.0)
