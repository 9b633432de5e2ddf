"""Frame builders and in-memory fakes shared by the test modules."""

import asyncio
from collections import deque
from typing import Callable, Optional

import numpy as np

from blow_detector.core.events import PermissionDenied

N_BINS = 256


def silent_frame(n_bins: int = N_BINS) -> np.ndarray:
    """All-zero byte spectrum."""
    return np.zeros(n_bins, dtype=np.uint8)


def blow_frame(n_bins: int = N_BINS, level: int = 200) -> np.ndarray:
    """Flat loud spectrum: bass-strong, broadband, no peaks."""
    return np.full(n_bins, level, dtype=np.uint8)


class FakeStream:
    """In-memory DeviceStream."""

    def __init__(self, sample_rate: int = 44100):
        self.sample_rate = sample_rate
        self.active = True
        self.closed = False
        self.close_calls = 0
        self.listeners: list = []

    def add_listener(self, listener) -> None:
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def emit(self, pcm: np.ndarray) -> None:
        for listener in list(self.listeners):
            listener(pcm)

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self.active = False


class FakeProvider:
    """AudioDeviceProvider whose requests are resolved by the test."""

    def __init__(self):
        self.requests: list[asyncio.Future] = []

    async def request_access(self):
        future = asyncio.get_running_loop().create_future()
        self.requests.append(future)
        return await future

    async def wait_for_request(self, count: int = 1) -> None:
        while len(self.requests) < count:
            await asyncio.sleep(0)

    def grant(self, stream: Optional[FakeStream] = None, index: int = -1) -> FakeStream:
        stream = stream or FakeStream()
        self.requests[index].set_result(stream)
        return stream

    def deny(self, exc: Optional[BaseException] = None, index: int = -1) -> None:
        self.requests[index].set_exception(exc or PermissionDenied("user refused"))


class FakeSource:
    """SpectrumSource replaying queued frames, silence once they run out."""

    def __init__(self, n_bins: int = N_BINS):
        self.frequency_bin_count = n_bins
        self.frames: deque = deque()
        self.stream = None
        self.error: Optional[BaseException] = None
        self.disconnect_calls = 0

    def connect(self, stream) -> None:
        self.stream = stream

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.stream = None

    def get_byte_frequency_data(self) -> np.ndarray:
        if self.error is not None:
            raise self.error
        if self.frames:
            return self.frames.popleft()
        return silent_frame(self.frequency_bin_count)


class FakeSourceFactory:
    def __init__(self):
        self.created: list[FakeSource] = []

    def __call__(self) -> FakeSource:
        source = FakeSource()
        self.created.append(source)
        return source

    @property
    def last(self) -> FakeSource:
        return self.created[-1]


class ManualHandle:
    def __init__(self, callback: Callable[[float], None]):
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """FrameScheduler driven by explicit tick() calls."""

    def __init__(self):
        self.pending: list[ManualHandle] = []
        self.request_count = 0

    def request_frame(self, callback) -> ManualHandle:
        handle = ManualHandle(callback)
        self.pending.append(handle)
        self.request_count += 1
        return handle

    @property
    def active_requests(self) -> int:
        return sum(1 for h in self.pending if not h.cancelled)

    def tick(self, timestamp_ms: float) -> int:
        due, self.pending = self.pending, []
        fired = 0
        for handle in due:
            if not handle.cancelled:
                fired += 1
                handle.callback(timestamp_ms)
        return fired
