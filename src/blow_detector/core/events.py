from dataclasses import dataclass
from enum import Enum, auto


class SessionState(Enum):
    """Lifecycle of the capture session owned by BlowDetector."""
    IDLE = auto()        # Never enabled
    REQUESTING = auto()  # Waiting for the microphone grant
    ACTIVE = auto()      # Stream wired, ticks running
    DENIED = auto()      # Access refused or setup failed
    STOPPED = auto()     # Disabled, closed, or the stream died


@dataclass(frozen=True)
class BlowDiagnostics:
    """Snapshot of the spectral features behind one emitted blow."""
    low_avg: float
    mid_avg: float
    high_avg: float
    avg_volume: float
    peak_count: int
    volume_change: float
    threshold: float
    timestamp_ms: float


class PermissionDenied(Exception):
    """Raised by an audio device provider when microphone access is refused."""


class StreamInterrupted(Exception):
    """Raised when a running device stream stops delivering audio."""
