"""Core module."""

from .clock import AsyncioFrameScheduler, FrameHandle, FrameScheduler
from .detector import BlowDetector
from .events import BlowDiagnostics, PermissionDenied, SessionState, StreamInterrupted
from .session import CaptureSession

__all__ = [
    "AsyncioFrameScheduler",
    "BlowDetector",
    "BlowDiagnostics",
    "CaptureSession",
    "FrameHandle",
    "FrameScheduler",
    "PermissionDenied",
    "SessionState",
    "StreamInterrupted",
]
