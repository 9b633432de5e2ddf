"""Blow detection from live microphone spectra."""

from .config.settings import BlowDetectorConfig, load_config
from .core.detector import BlowDetector
from .core.events import BlowDiagnostics, PermissionDenied, SessionState, StreamInterrupted

__all__ = [
    "BlowDetector",
    "BlowDetectorConfig",
    "BlowDiagnostics",
    "PermissionDenied",
    "SessionState",
    "StreamInterrupted",
    "load_config",
]
