"""Audio input subsystem data types and collaborator protocols."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

import numpy as np

PcmListener = Callable[[np.ndarray], None]


@dataclass(frozen=True)
class AudioFormat:
    """Audio format specification."""
    sample_rate: int = 44100
    channels: int = 1
    dtype: str = "float32"  # sounddevice dtype name


@dataclass(frozen=True)
class AnalyserConfig:
    """Spectrum analyser configuration (Web Audio AnalyserNode defaults except smoothing)."""
    fft_size: int = 512                   # 256 frequency bins
    smoothing_time_constant: float = 0.8
    min_decibels: float = -100.0
    max_decibels: float = -30.0


@runtime_checkable
class DeviceStream(Protocol):
    """A running capture stream delivering mono PCM blocks."""

    @property
    def sample_rate(self) -> int: ...

    @property
    def active(self) -> bool: ...

    def add_listener(self, listener: PcmListener) -> None: ...

    def remove_listener(self, listener: PcmListener) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class AudioDeviceProvider(Protocol):
    """Grants access to a capture device; may wait on the user or platform."""

    async def request_access(self) -> DeviceStream:
        """Return a started stream or raise PermissionDenied."""
        ...


@runtime_checkable
class SpectrumSource(Protocol):
    """Pull interface over a frequency analyser fed by a DeviceStream."""

    @property
    def frequency_bin_count(self) -> int: ...

    def connect(self, stream: DeviceStream) -> None: ...

    def disconnect(self) -> None: ...

    def get_byte_frequency_data(self) -> np.ndarray: ...
