"""Audio input subsystem - device stream protocols and byte-spectrum analyser.

The sounddevice-backed microphone lives in :mod:`blow_detector.audio.input.mic`
and is imported on demand, since it needs the PortAudio library.
"""

from __future__ import annotations

from .types import AudioFormat, AnalyserConfig, AudioDeviceProvider, DeviceStream, SpectrumSource
from .analyser import SpectrumAnalyser

__all__ = [
    "AudioFormat",
    "AnalyserConfig",
    "AudioDeviceProvider",
    "DeviceStream",
    "SpectrumSource",
    "SpectrumAnalyser",
]
