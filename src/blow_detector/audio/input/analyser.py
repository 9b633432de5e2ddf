"""Byte magnitude spectrum with Web Audio AnalyserNode semantics."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import numpy as np

from ...core.events import StreamInterrupted
from .types import AnalyserConfig, DeviceStream

logger = logging.getLogger(__name__)

MIN_FFT_SIZE = 32
MAX_FFT_SIZE = 32768


class SpectrumAnalyser:
    """
    Keeps the latest ``fft_size`` samples of a stream and turns them into a spectrum on demand.

    Each call to :meth:`get_byte_frequency_data` windows the buffer (Blackman),
    takes the FFT magnitude, blends it with the previous call's magnitude by
    ``smoothing_time_constant``, converts to decibels and maps
    ``[min_decibels, max_decibels]`` linearly onto 0..255.
    """

    def __init__(self, cfg: AnalyserConfig = AnalyserConfig()):
        fft_size = cfg.fft_size
        if fft_size < MIN_FFT_SIZE or fft_size > MAX_FFT_SIZE or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two in [{MIN_FFT_SIZE}, {MAX_FFT_SIZE}], got {fft_size}")
        if not 0.0 <= cfg.smoothing_time_constant <= 1.0:
            raise ValueError(f"smoothing_time_constant must be in [0, 1], got {cfg.smoothing_time_constant}")
        if cfg.min_decibels >= cfg.max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

        self._cfg = cfg
        self._lock = threading.Lock()
        self._buffer = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)
        self._stream: Optional[DeviceStream] = None

        n = np.arange(fft_size)
        self._window = (
            0.42
            - 0.5 * np.cos(2 * np.pi * n / fft_size)
            + 0.08 * np.cos(4 * np.pi * n / fft_size)
        )

    @property
    def fft_size(self) -> int:
        return self._cfg.fft_size

    @property
    def smoothing_time_constant(self) -> float:
        return self._cfg.smoothing_time_constant

    @property
    def frequency_bin_count(self) -> int:
        return self._cfg.fft_size // 2

    def connect(self, stream: DeviceStream) -> None:
        """Start receiving PCM from ``stream``, replacing any previous stream."""
        if self._stream is stream:
            return
        self.disconnect()
        self._stream = stream
        stream.add_listener(self._push)
        logger.debug("Analyser connected (fft_size=%d, bins=%d)", self._cfg.fft_size, self.frequency_bin_count)

    def disconnect(self) -> None:
        """Stop receiving PCM. Safe to call when not connected."""
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.remove_listener(self._push)
            logger.debug("Analyser disconnected")

    def _push(self, pcm: np.ndarray) -> None:
        size = self._buffer.size
        with self._lock:
            if pcm.size >= size:
                self._buffer = pcm[-size:].astype(np.float32)
            else:
                self._buffer = np.concatenate([self._buffer[pcm.size:], pcm.astype(np.float32)])

    def get_byte_frequency_data(self) -> np.ndarray:
        """
        Return the current spectrum as ``frequency_bin_count`` uint8 values.

        Raises:
            StreamInterrupted: if the connected stream is no longer running.
        """
        stream = self._stream
        if stream is not None and not stream.active:
            raise StreamInterrupted("Audio stream is no longer active")

        with self._lock:
            samples = self._buffer.copy()

        fft_size = self._cfg.fft_size
        spectrum = np.fft.rfft(samples * self._window)[: fft_size // 2]
        magnitude = np.abs(spectrum) / fft_size

        tau = self._cfg.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * magnitude

        min_db = self._cfg.min_decibels
        scale = 255.0 / (self._cfg.max_decibels - min_db)
        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed)
        scaled = np.floor((db - min_db) * scale)
        return np.clip(scaled, 0, 255).astype(np.uint8)
