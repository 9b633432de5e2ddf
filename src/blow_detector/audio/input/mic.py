"""Microphone access via sounddevice."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

import numpy as np
import sounddevice as sd

from ...core.events import PermissionDenied
from .types import AudioFormat, PcmListener

logger = logging.getLogger(__name__)


def list_input_devices() -> list[tuple[int, str]]:
    """Return [(device_index, name), ...] for every device that can record."""
    devices = []
    for idx, dev in enumerate(sd.query_devices()):
        if dev["max_input_channels"] > 0:
            devices.append((idx, dev["name"]))
    return devices


class MicStream:
    """
    Running microphone capture that fans mono PCM blocks out to listeners.

    Listeners are called on the PortAudio callback thread and must stay cheap.
    """

    def __init__(self, audio_format: AudioFormat, device: Optional[int] = None):
        self._audio_format = audio_format
        self._device = device
        self._listeners: list[PcmListener] = []
        self._lock = threading.Lock()
        self._stream: Optional[sd.InputStream] = None
        self._closed = False

    @property
    def sample_rate(self) -> int:
        return self._audio_format.sample_rate

    @property
    def active(self) -> bool:
        stream = self._stream
        return stream is not None and not self._closed and bool(stream.active)

    def open(self) -> None:
        """Open and start the underlying input stream."""
        # Convert dtype string to numpy dtype
        dtype_map = {
            "float32": np.float32,
            "int16": np.int16,
            "int32": np.int32,
        }
        dtype = dtype_map.get(self._audio_format.dtype, np.float32)

        self._stream = sd.InputStream(
            callback=self._audio_callback,
            samplerate=self._audio_format.sample_rate,
            channels=self._audio_format.channels,
            dtype=dtype,
            device=self._device,
        )
        self._stream.start()

    def _audio_callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning(f"Audio callback status: {status}")

        # indata shape is (frames, channels), we take first channel
        if indata.ndim == 2 and indata.shape[1] > 0:
            pcm = indata[:, 0].astype(np.float32)
        else:
            pcm = indata.reshape(-1).astype(np.float32)

        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(pcm)

    def add_listener(self, listener: PcmListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: PcmListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def close(self) -> None:
        """Stop capturing and release the device. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._listeners.clear()
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.abort()
            stream.close()
        except sd.PortAudioError as e:
            logger.warning(f"Error while closing microphone stream: {e}")
        logger.info("Microphone capture stopped")


class SoundDeviceProvider:
    """AudioDeviceProvider that opens a sounddevice input stream off the event loop."""

    def __init__(self, audio_format: AudioFormat = AudioFormat(), device: Optional[int] = None):
        self._audio_format = audio_format
        self._device = device

    async def request_access(self) -> MicStream:
        return await asyncio.to_thread(self._open)

    def _open(self) -> MicStream:
        try:
            sd.query_devices(self._device, kind="input")
        except (ValueError, sd.PortAudioError) as e:
            raise PermissionDenied(f"No usable input device: {e}") from e

        stream = MicStream(self._audio_format, self._device)
        try:
            stream.open()
        except sd.PortAudioError as e:
            stream.close()
            raise PermissionDenied(f"Microphone access refused: {e}") from e

        logger.info(
            "Microphone capture started (device=%s, sample_rate=%d)",
            self._device if self._device is not None else "default",
            self._audio_format.sample_rate,
        )
        return stream
