"""One enabled period of blow detection: handles, carry state and the tick loop."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from ..audio.input.types import DeviceStream, SpectrumSource
from ..detection.classifier import Classification, classify
from ..detection.debounce import BLOW_COOLDOWN_MS, NEVER, gate
from ..detection.features import FeatureSet, extract_features
from .clock import FrameHandle, FrameScheduler
from .events import BlowDiagnostics

logger = logging.getLogger(__name__)

DiagnosticsSink = Callable[[BlowDiagnostics], None]


class CaptureSession:
    """
    Owns the device stream, the spectrum source and the pending frame request
    of one session, together with the state carried between ticks.

    Ticks run strictly one after another: the next frame is requested only
    after the current one has been processed.
    """

    def __init__(
        self,
        *,
        stream: DeviceStream,
        source: SpectrumSource,
        scheduler: FrameScheduler,
        on_blow: Callable[[], None],
        sensitivity: float,
        cooldown_ms: float = BLOW_COOLDOWN_MS,
        diagnostics: Optional[DiagnosticsSink] = None,
        on_terminated: Optional[Callable[["CaptureSession"], None]] = None,
    ):
        self._stream = stream
        self._source = source
        self._scheduler = scheduler
        self._on_blow = on_blow
        self._sensitivity = sensitivity
        self._cooldown_ms = cooldown_ms
        self._diagnostics = diagnostics
        self._on_terminated = on_terminated

        self.previous_volume = 0.0
        self.last_blow_ms = NEVER
        self.blow_count = 0

        self._frame_handle: Optional[FrameHandle] = None
        self._running = False
        self._closed = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sensitivity(self) -> float:
        return self._sensitivity

    def start(self) -> None:
        """Begin requesting frames."""
        if self._closed:
            raise RuntimeError("Cannot start a closed capture session")
        if self._running:
            return
        self._running = True
        self._frame_handle = self._scheduler.request_frame(self._on_frame)

    def _on_frame(self, timestamp_ms: float) -> None:
        self._frame_handle = None
        if not self._running:
            return

        try:
            frame = self._source.get_byte_frequency_data()
        except Exception as e:
            self._terminate(f"Audio stream failed, stopping blow detection: {e}")
            return

        try:
            self.process_frame(frame, timestamp_ms)
        except Exception as e:
            self._terminate(f"Spectrum analysis failed, stopping blow detection: {e}")
            return

        # on_blow may have closed the session
        if self._running:
            self._frame_handle = self._scheduler.request_frame(self._on_frame)

    def _terminate(self, message: str) -> None:
        logger.error(message, exc_info=True)
        self.close()
        if self._on_terminated:
            self._on_terminated(self)

    def process_frame(self, frame: np.ndarray, now_ms: float) -> bool:
        """Run extract -> classify -> gate on one frame. Returns True if a blow fired."""
        features = extract_features(frame)
        result = classify(features, self.previous_volume, self._sensitivity)
        self.previous_volume = features.avg_volume

        fire, self.last_blow_ms = gate(result.is_blowing, now_ms, self.last_blow_ms, self._cooldown_ms)
        if fire:
            self._emit(features, result, now_ms)
        return fire

    def _emit(self, features: FeatureSet, result: Classification, now_ms: float) -> None:
        self.blow_count += 1
        diagnostics = BlowDiagnostics(
            low_avg=features.low_avg,
            mid_avg=features.mid_avg,
            high_avg=features.high_avg,
            avg_volume=features.avg_volume,
            peak_count=features.peak_count,
            volume_change=result.volume_change,
            threshold=result.threshold,
            timestamp_ms=now_ms,
        )
        logger.info(
            "Blow detected: low=%.1f mid=%.1f high=%.1f volume=%.1f peaks=%d change=%.1f threshold=%.1f",
            diagnostics.low_avg,
            diagnostics.mid_avg,
            diagnostics.high_avg,
            diagnostics.avg_volume,
            diagnostics.peak_count,
            diagnostics.volume_change,
            diagnostics.threshold,
        )

        try:
            self._on_blow()
        except Exception as e:
            logger.error(f"Blow callback raised: {e}", exc_info=True)

        if self._diagnostics is not None:
            try:
                self._diagnostics(diagnostics)
            except Exception as e:
                logger.error(f"Diagnostics sink raised: {e}", exc_info=True)

    def close(self) -> None:
        """Cancel the pending frame, disconnect the analyser and release the stream. Idempotent."""
        self._running = False
        if self._closed:
            return
        self._closed = True

        handle, self._frame_handle = self._frame_handle, None
        if handle is not None:
            handle.cancel()
        self._source.disconnect()
        self._stream.close()
