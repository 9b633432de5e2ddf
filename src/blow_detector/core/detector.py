"""Capture session manager: microphone lifecycle around the blow detection loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..audio.input.analyser import SpectrumAnalyser
from ..audio.input.types import AnalyserConfig, AudioDeviceProvider, AudioFormat, DeviceStream, SpectrumSource
from ..config.settings import BlowDetectorConfig
from ..detection.classifier import threshold_for
from ..detection.features import MIN_BINS
from .clock import AsyncioFrameScheduler, FrameScheduler
from .events import PermissionDenied, SessionState
from .session import CaptureSession, DiagnosticsSink

logger = logging.getLogger(__name__)

SpectrumSourceFactory = Callable[[], SpectrumSource]


class BlowDetector:
    """
    Turns microphone audio into ``on_blow()`` calls while enabled.

    Manages:
    - the asynchronous microphone request (AudioDeviceProvider)
    - the spectrum source wired to the granted stream
    - the CaptureSession that runs the per-frame tick loop

    All methods must be called from the event loop thread. ``enable()`` needs a
    running loop because the microphone request is awaited in a task. A grant
    that arrives after ``disable()`` is recognised by its generation number and
    its stream is closed straight away.
    """

    def __init__(
        self,
        on_blow: Callable[[], None],
        config: Optional[BlowDetectorConfig] = None,
        *,
        provider: Optional[AudioDeviceProvider] = None,
        source_factory: Optional[SpectrumSourceFactory] = None,
        scheduler: Optional[FrameScheduler] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
    ):
        self._config = config or BlowDetectorConfig()
        self._on_blow = on_blow
        self._provider = provider or self._default_provider()
        self._source_factory = source_factory or self._default_source
        self._scheduler = scheduler or AsyncioFrameScheduler(self._config.frame_rate_hz)
        self._diagnostics = diagnostics

        self._state = SessionState.IDLE
        self._has_permission: Optional[bool] = None
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self._session: Optional[CaptureSession] = None
        self._closed = False

    def _default_provider(self) -> AudioDeviceProvider:
        from ..audio.input.mic import SoundDeviceProvider
        return SoundDeviceProvider(
            AudioFormat(sample_rate=self._config.sample_rate),
            device=self._config.input_device,
        )

    def _default_source(self) -> SpectrumSource:
        return SpectrumAnalyser(AnalyserConfig(
            fft_size=self._config.fft_size,
            smoothing_time_constant=self._config.smoothing_time_constant,
            min_decibels=self._config.min_decibels,
            max_decibels=self._config.max_decibels,
        ))

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def has_permission(self) -> Optional[bool]:
        """None until a request completes, then whether access was granted."""
        return self._has_permission

    @property
    def enabled(self) -> bool:
        return self._state in (SessionState.REQUESTING, SessionState.ACTIVE)

    @property
    def sensitivity(self) -> float:
        return self._config.sensitivity

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    def set_enabled(self, enabled: bool) -> Optional[asyncio.Task]:
        """Enable or disable detection. Returns the pending request task when enabling."""
        if enabled:
            return self.enable()
        self.disable()
        return None

    def enable(self) -> Optional[asyncio.Task]:
        """Request the microphone and start detecting once it is granted."""
        if self._closed:
            raise RuntimeError("BlowDetector is closed")
        if self._state is SessionState.REQUESTING:
            return self._pending
        if self._state is SessionState.ACTIVE:
            return None

        self._generation += 1
        self._state = SessionState.REQUESTING
        logger.info("Requesting microphone access")
        self._pending = asyncio.get_running_loop().create_task(self._acquire(self._generation))
        return self._pending

    async def _acquire(self, generation: int) -> None:
        try:
            stream = await self._provider.request_access()
        except PermissionDenied as e:
            self._fail(generation, f"Microphone access denied: {e}", exc_info=False)
            return
        except Exception as e:
            self._fail(generation, f"Microphone setup failed: {e}", exc_info=True)
            return

        if generation != self._generation:
            logger.warning("Discarding microphone grant that arrived after detection was disabled")
            stream.close()
            return

        self._pending = None
        try:
            session = self._start_session(stream)
        except Exception as e:
            self._fail(generation, f"Audio analysis setup failed: {e}", exc_info=True)
            return

        self._has_permission = True
        self._session = session
        self._state = SessionState.ACTIVE
        logger.info("Blow detection active (sensitivity=%.2f)", self._config.sensitivity)

    def _start_session(self, stream: DeviceStream) -> CaptureSession:
        source: Optional[SpectrumSource] = None
        try:
            source = self._source_factory()
            if source.frequency_bin_count < MIN_BINS:
                raise ValueError(
                    f"Spectrum source has {source.frequency_bin_count} bins, at least {MIN_BINS} are needed"
                )
            source.connect(stream)
            session = CaptureSession(
                stream=stream,
                source=source,
                scheduler=self._scheduler,
                on_blow=self._on_blow,
                sensitivity=self._config.sensitivity,
                cooldown_ms=self._config.cooldown_ms,
                diagnostics=self._diagnostics,
                on_terminated=self._on_session_terminated,
            )
            session.start()
        except Exception:
            if source is not None:
                source.disconnect()
            stream.close()
            raise
        return session

    def _fail(self, generation: int, message: str, exc_info: bool) -> None:
        if generation != self._generation:
            logger.debug("Ignoring outcome of a superseded microphone request: %s", message)
            return
        if exc_info:
            logger.error(message, exc_info=True)
        else:
            logger.warning(message)
        self._pending = None
        self._has_permission = False
        self._state = SessionState.DENIED

    def _on_session_terminated(self, session: CaptureSession) -> None:
        if session is not self._session:
            return
        self._session = None
        self._state = SessionState.STOPPED
        logger.warning("Blow detection stopped after the audio stream ended")

    def disable(self) -> None:
        """Stop detecting and release the microphone. Safe to call in any state."""
        # Invalidates any request still in flight
        self._generation += 1
        self._pending = None

        session, self._session = self._session, None
        if session is not None:
            session.close()

        if self._state is SessionState.IDLE:
            return
        if self._state is not SessionState.STOPPED:
            logger.info("Blow detection stopped")
        self._state = SessionState.STOPPED

    def set_sensitivity(self, sensitivity: float) -> Optional[asyncio.Task]:
        """Change the sensitivity; an enabled detector restarts its session."""
        threshold_for(sensitivity)
        if sensitivity == self._config.sensitivity:
            return None
        self._config = self._config.model_copy(update={"sensitivity": sensitivity})
        if not self.enabled:
            return None
        logger.info("Sensitivity changed to %.2f, restarting blow detection", sensitivity)
        self.disable()
        return self.enable()

    def close(self) -> None:
        """Release everything; the detector cannot be enabled again."""
        self.disable()
        self._closed = True
