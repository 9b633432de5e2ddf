"""Tests for microphone access via sounddevice."""

import numpy as np
import pytest
from unittest.mock import MagicMock, patch

try:
    import sounddevice as sd
except (ImportError, OSError):  # PortAudio shared library missing
    pytest.skip("sounddevice/PortAudio not available", allow_module_level=True)

from blow_detector.audio.input.mic import MicStream, SoundDeviceProvider, list_input_devices
from blow_detector.audio.input.types import AudioFormat
from blow_detector.core.events import PermissionDenied

MODULE = "blow_detector.audio.input.mic"


class TestMicStream:
    @pytest.fixture
    def mock_input_stream(self):
        with patch(f"{MODULE}.sd.InputStream") as mock_cls:
            mock_cls.return_value = MagicMock(active=True)
            yield mock_cls

    def test_open_uses_audio_format(self, mock_input_stream):
        stream = MicStream(AudioFormat(sample_rate=48000), device=3)
        stream.open()

        call_kwargs = mock_input_stream.call_args[1]
        assert call_kwargs["samplerate"] == 48000
        assert call_kwargs["channels"] == 1
        assert call_kwargs["dtype"] == np.float32
        assert call_kwargs["device"] == 3
        mock_input_stream.return_value.start.assert_called_once()
        assert stream.active
        assert stream.sample_rate == 48000

    def test_callback_fans_out_first_channel(self, mock_input_stream):
        stream = MicStream(AudioFormat(channels=2))
        stream.open()
        callback = mock_input_stream.call_args[1]["callback"]

        received = []
        stream.add_listener(received.append)
        stream.add_listener(received.append)  # duplicates are ignored

        indata = np.column_stack([np.ones(64), np.zeros(64)]).astype(np.float32)
        callback(indata, 64, {}, None)

        assert len(received) == 1
        assert received[0].dtype == np.float32
        np.testing.assert_array_equal(received[0], np.ones(64, dtype=np.float32))

    def test_removed_listener_gets_nothing(self, mock_input_stream):
        stream = MicStream(AudioFormat())
        stream.open()
        callback = mock_input_stream.call_args[1]["callback"]

        received = []
        stream.add_listener(received.append)
        stream.remove_listener(received.append)
        stream.remove_listener(received.append)
        callback(np.zeros((64, 1), dtype=np.float32), 64, {}, None)

        assert received == []

    def test_close_is_idempotent(self, mock_input_stream):
        stream = MicStream(AudioFormat())
        stream.open()
        stream.close()
        stream.close()

        sd_stream = mock_input_stream.return_value
        sd_stream.abort.assert_called_once()
        sd_stream.close.assert_called_once()
        assert not stream.active

    def test_close_swallows_portaudio_errors(self, mock_input_stream):
        mock_input_stream.return_value.abort.side_effect = sd.PortAudioError("device gone")
        stream = MicStream(AudioFormat())
        stream.open()
        stream.close()
        assert not stream.active

    def test_close_without_open(self):
        stream = MicStream(AudioFormat())
        stream.close()
        assert not stream.active


class TestSoundDeviceProvider:
    @pytest.mark.asyncio
    async def test_request_access_returns_started_stream(self):
        with patch(f"{MODULE}.sd.query_devices", return_value={"name": "mic"}), \
             patch(f"{MODULE}.sd.InputStream") as mock_input_stream:
            provider = SoundDeviceProvider(AudioFormat(sample_rate=16000))
            stream = await provider.request_access()

        assert isinstance(stream, MicStream)
        assert mock_input_stream.call_args[1]["samplerate"] == 16000
        mock_input_stream.return_value.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_device_is_denied(self):
        with patch(f"{MODULE}.sd.query_devices", side_effect=sd.PortAudioError("no input")), \
             patch(f"{MODULE}.sd.InputStream") as mock_input_stream:
            provider = SoundDeviceProvider()
            with pytest.raises(PermissionDenied):
                await provider.request_access()

        mock_input_stream.assert_not_called()

    @pytest.mark.asyncio
    async def test_refused_stream_is_denied(self):
        with patch(f"{MODULE}.sd.query_devices", return_value={"name": "mic"}), \
             patch(f"{MODULE}.sd.InputStream", side_effect=sd.PortAudioError("refused")):
            provider = SoundDeviceProvider()
            with pytest.raises(PermissionDenied):
                await provider.request_access()


def test_list_input_devices_skips_outputs():
    devices = [
        {"name": "Built-in Mic", "max_input_channels": 1},
        {"name": "Speakers", "max_input_channels": 0},
        {"name": "USB Mic", "max_input_channels": 2},
    ]
    with patch(f"{MODULE}.sd.query_devices", return_value=devices):
        assert list_input_devices() == [(0, "Built-in Mic"), (2, "USB Mic")]
