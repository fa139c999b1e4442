"""Unit tests for AudioDevice and CaptureStream."""

from unittest.mock import Mock

import pytest
import numpy as np
import pyaudio

from micstream.audio.capture import AudioDevice, CaptureStream
from micstream.errors import DeviceUnavailable, TeardownFault, UnsupportedPlatform


@pytest.mark.unit
class TestAudioDevice:
    """Test cases for device access."""

    def test_request_access_uses_device_defaults(self, mock_pyaudio):
        stream = AudioDevice().request_access()

        assert stream.channels == 2
        assert stream.sample_rate == 48000
        assert stream.device_name == "Test Microphone"
        kwargs = mock_pyaudio['instance'].open.call_args.kwargs
        assert kwargs['format'] == pyaudio.paFloat32
        assert kwargs['input'] is True
        assert kwargs['start'] is False
        assert kwargs['stream_callback'] == stream._on_buffer

    def test_requested_channels_capped_by_device(self, mock_pyaudio):
        stream = AudioDevice(channels=8, sample_rate=44100).request_access()

        assert stream.channels == 2
        assert stream.sample_rate == 44100

    def test_explicit_device_index(self, mock_pyaudio):
        mock_pyaudio['instance'].get_device_info_by_index.return_value = {
            "name": "USB Mic", "maxInputChannels": 1, "defaultSampleRate": 16000.0,
        }

        stream = AudioDevice(device_index=3).request_access()

        mock_pyaudio['instance'].get_device_info_by_index.assert_called_once_with(3)
        assert stream.channels == 1
        assert stream.device_index == 3

    def test_no_default_input_device(self, mock_pyaudio):
        mock_pyaudio['instance'].get_default_input_device_info.side_effect = IOError("No Default Input Device")

        with pytest.raises(DeviceUnavailable):
            AudioDevice().request_access()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_output_only_device(self, mock_pyaudio):
        mock_pyaudio['instance'].get_default_input_device_info.return_value = {
            "name": "Speakers", "maxInputChannels": 0, "defaultSampleRate": 44100.0,
        }

        with pytest.raises(DeviceUnavailable):
            AudioDevice().request_access()

    def test_open_refused(self, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError("Device unavailable")

        with pytest.raises(DeviceUnavailable):
            AudioDevice().request_access()
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_no_host_api(self, mock_pyaudio):
        mock_pyaudio['instance'].get_host_api_count.return_value = 0

        with pytest.raises(UnsupportedPlatform):
            AudioDevice().request_access()

    def test_portaudio_init_failure(self, mock_pyaudio):
        mock_pyaudio['class'].side_effect = OSError("PortAudio missing")

        with pytest.raises(UnsupportedPlatform):
            AudioDevice().request_access()


@pytest.mark.unit
class TestCaptureStream:
    """Test cases for callback delivery and release."""

    def make_stream(self, channels=2):
        stream = CaptureStream(Mock(), channels=channels, sample_rate=48000, frames_per_buffer=4)
        stream._open()
        return stream

    def test_buffers_become_ordered_blocks(self):
        stream = self.make_stream()
        received = []
        stream.start(received.append)
        data = np.array([0.5, -0.5] * 4, dtype=np.float32).tobytes()

        assert stream._on_buffer(data, 4, {}, 0) == (None, pyaudio.paContinue)
        stream._on_buffer(data, 4, {}, 0)

        assert [b.sequence_number for b in received] == [0, 1]
        assert received[0].channel_count == 2
        assert received[0].channels[0].tolist() == [0.5] * 4
        assert received[0].channels[1].tolist() == [-0.5] * 4

    def test_overflow_is_counted(self):
        stream = self.make_stream(channels=1)
        stream.start(lambda block: None)

        stream._on_buffer(np.zeros(4, dtype=np.float32).tobytes(), 4, {}, pyaudio.paInputOverflow)

        assert stream.get_capture_stats()["overflow_count"] == 1

    def test_callback_failure_aborts_and_reports(self):
        stream = self.make_stream(channels=1)
        errors = []
        stream.start(Mock(side_effect=RuntimeError("consumer gone")), errors.append)

        result = stream._on_buffer(np.zeros(4, dtype=np.float32).tobytes(), 4, {}, 0)

        assert result == (None, pyaudio.paAbort)
        assert len(errors) == 1

    def test_close_is_idempotent(self):
        stream = self.make_stream()
        pa_stream = stream.stream

        stream.close()
        stream.close()

        pa_stream.stop_stream.assert_called_once()
        pa_stream.close.assert_called_once()
        stream.pyaudio_instance.terminate.assert_called_once()
        assert stream.closed

    def test_close_attempts_every_step(self):
        stream = self.make_stream()
        stream.stream.stop_stream.side_effect = OSError("stop failed")

        with pytest.raises(TeardownFault) as exc_info:
            stream.close()

        assert len(exc_info.value.faults) == 1
        stream.pyaudio_instance.terminate.assert_called_once()

    def test_start_after_close(self):
        stream = self.make_stream()
        stream.close()

        with pytest.raises(RuntimeError):
            stream.start(lambda block: None)
