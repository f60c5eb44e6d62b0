"""Unit tests for microphone capture with PyAudio mocked out."""

import time
from unittest.mock import patch

import numpy as np
import pytest

from livedictate.audio.capture import AudioCapture, check_microphone_available, list_input_devices
from livedictate.models.audio import AudioStats, CaptureSettings


def run_briefly(capture, seconds=0.05, settings=None):
    capture.start_recording(settings)
    time.sleep(seconds)
    capture.stop_recording()


@pytest.mark.unit
class TestAudioCapture:

    def test_defaults(self):
        capture = AudioCapture(callback=lambda event: None)

        assert capture.sample_rate == 16000
        assert capture.chunk_size == 1024
        assert capture.channels == 1
        assert capture.is_recording is False
        assert capture.settings == CaptureSettings()

    def test_start_applies_session_settings(self, mock_pyaudio):
        capture = AudioCapture(callback=lambda event: None)

        with patch.object(capture, '_read_loop') as read_loop:
            assert capture.start_recording(CaptureSettings(input_gain=2.2, noise_gate=0.004)) is True

            assert capture.is_recording is True
            assert capture.started_at is not None
            assert capture.reader.daemon is True
            assert capture.settings.input_gain == 2.2
            read_loop.assert_called_once()

    def test_second_start_keeps_running_stream(self, mock_pyaudio):
        capture = AudioCapture(callback=lambda event: None)
        capture.is_recording = True

        with patch.object(capture, '_read_loop') as read_loop:
            assert capture.start_recording() is True
            read_loop.assert_not_called()
        mock_pyaudio['instance'].open.assert_not_called()

    def test_device_failure_reports_false(self, mock_pyaudio):
        mock_pyaudio['instance'].open.side_effect = OSError("Invalid input device")
        capture = AudioCapture(callback=lambda event: None)

        assert capture.start_recording() is False
        assert capture.is_recording is False
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_stop_signals_reader(self, mock_pyaudio):
        capture = AudioCapture(callback=lambda event: None)

        with patch.object(capture, '_read_loop'):
            capture.start_recording()
            capture.stop_recording()

        assert capture.is_recording is False
        assert capture.stop_event.is_set()

    def test_stop_when_idle(self, mock_pyaudio):
        capture = AudioCapture(callback=lambda event: None)
        capture.stop_recording()
        assert capture.is_recording is False

    def test_delivers_float_events(self, mock_pyaudio, sample_audio_chunk):
        mock_pyaudio['stream'].read.return_value = sample_audio_chunk
        events = []
        capture = AudioCapture(callback=events.append)

        run_briefly(capture, 0.1)

        assert len(events) > 0
        assert events[0].samples.dtype == np.float32
        assert len(events[0].samples) == 1024
        assert np.max(np.abs(events[0].samples)) <= 1.0
        assert events[0].level > 0.0
        assert events[-1].final is True
        assert not any(e.final for e in events[:-1])
        assert [e.sequence_number for e in events] == list(range(1, len(events) + 1))
        mock_pyaudio['stream'].close.assert_called()

    def test_noise_gate_silences_quiet_input(self, mock_pyaudio):
        mock_pyaudio['stream'].read.return_value = np.full(1024, 30, dtype=np.int16).tobytes()
        events = []
        capture = AudioCapture(callback=events.append)

        run_briefly(capture, settings=CaptureSettings(input_gain=1.0, noise_gate=0.01))

        assert not np.any(events[0].samples)
        assert events[0].level == 0.0

    def test_stereo_is_downmixed(self, mock_pyaudio):
        frames = np.array([1000, 3000] * 512, dtype=np.int16).tobytes()
        mock_pyaudio['stream'].read.return_value = frames
        events = []
        capture = AudioCapture(callback=events.append, channels=2)

        run_briefly(capture)

        assert len(events[0].samples) == 512
        assert np.allclose(events[0].samples, 2000 / 32768.0)

    def test_stats_before_recording(self, mock_pyaudio):
        stats = AudioCapture(callback=lambda event: None).stats()

        assert isinstance(stats, AudioStats)
        assert stats.is_recording is False
        assert stats.duration_seconds == 0.0
        assert stats.total_chunks == 0
        assert stats.level == 0.0


@pytest.mark.unit
class TestDeviceQueries:

    def test_microphone_available(self, mock_pyaudio):
        mock_pyaudio['instance'].get_default_input_device_info.return_value = {"name": "Built-in"}
        assert check_microphone_available() is True
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_microphone_missing(self, mock_pyaudio):
        mock_pyaudio['instance'].get_default_input_device_info.side_effect = IOError("No Default Input Device")
        assert check_microphone_available() is False

    def test_list_input_devices_skips_outputs(self, mock_pyaudio):
        devices = [
            {"name": "Speakers", "maxInputChannels": 0},
            {"name": "USB Mic", "maxInputChannels": 1},
        ]
        mock_pyaudio['instance'].get_device_count.return_value = len(devices)
        mock_pyaudio['instance'].get_device_info_by_index.side_effect = lambda i: devices[i]

        assert list_input_devices() == [{"index": 1, "name": "USB Mic"}]
