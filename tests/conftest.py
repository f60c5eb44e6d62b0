"""Pytest configuration and fixtures for LiveDictate tests."""

import pytest
import tempfile
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock, patch

import numpy as np

from livedictate.models.model_phase import ModelPhase
from livedictate.models.transcription import TranscriptionResult, TranscriptionSegment
from livedictate.transcription.base import AbstractTranscriptionBackend


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without threads or I/O")
    config.addinivalue_line("markers", "integration: tests that wire several components together")


class ScriptedBackend(AbstractTranscriptionBackend):
    """Backend that returns queued texts instead of decoding audio."""

    service_name = "scripted"

    def __init__(self,
                 texts: Optional[List[str]] = None,
                 final_text: Optional[str] = None,
                 language: Optional[str] = "es",
                 partials: Optional[List[str]] = None,
                 processing_time: float = 0.0,
                 fail_initialize: bool = False):
        super().__init__(sample_rate=16000)
        self.texts = list(texts or [])
        self.final_text = final_text
        self.language = language
        self.partials = list(partials or [])
        self.processing_time = processing_time
        self.fail_initialize = fail_initialize
        self.calls = []
        self.cleaned_up = False

    def initialize(self, model_id=None, on_phase_change=None) -> bool:
        if self.fail_initialize:
            raise RuntimeError("model files are corrupt")
        if on_phase_change:
            on_phase_change(ModelPhase.loading("preparing"))
        self.is_ready = True
        return True

    def transcribe(self, samples, language=None, prompt=None, on_partial=None, relaxed=False):
        self.calls.append({
            "samples": len(samples),
            "language": language,
            "prompt": prompt,
            "relaxed": relaxed,
        })
        if self.processing_time:
            time.sleep(self.processing_time)

        if relaxed:
            text = self.final_text or ""
        elif not np.any(samples):
            # warm-up decode on silence
            text = ""
        else:
            text = self.texts.pop(0) if self.texts else ""

        if on_partial:
            for partial in self.partials:
                on_partial(partial)

        return TranscriptionResult(
            segments=[TranscriptionSegment(text=text)] if text else [],
            processing_time=self.processing_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=self.language,
        )

    def cleanup(self) -> None:
        self.cleaned_up = True
        self.is_ready = False


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def make_backend():
    """Factory for ScriptedBackend instances."""
    def create(**kwargs) -> ScriptedBackend:
        return ScriptedBackend(**kwargs)

    return create


@pytest.fixture
def speech_samples():
    """Generate float32 audio (a 440 Hz tone) of the requested length."""
    def generate(duration_seconds=1.0, sample_rate=16000, amplitude=0.5):
        samples = int(duration_seconds * sample_rate)
        t = np.linspace(0, duration_seconds, samples, False)
        return (amplitude * np.sin(2 * np.pi * 440 * t)).astype(np.float32)

    return generate


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample 16-bit audio chunk (1024 samples of a sine wave)."""
    sample_rate = 16000
    duration = 1024 / sample_rate
    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Silent audio by default
        mock_stream.read.return_value = b'\x00' * 2048
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def config_file(temp_data_dir):
    """Write a YAML config into a temporary directory and return its path."""
    def write(content: str) -> str:
        path = Path(temp_data_dir) / "livedictate.yaml"
        path.write_text(content, encoding="utf-8")
        return str(path)

    return write
