"""Unit tests for the Google Speech backend with the cloud client mocked."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from google.api_core import exceptions as gax_exceptions

from livedictate.models.model_phase import ModelPhase
from livedictate.transcription.base import BackendConfigurationError, TranscriptionBackendError
from livedictate.transcription.google_backend import GoogleSpeechBackend, float_to_linear16


def recognition_result(transcript, language_code="es-es", confidence=0.9):
    alternative = SimpleNamespace(transcript=transcript, confidence=confidence)
    return SimpleNamespace(alternatives=[alternative], language_code=language_code)


@pytest.fixture
def backend():
    backend = GoogleSpeechBackend(credentials_path="/secrets/google.json", language="es-ES")
    backend.client = MagicMock()
    backend.is_ready = True
    return backend


@pytest.mark.unit
class TestGoogleSpeechBackend:

    def test_initialize_requires_credentials(self):
        with pytest.raises(BackendConfigurationError):
            GoogleSpeechBackend(credentials_path=None).initialize()

    def test_initialize_creates_client(self):
        credentials = MagicMock(project_id="dictation-test")
        phases = []
        with patch("livedictate.transcription.google_backend.service_account.Credentials"
                   ".from_service_account_file", return_value=credentials), \
                patch("livedictate.transcription.google_backend.speech.SpeechClient") as client_class:
            backend = GoogleSpeechBackend(credentials_path="/secrets/google.json")
            assert backend.initialize(on_phase_change=phases.append) is True

        client_class.assert_called_once_with(credentials=credentials)
        assert backend.is_ready is True
        assert backend.project_id == "dictation-test"
        assert phases == [ModelPhase.loading("connecting to Google Cloud")]

    def test_whisper_model_id_is_ignored(self, speech_samples):
        with patch("livedictate.transcription.google_backend.service_account.Credentials"
                   ".from_service_account_file", return_value=MagicMock(project_id="p")), \
                patch("livedictate.transcription.google_backend.speech.SpeechClient") as client_class:
            backend = GoogleSpeechBackend(credentials_path="/secrets/google.json")
            backend.initialize(model_id="small")
        client_class.return_value.recognize.return_value = SimpleNamespace(results=[])

        backend.transcribe(speech_samples(0.5))

        assert backend.model_id == "latest_short"
        _, kwargs = client_class.return_value.recognize.call_args
        assert kwargs["config"].model == "latest_short"

    def test_google_model_id_is_adopted(self):
        with patch("livedictate.transcription.google_backend.service_account.Credentials"
                   ".from_service_account_file", return_value=MagicMock(project_id="p")), \
                patch("livedictate.transcription.google_backend.speech.SpeechClient"):
            backend = GoogleSpeechBackend(credentials_path="/secrets/google.json")
            backend.initialize(model_id="command_and_search")

        assert backend.model_id == "command_and_search"

    def test_configured_model(self):
        assert GoogleSpeechBackend(credentials_path="x", model="phone_call").model_id == "phone_call"

    def test_unknown_configured_model(self):
        with pytest.raises(BackendConfigurationError):
            GoogleSpeechBackend(credentials_path="x", model="medium")

    def test_unreadable_credentials(self):
        with patch("livedictate.transcription.google_backend.service_account.Credentials"
                   ".from_service_account_file", side_effect=ValueError("bad key")):
            with pytest.raises(BackendConfigurationError):
                GoogleSpeechBackend(credentials_path="/secrets/google.json").initialize()

    def test_transcribe_joins_results(self, backend, speech_samples):
        backend.client.recognize.return_value = SimpleNamespace(results=[
            recognition_result("hola mundo"),
            recognition_result("qué tal"),
            SimpleNamespace(alternatives=[], language_code=""),
        ])

        result = backend.transcribe(speech_samples(0.5), prompt="ignored")

        assert result.text == "hola mundo qué tal"
        assert result.language == "es-es"
        _, kwargs = backend.client.recognize.call_args
        assert kwargs["config"].language_code == "es-ES"
        assert kwargs["config"].model == "latest_short"

    def test_relaxed_uses_long_model(self, backend, speech_samples):
        backend.client.recognize.return_value = SimpleNamespace(results=[])

        result = backend.transcribe(speech_samples(0.5), language="en-US", relaxed=True)

        assert result.text == ""
        _, kwargs = backend.client.recognize.call_args
        assert kwargs["config"].model == "latest_long"
        assert kwargs["config"].language_code == "en-US"

    def test_api_errors_are_wrapped(self, backend, speech_samples):
        backend.client.recognize.side_effect = gax_exceptions.DeadlineExceeded("too slow")

        with pytest.raises(TranscriptionBackendError):
            backend.transcribe(speech_samples(0.5))

    def test_not_initialized(self, speech_samples):
        with pytest.raises(TranscriptionBackendError):
            GoogleSpeechBackend(credentials_path="x").transcribe(speech_samples(0.1))

    def test_cleanup(self, backend):
        backend.cleanup()
        assert backend.client is None
        assert backend.is_ready is False


@pytest.mark.unit
def test_float_to_linear16_clips():
    pcm = np.frombuffer(float_to_linear16(np.array([0.0, 0.5, 2.0, -2.0], dtype=np.float32)), dtype=np.int16)
    assert list(pcm) == [0, 16383, 32767, -32767]
