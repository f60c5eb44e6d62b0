"""Unit tests for the recording session state machine."""

import pytest

from livedictate.audio.tuning import NORMAL_SETTINGS, WHISPER_MODE_SETTINGS
from livedictate.models.session import RecordingStartEvaluation
from livedictate.models.transcription import TranscriptionMode
from livedictate.services.recording_session import RecordingSessionCoordinator


@pytest.fixture
def session():
    return RecordingSessionCoordinator()


@pytest.mark.unit
class TestEvaluateStart:

    @pytest.mark.parametrize("deferred, mic, accessibility", [
        (False, False, False),
        (True, True, True),
        (False, True, False),
    ])
    def test_already_recording_wins(self, session, deferred, mic, accessibility):
        assert session.evaluate_start(True, deferred, mic, accessibility) is \
            RecordingStartEvaluation.ALREADY_RECORDING

    def test_model_gate_before_permissions(self, session):
        result = session.evaluate_start(
            is_recording=False, deferred_by_model=True, needs_microphone=True, needs_accessibility=True)
        assert result is RecordingStartEvaluation.DEFERRED_BY_MODEL
        assert result.is_blocked is False

    def test_microphone_before_accessibility(self, session):
        result = session.evaluate_start(False, False, True, True)
        assert result is RecordingStartEvaluation.BLOCKED_MICROPHONE
        assert result.is_blocked is True

    def test_accessibility(self, session):
        assert session.evaluate_start(False, False, False, True) is \
            RecordingStartEvaluation.BLOCKED_ACCESSIBILITY

    def test_ready(self, session):
        assert session.evaluate_start(False, False, False, False) is \
            RecordingStartEvaluation.READY_TO_START


@pytest.mark.unit
class TestStopSession:

    def test_not_recording(self, session):
        result = session.stop_session(False, TranscriptionMode.ON_RELEASE)
        assert result.stopped is False
        assert result.should_finalize_on_release is False

    def test_streaming_stop(self, session):
        session.begin_session(123.0)
        result = session.stop_session(True, TranscriptionMode.STREAMING)

        assert result.stopped is True
        assert result.should_finalize_on_release is False
        assert session.recording_started_at is None

    def test_on_release_stop(self, session):
        session.begin_session(123.0)
        result = session.stop_session(True, TranscriptionMode.ON_RELEASE)
        assert result.should_finalize_on_release is True


@pytest.mark.unit
class TestSessionState:

    def test_begin_and_reset(self, session):
        session.begin_session(42.0)
        assert session.recording_started_at == 42.0
        session.reset_session_state()
        assert session.recording_started_at is None

    def test_capture_settings(self, session):
        assert session.capture_settings(True) == WHISPER_MODE_SETTINGS
        assert session.capture_settings(False) == NORMAL_SETTINGS
