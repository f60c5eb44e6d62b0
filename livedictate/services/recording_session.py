"""Recording session state machine: start gating, stop evaluation and capture settings."""

import logging
from typing import Optional

from ..audio.tuning import NORMAL_SETTINGS, WHISPER_MODE_SETTINGS
from ..models.audio import CaptureSettings
from ..models.session import RecordingStartEvaluation, RecordingStopEvaluation
from ..models.transcription import TranscriptionMode

logger = logging.getLogger(__name__)


class RecordingSessionCoordinator:
    """Tracks when the current recording started and decides start/stop outcomes."""

    def __init__(self):
        self.recording_started_at: Optional[float] = None

    def evaluate_start(self,
                       is_recording: bool,
                       deferred_by_model: bool,
                       needs_microphone: bool,
                       needs_accessibility: bool) -> RecordingStartEvaluation:
        """Decide whether a recording may start.

        Checks are applied in priority order: already recording, model not
        ready, microphone missing, text injection unavailable.
        """
        if is_recording:
            return RecordingStartEvaluation.ALREADY_RECORDING
        if deferred_by_model:
            return RecordingStartEvaluation.DEFERRED_BY_MODEL
        if needs_microphone:
            return RecordingStartEvaluation.BLOCKED_MICROPHONE
        if needs_accessibility:
            return RecordingStartEvaluation.BLOCKED_ACCESSIBILITY
        return RecordingStartEvaluation.READY_TO_START

    def begin_session(self, now: float) -> None:
        self.recording_started_at = now

    def reset_session_state(self) -> None:
        self.recording_started_at = None

    def stop_session(self, is_recording: bool, mode: TranscriptionMode) -> RecordingStopEvaluation:
        if not is_recording:
            return RecordingStopEvaluation.not_recording()
        self.recording_started_at = None
        return RecordingStopEvaluation(
            stopped=True,
            should_finalize_on_release=mode is TranscriptionMode.ON_RELEASE,
        )

    def capture_settings(self, whisper_mode_enabled: bool) -> CaptureSettings:
        """Gain and noise gate for the next capture; whisper mode boosts quiet speech."""
        return WHISPER_MODE_SETTINGS if whisper_mode_enabled else NORMAL_SETTINGS
