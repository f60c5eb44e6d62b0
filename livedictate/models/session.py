"""Recording session data models."""

from dataclasses import dataclass
from enum import Enum


class RecordingStartEvaluation(Enum):
    """Outcome of asking whether a recording may start, in priority order."""
    ALREADY_RECORDING = "already_recording"
    DEFERRED_BY_MODEL = "deferred_by_model"
    BLOCKED_MICROPHONE = "blocked_microphone"
    BLOCKED_ACCESSIBILITY = "blocked_accessibility"
    READY_TO_START = "ready_to_start"

    @property
    def is_blocked(self) -> bool:
        return self in (RecordingStartEvaluation.BLOCKED_MICROPHONE,
                        RecordingStartEvaluation.BLOCKED_ACCESSIBILITY)


@dataclass(frozen=True)
class RecordingStopEvaluation:
    """Outcome of a stop request."""
    stopped: bool
    should_finalize_on_release: bool = False

    @classmethod
    def not_recording(cls) -> "RecordingStopEvaluation":
        return cls(stopped=False)
