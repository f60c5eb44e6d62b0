"""Data models for the LiveDictate application."""

from .audio import AudioStats, CaptureSettings
from .events import AudioEvent
from .model_phase import ModelPhase, ModelPhaseKind
from .session import RecordingStartEvaluation, RecordingStopEvaluation
from .transcription import (
    TranscriptionMode,
    PolishMode,
    TranscriptionSegment,
    TranscriptionResult,
    NoAction,
    TypeText,
    CopyToClipboard,
    InjectionAction,
    TranscriptionChunkResult,
    SessionMetrics,
)

__all__ = [
    "AudioStats",
    "CaptureSettings",
    "AudioEvent",
    "ModelPhase",
    "ModelPhaseKind",
    "RecordingStartEvaluation",
    "RecordingStopEvaluation",
    "TranscriptionMode",
    "PolishMode",
    "TranscriptionSegment",
    "TranscriptionResult",
    "NoAction",
    "TypeText",
    "CopyToClipboard",
    "InjectionAction",
    "TranscriptionChunkResult",
    "SessionMetrics",
]
