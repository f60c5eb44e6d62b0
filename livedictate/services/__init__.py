"""Services layer for LiveDictate application logic."""

from .recording_session import RecordingSessionCoordinator
from .model_lifecycle import ModelLifecycleCoordinator
from .text_sink import TextSink, ConsoleTextSink
from .dictation_service import DictationService

__all__ = [
    "RecordingSessionCoordinator",
    "ModelLifecycleCoordinator",
    "TextSink",
    "ConsoleTextSink",
    "DictationService"
]
