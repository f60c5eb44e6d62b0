"""Transcription module for LiveDictate.

Backends (``google_backend``, ``whisper_backend``) are imported from their
own modules so their client libraries are only needed when selected.
"""

from .base import (
    AbstractTranscriptionBackend,
    TranscriptionBackendError,
    BackendConfigurationError,
    ModelLoadTimeoutError,
)
from .hallucination import is_hallucination, sanitize_leading_artifacts
from .reconciler import extract_new_tail
from .editing import EditingCommand, DictationEditingService, editing_command
from .coordinator import TranscriptionCoordinator
from .engine import StreamingTranscriptionEngine
from .publisher import TranscriptionPublisher
from .chatgpt_enhancer import TextEnhancer, ChatGPTTextEnhancer, TextEnhancerError

__all__ = [
    "AbstractTranscriptionBackend",
    "TranscriptionBackendError",
    "BackendConfigurationError",
    "ModelLoadTimeoutError",
    "is_hallucination",
    "sanitize_leading_artifacts",
    "extract_new_tail",
    "EditingCommand",
    "DictationEditingService",
    "editing_command",
    "TranscriptionCoordinator",
    "StreamingTranscriptionEngine",
    "TranscriptionPublisher",
    "TextEnhancer",
    "ChatGPTTextEnhancer",
    "TextEnhancerError",
]
