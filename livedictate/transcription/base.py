"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

import numpy as np

from ..models.model_phase import ModelPhase
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[ModelPhase], None]
PartialCallback = Callable[[str], None]


class TranscriptionBackendError(RuntimeError):
    """A decode call failed."""


class BackendConfigurationError(TranscriptionBackendError):
    """The backend cannot start with the current configuration."""


class ModelLoadTimeoutError(TranscriptionBackendError):
    """Loading the model took longer than allowed."""


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for transcription backends."""

    service_name = "abstract"

    def __init__(self, sample_rate: int = 16000):
        """Initialize backend.

        Args:
            sample_rate: Sample rate of the audio passed to ``transcribe``
        """
        self.sample_rate = sample_rate
        self.is_ready = False

    @abstractmethod
    def initialize(self,
                   model_id: Optional[str] = None,
                   on_phase_change: Optional[PhaseCallback] = None) -> bool:
        """Download/load backend resources and verify configuration.

        Args:
            model_id: Model to load; backends without model choice may ignore it
            on_phase_change: Receives downloading/loading progress

        Returns:
            True if the backend is ready to transcribe

        Raises:
            BackendConfigurationError: If required configuration is missing
        """
        pass

    @abstractmethod
    def transcribe(self,
                   samples: np.ndarray,
                   language: Optional[str] = None,
                   prompt: Optional[str] = None,
                   on_partial: Optional[PartialCallback] = None,
                   relaxed: bool = False) -> TranscriptionResult:
        """Decode mono float32 samples.

        Args:
            samples: Audio at ``self.sample_rate``
            language: Language code, or None to auto-detect
            prompt: Previously decoded text used as decoding context
            on_partial: Receives interim text while decoding, before the result is returned
            relaxed: Loosen quality thresholds; used for the finalize pass

        Returns:
            TranscriptionResult with the decoded segments and detected language

        Raises:
            TranscriptionBackendError: If decoding fails
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
