"""Cloud decoding through Google Speech-to-Text synchronous recognition."""

import time
import logging
from datetime import datetime
from typing import Optional

import numpy as np

from .base import (
    AbstractTranscriptionBackend,
    BackendConfigurationError,
    PartialCallback,
    PhaseCallback,
    TranscriptionBackendError,
)
from ..models.model_phase import ModelPhase
from ..models.transcription import TranscriptionResult, TranscriptionSegment

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

CHUNK_TIMEOUT_SECONDS = 5.0
FINAL_TIMEOUT_SECONDS = 15.0

GOOGLE_MODEL_IDS = (
    "latest_short",
    "latest_long",
    "command_and_search",
    "phone_call",
    "video",
    "default",
)
DEFAULT_MODEL_ID = "latest_short"


def float_to_linear16(samples: np.ndarray) -> bytes:
    """Convert float32 samples in [-1, 1] to little-endian 16-bit PCM."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767).astype(np.int16).tobytes()


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Sends each chunk to Google Speech-to-Text as LINEAR16 audio."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 model: str = DEFAULT_MODEL_ID):
        """Initialize cloud backend.

        Args:
            credentials_path: Service account JSON key
            sample_rate: Sample rate of the audio sent for recognition
            language: Language code used when the caller does not lock one (e.g. 'en-US', 'es-ES')
            use_enhanced: Request the enhanced recognition model
            enable_automatic_punctuation: Let the service insert punctuation
            model: Recognition model for chunks; must be one of GOOGLE_MODEL_IDS
        """
        super().__init__(sample_rate)
        self.credentials_path = credentials_path
        self.language = language
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.client = None
        self.project_id = None
        if model not in GOOGLE_MODEL_IDS:
            raise BackendConfigurationError(f"Unknown Google recognition model: {model}")
        self.model_id = model

    def _recognition_config(self, language: Optional[str], relaxed: bool) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            language_code=language or self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            # The finalize window can be up to 25s long
            model="latest_long" if relaxed else self.model_id,
        )

    def initialize(self,
                   model_id: Optional[str] = None,
                   on_phase_change: Optional[PhaseCallback] = None) -> bool:
        """Load the service account key and create the client. No audio is sent."""
        if not self.credentials_path:
            raise BackendConfigurationError(
                "Google credentials path is required - cannot initialize without credentials")
        if model_id in GOOGLE_MODEL_IDS:
            self.model_id = model_id
        elif model_id:
            logger.debug(f"Ignoring model id '{model_id}', not a Google recognition model")
        if on_phase_change:
            on_phase_change(ModelPhase.loading("connecting to Google Cloud"))

        logger.info(f"🔑 Google credentials: {self.credentials_path}")
        try:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        except (OSError, ValueError) as e:
            raise BackendConfigurationError(f"Invalid Google credentials: {e}") from e

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        self.is_ready = True
        logger.info(f"✅ Google Speech-to-Text ready (project: {self.project_id}, model: {self.model_id})")
        return True

    def transcribe(self,
                   samples: np.ndarray,
                   language: Optional[str] = None,
                   prompt: Optional[str] = None,
                   on_partial: Optional[PartialCallback] = None,
                   relaxed: bool = False) -> TranscriptionResult:
        """Transcribe samples with synchronous recognition.

        Synchronous recognition has no interim results and no prompt, so
        ``on_partial`` and ``prompt`` are not used.
        """
        if self.client is None:
            raise TranscriptionBackendError("Google Speech backend is not initialized")

        started = time.time()
        config = self._recognition_config(language, relaxed)
        audio = speech.RecognitionAudio(content=float_to_linear16(samples))
        timeout = FINAL_TIMEOUT_SECONDS if relaxed else CHUNK_TIMEOUT_SECONDS

        try:
            response = self.client.recognize(config=config, audio=audio, timeout=timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded")
            raise TranscriptionBackendError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable")
            raise TranscriptionBackendError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT API call error: {e}")
            raise TranscriptionBackendError(f"Google Speech API error: {e}") from e
        elapsed = time.time() - started

        segments = []
        detected_language = None
        for result in response.results:
            if not result.alternatives:
                continue
            best = result.alternatives[0]
            segments.append(TranscriptionSegment(text=best.transcript))
            detected_language = detected_language or result.language_code or None
            logger.debug(f"Google: '{best.transcript}' (confidence {best.confidence:.2f})")

        if not segments:
            logger.debug("Google returned no speech")

        return TranscriptionResult(
            segments=segments,
            processing_time=elapsed,
            timestamp=datetime.now(),
            service=self.service_name,
            language=detected_language,
            is_final=True,
        )

    def cleanup(self) -> None:
        """Drop the client."""
        self.client = None
        self.is_ready = False
