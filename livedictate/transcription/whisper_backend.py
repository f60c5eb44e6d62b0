"""Local Whisper transcription backend (faster-whisper)."""

import time
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np
from faster_whisper import WhisperModel, download_model

from .base import (
    AbstractTranscriptionBackend,
    BackendConfigurationError,
    PartialCallback,
    PhaseCallback,
    TranscriptionBackendError,
)
from ..models.model_phase import ModelPhase
from ..models.transcription import TranscriptionResult, TranscriptionSegment

logger = logging.getLogger(__name__)

DOWNLOAD_MAX_ATTEMPTS = 3
DOWNLOAD_BACKOFF_SECONDS = 0.45

# Temperature fallback schedules: chunks retry up to three times, the
# finalize pass up to five.
CHUNK_TEMPERATURES = (0.0, 0.2, 0.4, 0.6)
FINAL_TEMPERATURES = (0.0, 0.2, 0.4, 0.6, 0.8, 1.0)

WHISPER_MODEL_IDS = ("tiny", "base", "small", "medium", "large-v3")
DEFAULT_MODEL_ID = "small"
# Best first
QUALITY_PRIORITY = ("large-v3", "medium", "small", "base", "tiny")


def is_model_folder_valid(folder: Path) -> bool:
    return folder.is_dir() and any(folder.iterdir())


class WhisperLocalBackend(AbstractTranscriptionBackend):
    """Runs a Whisper model on the local machine."""

    service_name = "faster-whisper"

    def __init__(self,
                 models_directory: str,
                 sample_rate: int = 16000,
                 device: str = "cpu",
                 compute_type: str = "int8",
                 beam_size: int = 5):
        """Initialize Whisper backend.

        Args:
            models_directory: Where models are downloaded, one folder per model
            sample_rate: Must be 16000 for Whisper models
            device: "cpu", "cuda" or "auto"
            compute_type: CTranslate2 compute type (e.g. "int8", "float16")
            beam_size: Beam width used for decoding
        """
        super().__init__(sample_rate)
        if sample_rate != 16000:
            raise BackendConfigurationError("Whisper models require 16 kHz audio")
        self.models_directory = Path(models_directory)
        self.device = device
        self.compute_type = compute_type
        self.beam_size = beam_size
        self.model: Optional[WhisperModel] = None
        self.model_id: Optional[str] = None

    def model_folder(self, model_id: str) -> Path:
        return self.models_directory / model_id

    def initialize(self,
                   model_id: Optional[str] = None,
                   on_phase_change: Optional[PhaseCallback] = None) -> bool:
        """Download (if needed) and load the model."""
        if not model_id:
            raise BackendConfigurationError("A Whisper model id is required")
        report = on_phase_change or (lambda phase: None)
        self.is_ready = False

        folder = self.model_folder(model_id)
        if is_model_folder_valid(folder):
            logger.info(f"Using cached model at {folder}")
            report(ModelPhase.loading("using local cache"))
        else:
            self._download_with_retry(model_id, folder, report)

        report(ModelPhase.loading(f"preparing {model_id}"))
        logger.info(f"Loading Whisper model {model_id} on {self.device} ({self.compute_type})")
        self.model = WhisperModel(str(folder), device=self.device, compute_type=self.compute_type)
        self.model_id = model_id
        self.is_ready = True
        logger.info(f"✅ Whisper model {model_id} loaded")
        return True

    def _download_with_retry(self, model_id: str, folder: Path, report: PhaseCallback) -> None:
        report(ModelPhase.downloading(0.0))
        folder.mkdir(parents=True, exist_ok=True)

        last_error: Optional[Exception] = None
        for attempt in range(1, DOWNLOAD_MAX_ATTEMPTS + 1):
            try:
                logger.info(f"⬇️ Downloading {model_id} (attempt {attempt}/{DOWNLOAD_MAX_ATTEMPTS})")
                download_model(model_id, output_dir=str(folder))
                if not is_model_folder_valid(folder):
                    raise TranscriptionBackendError("Downloaded model folder is empty")
                report(ModelPhase.downloading(1.0))
                return
            except Exception as e:
                last_error = e
                logger.warning(f"Download attempt {attempt}/{DOWNLOAD_MAX_ATTEMPTS} failed: {e}")
                if attempt < DOWNLOAD_MAX_ATTEMPTS:
                    time.sleep(DOWNLOAD_BACKOFF_SECONDS * attempt)

        raise TranscriptionBackendError(f"Model download failed: {last_error}") from last_error

    def transcribe(self,
                   samples: np.ndarray,
                   language: Optional[str] = None,
                   prompt: Optional[str] = None,
                   on_partial: Optional[PartialCallback] = None,
                   relaxed: bool = False) -> TranscriptionResult:
        if self.model is None:
            raise TranscriptionBackendError("Whisper model is not loaded")

        start_time = time.time()
        options = dict(
            language=language,
            initial_prompt=prompt or None,
            beam_size=self.beam_size,
            without_timestamps=True,
            suppress_blank=True,
            vad_filter=False,
        )
        if relaxed:
            # The user explicitly stopped, so speech is expected: drop the
            # quality thresholds that reject short tail segments.
            options.update(
                temperature=list(FINAL_TEMPERATURES),
                compression_ratio_threshold=None,
                log_prob_threshold=None,
                no_speech_threshold=None,
            )
        else:
            options.update(
                temperature=list(CHUNK_TEMPERATURES),
                compression_ratio_threshold=2.4,
                log_prob_threshold=-1.0,
            )

        try:
            segments_iter, info = self.model.transcribe(np.asarray(samples, dtype=np.float32), **options)
            segments = []
            for segment in segments_iter:
                segments.append(TranscriptionSegment(text=segment.text, start=segment.start, end=segment.end))
                if on_partial:
                    on_partial(" ".join(s.text.strip() for s in segments if s.text.strip()))
        except Exception as e:
            raise TranscriptionBackendError(f"Whisper decode failed: {e}") from e

        processing_time = time.time() - start_time
        logger.debug(f"Decoded {len(samples)} samples in {processing_time:.3f}s "
                     f"(language={info.language}, p={info.language_probability:.2f})")
        return TranscriptionResult(
            segments=segments,
            processing_time=processing_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=info.language,
            is_final=True,
        )

    def cleanup(self) -> None:
        """Release the model."""
        self.model = None
        self.is_ready = False
