"""Streaming transcription engine: chunked decode loop over a single backend."""

import time
import logging
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Optional

import numpy as np

from .base import AbstractTranscriptionBackend, ModelLoadTimeoutError, PhaseCallback
from .hallucination import is_hallucination, sanitize_leading_artifacts
from .reconciler import extract_new_tail
from ..audio.accumulator import ChunkAccumulator
from ..models.events import AudioEvent
from ..models.model_phase import ModelPhase

logger = logging.getLogger(__name__)

WARMUP_SECONDS = 0.35
MAX_PROMPT_WORDS = 224

PartialHandler = Callable[[str], None]
FinalHandler = Callable[[str, float], None]


class StreamingTranscriptionEngine:
    """Feeds captured audio through a backend one chunk at a time.

    Decodes run on a single worker thread, so chunk results are delivered in
    order and never overlap. Partial text for a chunk is always delivered
    before that chunk's final text.
    """

    def __init__(self,
                 backend: AbstractTranscriptionBackend,
                 accumulator: ChunkAccumulator,
                 on_partial: PartialHandler,
                 on_final: FinalHandler,
                 model_load_timeout: float = 120.0):
        """Initialize transcription engine.

        Args:
            backend: Backend used for every decode
            accumulator: Decides when a chunk is dispatched
            on_partial: Receives interim text for the chunk being decoded
            on_final: Receives filtered chunk text and the time its decode started
            model_load_timeout: Seconds allowed for ``load_model``
        """
        self.backend = backend
        self.accumulator = accumulator
        self.on_partial = on_partial
        self.on_final = on_final
        self.model_load_timeout = model_load_timeout

        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="transcription")
        self.loader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-loader")

        self.language: Optional[str] = None
        self.session_language: Optional[str] = None
        self.last_prompt: Optional[str] = None
        self.has_primed_decoder = False
        self.chunk_counter = 0

    @property
    def is_model_ready(self) -> bool:
        return self.backend.is_ready

    @property
    def effective_language(self) -> Optional[str]:
        return self.session_language or self.language

    def load_model(self,
                   model_id: str,
                   language: Optional[str],
                   on_phase_change: PhaseCallback) -> bool:
        """Load the backend model, warm it up and report progress.

        Blocks the calling thread. Failures are reported as
        ``ModelPhase.error`` and never raised.

        Returns:
            True if the model is ready
        """
        self.language = language
        self.has_primed_decoder = False

        logger.info(f"🚀 Starting model load: {model_id} ({self.backend.service_name})")
        try:
            future = self.loader.submit(self.backend.initialize, model_id, on_phase_change)
            try:
                ready = future.result(timeout=self.model_load_timeout)
            except FutureTimeoutError as e:
                raise ModelLoadTimeoutError(
                    f"Model loading timed out after {self.model_load_timeout:.0f}s") from e
            if not ready:
                raise RuntimeError(f"{self.backend.service_name} failed to initialize")

            on_phase_change(ModelPhase.loading("warming up"))
            self._prime_decoder()
        except Exception as e:
            logger.error(f"❌ Model load failed: {e}")
            on_phase_change(ModelPhase.error(str(e)))
            return False

        logger.info(f"✅ Model ready: {model_id}")
        on_phase_change(ModelPhase.ready())
        return True

    def _prime_decoder(self) -> None:
        """Run one decode on silence so the first real chunk is not slow."""
        if self.has_primed_decoder:
            return
        self.has_primed_decoder = True

        warmup_audio = np.zeros(int(self.backend.sample_rate * WARMUP_SECONDS), dtype=np.float32)
        try:
            self.backend.transcribe(warmup_audio, language=self.effective_language)
            logger.info("✅ Decoder warmup complete")
        except Exception as e:
            logger.warning(f"⚠️ Decoder warmup failed (non-fatal): {e}")

    def on_audio_event(self, event: AudioEvent) -> None:
        """Pub/sub listener for captured audio."""
        self.process_audio(event.samples)

    def process_audio(self, samples: np.ndarray) -> None:
        """Buffer samples from the capture thread; dispatch a decode when a chunk is ready."""
        chunk = self.accumulator.feed(samples, allow_dispatch=self.is_model_ready)
        if chunk is None:
            return

        self.chunk_counter += 1
        chunk_id = f"chunk_{self.chunk_counter}"
        self.executor.submit(self._process_chunk, chunk_id, chunk, time.time())

    def _process_chunk(self, chunk_id: str, chunk: np.ndarray, chunk_started_at: float) -> None:
        """Worker: decode, filter and deliver one chunk."""
        try:
            result = self.backend.transcribe(
                chunk,
                language=self.effective_language,
                prompt=self.last_prompt,
                on_partial=self._emit_partial,
            )
            result.chunk_id = chunk_id
            self._remember_context(result.text, result.language)

            text = self._filter(result.text, chunk_id)
            if text:
                logger.info(f"📝 Transcribed {chunk_id}: '{text}'")
                self.on_final(text, chunk_started_at)
        except Exception as e:
            logger.error(f"Transcription error for {chunk_id}: {e}", exc_info=True)
        finally:
            self.accumulator.mark_idle()

    def _emit_partial(self, text: str) -> None:
        partial = text.strip()
        if partial:
            self.on_partial(partial)

    def _remember_context(self, text: str, detected_language: Optional[str]) -> None:
        if text:
            self.last_prompt = " ".join(text.split()[-MAX_PROMPT_WORDS:])

        if self.session_language is None and self.language is None and detected_language:
            self.session_language = detected_language
            logger.info(f"🔒 Language locked for session: {detected_language}")

    @staticmethod
    def _filter(text: str, label: str) -> Optional[str]:
        if not text:
            return None
        # Denylisted phrases can start with an artifact prefix ("thanks for watching")
        if is_hallucination(text):
            logger.info(f"Filtered hallucination in {label}: '{text}'")
            return None
        cleaned = sanitize_leading_artifacts(text)
        if not cleaned:
            logger.info(f"Filtered leading artifact in {label}: '{text}'")
            return None
        if is_hallucination(cleaned):
            logger.info(f"Filtered hallucination in {label}: '{cleaned}'")
            return None
        return cleaned

    def prepare_for_finalize(self) -> None:
        """Stop dispatching chunks; call as soon as recording stops."""
        self.accumulator.prepare_for_finalize()

    def flush_processing(self, timeout: Optional[float] = None) -> None:
        """Block until every decode submitted so far has finished."""
        self.executor.submit(lambda: None).result(timeout=timeout)

    def finalize(self, confirmed_text: str = "") -> "Future[Optional[str]]":
        """Re-decode the session tail and return only text not yet confirmed.

        Takes the tail window of the session audio (clearing the buffers) and
        decodes it with relaxed options on the worker thread.

        Args:
            confirmed_text: Text already confirmed by chunk processing

        Returns:
            Future resolving to the new tail, or None if nothing new was said
        """
        audio = self.accumulator.take_final_window()
        if audio is None or not self.is_model_ready:
            done: Future = Future()
            done.set_result(None)
            return done

        logger.info(f"Finalize: re-decoding {len(audio) / self.backend.sample_rate:.2f}s of audio")
        return self.executor.submit(self._process_final, audio, confirmed_text)

    def _process_final(self, audio: np.ndarray, confirmed_text: str) -> Optional[str]:
        try:
            result = self.backend.transcribe(
                audio,
                language=self.effective_language,
                prompt=self.last_prompt,
                relaxed=True,
            )
        except Exception as e:
            logger.error(f"Final transcription error: {e}", exc_info=True)
            return None

        text = self._filter(result.text, "final")
        if not text:
            return None

        delta = extract_new_tail(text, confirmed_text)
        if delta:
            logger.info(f"Final delta: '{delta}'")
        else:
            logger.info("No new text in final re-decode")
        return delta or None

    def reset_session(self) -> None:
        """Clear buffered audio, decoding context and the session language."""
        self.accumulator.reset()
        self.last_prompt = None
        self.session_language = None

    def clear_buffer(self) -> None:
        self.accumulator.reset()

    def shutdown(self) -> None:
        """Wait for in-flight work and release the backend."""
        logger.info("Shutting down transcription engine...")
        self.executor.shutdown(wait=True)
        self.loader.shutdown(wait=False)
        try:
            self.backend.cleanup()
        except Exception as e:
            logger.error(f"Error cleaning up {self.backend.service_name}: {e}")
        logger.info("Transcription engine shutdown completed")
