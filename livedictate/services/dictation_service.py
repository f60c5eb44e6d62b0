"""Dictation service: owns the transcript and drives recording sessions."""

import time
import queue
import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional, Protocol

from pubsub import pub

from ..config import DictationSettings
from ..models.audio import CaptureSettings
from ..models.model_phase import ModelPhase
from ..models.session import RecordingStartEvaluation
from ..models.transcription import SessionMetrics, TranscriptionChunkResult
from ..transcription.chatgpt_enhancer import TextEnhancer, TextEnhancerError
from ..transcription.coordinator import TranscriptionCoordinator
from ..transcription.editing import DictationEditingService
from ..transcription.engine import StreamingTranscriptionEngine
from ..transcription.publisher import PARTIAL_TOPIC, FINAL_TOPIC
from .model_lifecycle import ModelLifecycleCoordinator
from .recording_session import RecordingSessionCoordinator
from .text_sink import TextSink

logger = logging.getLogger(__name__)


class AudioSource(Protocol):
    def start_recording(self, settings: Optional[CaptureSettings] = None) -> bool: ...

    def stop_recording(self) -> None: ...


class DictationService:
    """Single owner of all dictation state.

    Confirmed/partial text, history, metrics, model phase and the recording
    flag are only touched on the service thread. Everything else (capture,
    decode results, the model loader, retry timers, public calls) posts a
    command onto ``commands`` and returns immediately.
    """

    def __init__(self,
                 settings: DictationSettings,
                 engine: StreamingTranscriptionEngine,
                 capture: AudioSource,
                 sink: TextSink,
                 enhancer: Optional[TextEnhancer] = None,
                 microphone_check: Optional[Callable[[], bool]] = None,
                 partial_topic: str = PARTIAL_TOPIC,
                 final_topic: str = FINAL_TOPIC):
        """Initialize dictation service.

        Args:
            settings: Pipeline settings
            engine: Streaming engine publishing to ``partial_topic``/``final_topic``
            capture: Audio source feeding the engine
            sink: Destination for dictated text
            enhancer: Optional AI enhancer applied when a session ends
            microphone_check: Returns False when no microphone is usable
            partial_topic: Pub/sub topic carrying interim text
            final_topic: Pub/sub topic carrying confirmed chunk text
        """
        self.settings = settings
        self.engine = engine
        self.capture = capture
        self.sink = sink
        self.enhancer = enhancer
        self.microphone_check = microphone_check or (lambda: True)
        self.partial_topic = partial_topic
        self.final_topic = final_topic

        self.coordinator = TranscriptionCoordinator(
            DictationEditingService(settings.history_limit), settings.polish_mode)
        self.session = RecordingSessionCoordinator()
        self.lifecycle = ModelLifecycleCoordinator()

        # Owned by the service thread
        self.confirmed_text = ""
        self.partial_text = ""
        self.metrics = SessionMetrics()
        self.model_phase = ModelPhase.idle()
        self.is_recording = False
        self.last_start_evaluation: Optional[RecordingStartEvaluation] = None

        self.session_completed = threading.Event()
        self.commands: "queue.Queue[Optional[tuple]]" = queue.Queue()
        self.worker: Optional[threading.Thread] = None

    # ----------------------------------------------------------------- lifecycle

    def start(self) -> None:
        """Start the service thread and subscribe to transcription topics."""
        if self.worker is not None:
            return
        pub.subscribe(self._on_partial_message, self.partial_topic)
        pub.subscribe(self._on_final_message, self.final_topic)
        self.worker = threading.Thread(target=self._run, name="DictationService", daemon=True)
        self.worker.start()
        logger.info("DictationService started")

    def shutdown(self, timeout: float = 10.0) -> None:
        """Stop the service thread after it drains pending commands."""
        if self.worker is None:
            return
        logger.info("Shutting down DictationService...")
        self.lifecycle.cancel()
        try:
            pub.unsubscribe(self._on_partial_message, self.partial_topic)
            pub.unsubscribe(self._on_final_message, self.final_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        self.commands.put(None)
        self.worker.join(timeout)
        if self.worker.is_alive():
            logger.warning("DictationService thread did not terminate cleanly")
        self.worker = None
        logger.info("DictationService shutdown complete")

    def _run(self) -> None:
        while True:
            command = self.commands.get()
            if command is None:
                self.commands.task_done()
                break
            func, args = command
            try:
                func(*args)
            except Exception as e:
                logger.error(f"Unhandled exception in {getattr(func, '__name__', func)}: {e}", exc_info=True)
            finally:
                self.commands.task_done()

    def post(self, func: Callable[..., Any], *args: Any) -> None:
        """Run ``func(*args)`` on the service thread."""
        self.commands.put((func, args))

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait until every command posted so far has run."""
        done = threading.Event()
        self.post(done.set)
        return done.wait(timeout)

    # ---------------------------------------------------------------- public API

    def request_start_recording(self) -> None:
        self.post(self._start_recording)

    def request_stop_recording(self) -> None:
        self.post(self._stop_recording)

    def request_model_warmup(self) -> None:
        self.post(self._ensure_model_warm)

    # ------------------------------------------------------------ pub/sub input

    def _on_partial_message(self, text: str) -> None:
        self.post(self._handle_partial, text)

    def _on_final_message(self, text: str, chunk_started_at: float) -> None:
        self.post(self._handle_final, text, chunk_started_at)

    def _on_phase_change(self, phase: ModelPhase) -> None:
        self.post(self._set_phase, phase)

    # ------------------------------------------------------------- model phase

    def _set_phase(self, phase: ModelPhase) -> None:
        if phase != self.model_phase:
            logger.info(f"Model phase: {self.model_phase} -> {phase}")
        self.model_phase = phase

    def _ensure_model_warm(self) -> None:
        started = self.lifecycle.ensure_model_warm_in_background(
            is_recording=self.is_recording,
            phase=self.model_phase,
            load=self._load_model_blocking,
        )
        if started:
            self._set_phase(ModelPhase.loading("starting"))

    def _load_model_blocking(self) -> None:
        """Runs on the loader thread."""
        loaded = self.engine.load_model(self.settings.model, self.settings.language, self._on_phase_change)
        self.post(self._on_model_load_finished, loaded)

    def _on_model_load_finished(self, loaded: bool) -> None:
        if loaded:
            self.lifecycle.consume_queued_recording_start_if_needed(
                is_recording=self.is_recording,
                start_recording=self._start_recording,
            )
            return

        self.lifecycle.schedule_warmup_retry_if_needed(
            is_recording=self.is_recording,
            on_retry=self._ensure_model_warm,
            retry_delay=self.settings.warmup_retry_delay,
            dispatch=self.post,
        )

    # ------------------------------------------------------------------- start

    def _start_recording(self) -> RecordingStartEvaluation:
        deferred = self.lifecycle.should_defer_recording_start(self.model_phase)
        evaluation = self.session.evaluate_start(
            is_recording=self.is_recording,
            deferred_by_model=deferred,
            needs_microphone=False,
            needs_accessibility=False,
        )
        self.last_start_evaluation = evaluation

        if evaluation is RecordingStartEvaluation.ALREADY_RECORDING:
            logger.info("Start ignored - already recording")
            return evaluation
        if evaluation is RecordingStartEvaluation.DEFERRED_BY_MODEL:
            if not self.model_phase.is_active:
                self._ensure_model_warm()
            logger.info("⏳ Start deferred - model loading in background")
            return evaluation

        # Permissions can change between the first check and the actual start
        evaluation = self.session.evaluate_start(
            is_recording=self.is_recording,
            deferred_by_model=False,
            needs_microphone=not self.microphone_check(),
            needs_accessibility=not self.sink.is_available(),
        )
        self.last_start_evaluation = evaluation
        if evaluation.is_blocked:
            logger.warning(f"⚠️ Start blocked: {evaluation.value}")
            self.lifecycle.clear_queued_recording_start()
            return evaluation

        self.session_completed.clear()
        self.confirmed_text = ""
        self.partial_text = ""
        self.session.begin_session(time.time())
        self.metrics.reset()
        self.engine.reset_session()
        self._apply(self.coordinator.reset_session())

        capture_settings = self.session.capture_settings(self.settings.whisper_mode)
        if not self.capture.start_recording(capture_settings):
            logger.error("⚠️ Start failed - audio capture could not start")
            self.session.reset_session_state()
            self.engine.clear_buffer()
            return evaluation

        self.is_recording = True
        self.lifecycle.clear_queued_recording_start()
        logger.info(f"▶️ Recording started (mode: {self.settings.mode.value})")
        return evaluation

    # -------------------------------------------------------------------- stop

    def _stop_recording(self) -> None:
        evaluation = self.session.stop_session(self.is_recording, self.settings.mode)
        if not evaluation.stopped:
            return

        self.is_recording = False
        self.engine.prepare_for_finalize()
        logger.info(f"⏹️ Recording stopped (confirmed: {len(self.confirmed_text)} chars)")

        threading.Thread(
            target=self._drain_capture,
            args=(evaluation.should_finalize_on_release,),
            name="StopSequence",
            daemon=True,
        ).start()

    def _drain_capture(self, finalize_on_release: bool) -> None:
        """Runs on a helper thread: let the last buffers arrive, then finalize."""
        time.sleep(self.settings.stop_grace_seconds)
        self.capture.stop_recording()
        self.engine.flush_processing()
        # Chunk results published during the flush are already queued ahead of this
        self.post(self._finalize, finalize_on_release)

    def _finalize(self, finalize_on_release: bool) -> None:
        future = self.engine.finalize(self.confirmed_text)
        future.add_done_callback(
            lambda f: self.post(self._complete_finalize, finalize_on_release, _result_or_none(f)))

    def _complete_finalize(self, finalize_on_release: bool, delta: Optional[str]) -> None:
        result = None
        if delta:
            now = time.time()
            result = self.coordinator.consume_final(
                delta,
                self.settings.mode,
                self.confirmed_text,
                self.session.recording_started_at,
                chunk_started_at=now,
                now=now,
            )
            self._apply(result)

        if finalize_on_release:
            polished = self.coordinator.finalized_on_release_text(self.confirmed_text, self.partial_text)
            if polished is None:
                self.session_completed.set()
                return
            if self._enhancement_enabled:
                self._enhance_in_background(polished, self._inject_on_release, fallback=polished)
            else:
                self._inject_on_release(polished)
            return

        if result is not None:
            self.sink.perform(result.action)

        full_text = self.confirmed_text.strip()
        if full_text and self._enhancement_enabled:
            self._enhance_in_background(full_text, self._copy_enhanced, fallback=None)
        else:
            self.session_completed.set()

    def _inject_on_release(self, text: str) -> None:
        self.sink.type_text(text, clipboard_after_injection=text)
        self.session_completed.set()

    def _copy_enhanced(self, text: Optional[str]) -> None:
        if text:
            self.sink.copy_to_clipboard(text)
            logger.info("Streaming: enhanced text copied to clipboard")
        self.session_completed.set()

    # ------------------------------------------------------------- enhancement

    @property
    def _enhancement_enabled(self) -> bool:
        return self.settings.enhancement_enabled and self.enhancer is not None

    def _enhance_in_background(self,
                               text: str,
                               on_done: Callable[[Optional[str]], None],
                               fallback: Optional[str]) -> None:
        language = self.engine.effective_language or self.settings.language

        def run():
            try:
                enhanced = asyncio.run(self.enhancer.enhance(text, language))
            except TextEnhancerError as e:
                logger.warning(f"Enhancement failed, using original: {e}")
                enhanced = fallback
            except Exception as e:
                logger.error(f"Unexpected enhancement error, using original: {e}", exc_info=True)
                enhanced = fallback
            self.post(on_done, enhanced)

        threading.Thread(target=run, name="TextEnhancer", daemon=True).start()

    # ------------------------------------------------------------------ chunks

    def _handle_partial(self, text: str) -> None:
        self._apply(self.coordinator.consume_partial(text, self.confirmed_text))

    def _handle_final(self, text: str, chunk_started_at: float) -> None:
        now = time.time()
        result = self.coordinator.consume_final(
            text,
            self.settings.mode,
            self.confirmed_text,
            self.session.recording_started_at,
            chunk_started_at,
            now,
        )
        self._apply(result)

        if result.metrics_text is not None and result.processing_ms is not None:
            self.metrics.register_chunk(
                result.metrics_text,
                result.processing_ms,
                self.session.recording_started_at,
                now,
            )

        self.sink.perform(result.action)

    def _apply(self, result: TranscriptionChunkResult) -> None:
        self.confirmed_text = result.confirmed_text
        self.partial_text = result.partial_text


def _result_or_none(future: "Future[Optional[str]]") -> Optional[str]:
    if future.cancelled():
        return None
    return future.result()
