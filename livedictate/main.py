"""Main application entry point for LiveDictate."""

import sys
import time
import argparse
import logging
from pathlib import Path

from pubsub import pub

from livedictate import __version__
from livedictate.audio.accumulator import ChunkAccumulator
from livedictate.audio.audio_pub import AudioPublisher, AUDIO_TOPIC
from livedictate.audio.capture import AudioCapture, check_microphone_available, list_input_devices
from livedictate.models.transcription import TranscriptionMode
from livedictate.services.dictation_service import DictationService
from livedictate.services.model_lifecycle import ModelLifecycleCoordinator
from livedictate.services.text_sink import ConsoleTextSink
from livedictate.transcription.base import AbstractTranscriptionBackend, BackendConfigurationError
from livedictate.transcription.chatgpt_enhancer import ChatGPTTextEnhancer
from livedictate.transcription.engine import StreamingTranscriptionEngine
from livedictate.transcription.publisher import TranscriptionPublisher

from .config import LiveDictateConfig, DictationSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "livedictate.yaml"
MODEL_READY_TIMEOUT = 180.0


def create_backend(config: LiveDictateConfig, settings: DictationSettings) -> AbstractTranscriptionBackend:
    """Build the transcription backend selected in the configuration."""
    if settings.backend == "google":
        from livedictate.transcription.google_backend import GoogleSpeechBackend
        return GoogleSpeechBackend(
            credentials_path=config.get_google_credentials_path(),
            sample_rate=settings.sample_rate,
            language=config.get('google_cloud.language', 'en-US'),
            use_enhanced=config.get('google_cloud.use_enhanced', True),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
            model=config.get('google_cloud.model', 'latest_short'),
        )

    from livedictate.transcription.whisper_backend import WhisperLocalBackend
    return WhisperLocalBackend(
        models_directory=config.get('whisper.models_directory', 'data/models'),
        sample_rate=settings.sample_rate,
        device=config.get('whisper.device', 'cpu'),
        compute_type=config.get('whisper.compute_type', 'int8'),
    )


def select_whisper_model(lifecycle: ModelLifecycleCoordinator, selected: str, models_directory: str) -> str:
    """Fix up the configured Whisper model against what is already downloaded."""
    from livedictate.transcription.whisper_backend import (
        DEFAULT_MODEL_ID, QUALITY_PRIORITY, WHISPER_MODEL_IDS)

    model_id = lifecycle.normalized_selected_model(selected, WHISPER_MODEL_IDS, DEFAULT_MODEL_ID)
    downloaded = lifecycle.downloaded_model_ids(WHISPER_MODEL_IDS, Path(models_directory))
    resolved = lifecycle.resolved_model_selection(
        model_id, downloaded, DEFAULT_MODEL_ID, list(QUALITY_PRIORITY))
    if resolved != selected:
        logger.info(f"Whisper model '{selected}' resolved to '{resolved}'")
    return resolved


class Server:

    def __init__(self, config_path: str, log_level: str = None, mode: str = None):
        # Load configuration
        self.config = LiveDictateConfig(config_path or DEFAULT_CONFIG_PATH)
        # Set up logging (command line overrides config)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        if mode:
            self.config.set('transcription.mode', mode)
        self.settings = DictationSettings.from_config(self.config)
        self.should_exit = False
        self.cleaned_up = False

    def init(self):
        logger.info("Initializing services...")
        settings = self.settings
        logger.info(f"Audio settings: {settings.sample_rate}Hz, "
                    f"{settings.capture_chunk_size} samples/read, "
                    f"{settings.chunk_seconds}s chunks ({settings.overlap_seconds}s overlap)")

        self.transcription_publisher = TranscriptionPublisher()
        self.engine = StreamingTranscriptionEngine(
            backend=create_backend(self.config, settings),
            accumulator=ChunkAccumulator(
                chunk_size=settings.chunk_size,
                overlap_size=settings.overlap_size,
                minimum_final_size=settings.minimum_final_size,
                final_window_size=settings.final_window_size,
            ),
            on_partial=self.transcription_publisher.publish_partial,
            on_final=self.transcription_publisher.publish_final,
            model_load_timeout=settings.model_load_timeout,
        )

        self.audio_publisher = AudioPublisher(AUDIO_TOPIC)
        self.audio_capture = AudioCapture(
            callback=self.audio_publisher.publish_audio_event,
            sample_rate=settings.sample_rate,
            chunk_size=settings.capture_chunk_size,
            channels=self.config.get('audio.channels', 1),
            input_device_index=self.config.get('audio.input_device_index'),
        )
        pub.subscribe(self.engine.on_audio_event, AUDIO_TOPIC)

        enhancer = None
        if settings.enhancement_enabled:
            enhancer = ChatGPTTextEnhancer(
                api_key=settings.openai_api_key,
                model=settings.enhancement_model,
                timeout=settings.enhancement_timeout,
            )

        self.sink = ConsoleTextSink()
        self.dictation_service = DictationService(
            settings=settings,
            engine=self.engine,
            capture=self.audio_capture,
            sink=self.sink,
            enhancer=enhancer,
            microphone_check=check_microphone_available,
        )
        if settings.backend == "whisper":
            settings.model = select_whisper_model(
                self.dictation_service.lifecycle,
                settings.model,
                self.config.get('whisper.models_directory', 'data/models'),
            )
        self.dictation_service.start()

    def wait_for_model(self, timeout: float = MODEL_READY_TIMEOUT) -> bool:
        """Warm the model and wait until it is ready or has failed."""
        self.dictation_service.request_model_warmup()
        deadline = time.time() + timeout
        while time.time() < deadline:
            phase = self.dictation_service.model_phase
            if phase.is_ready:
                return True
            if phase.error_message is not None:
                print(f"❌ Model failed to load: {phase.error_message}")
                return False
            time.sleep(0.2)
        print("❌ Timed out waiting for the model")
        return False

    def run(self, duration: int):
        try:
            if not self.wait_for_model():
                return
            self.dictation_service.request_start_recording()
            print(f"🎙️ Dictating for {duration}s ({self.settings.mode.value})...")
            if duration:
                time.sleep(duration)
            else:
                while not self.should_exit:
                    time.sleep(1)
            self.dictation_service.request_stop_recording()
            self.dictation_service.session_completed.wait(self.settings.enhancement_timeout + 30)
        except Exception as e:
            logger.error(f"Error in run: {e}")
        finally:
            self.cleanup()

    def cleanup(self):
        if self.cleaned_up:
            return
        self.cleaned_up = True
        try:
            pub.unsubscribe(self.engine.on_audio_event, AUDIO_TOPIC)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        self.audio_capture.stop_recording()
        self.dictation_service.shutdown()
        self.engine.shutdown()

        print()
        metrics = self.dictation_service.metrics
        logger.info(f"Session metrics: {metrics}")
        self.sink.show_clipboard()
        print(f"Chunks: {metrics.chunk_count}, characters: {metrics.total_characters}, "
              f"avg chunk time: {metrics.average_chunk_processing_ms}ms")


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/livedictate.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info("LiveDictate starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for LiveDictate."""
    parser = argparse.ArgumentParser(
        description="LiveDictate - Live speech-to-text dictation",
    )

    parser.add_argument(
        "--config",
        type=str,
        help=f"Path to configuration YAML file (default: {DEFAULT_CONFIG_PATH})"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in TranscriptionMode],
        help="Deliver text while speaking (streaming) or once at the end (on_release)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Recording duration in seconds (default: 10)"
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio input devices and exit"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"LiveDictate v{__version__}"
    )

    args = parser.parse_args()

    if args.list_devices:
        for device in list_input_devices():
            print(f"{device['index']:>3}  {device['name']}")
        return

    try:
        server = Server(args.config, args.log_level, args.mode)
        server.init()
    except (FileNotFoundError, ValueError, BackendConfigurationError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    try:
        server.run(args.duration)
    except KeyboardInterrupt:
        server.cleanup()
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
