"""Microphone capture: reads PCM from PyAudio and hands out tuned float32 buffers."""

import time
import logging
import threading
from typing import Optional, Callable, List, Dict, Any

import pyaudio

from ..models.audio import AudioStats, CaptureSettings
from ..models.events import AudioEvent
from .tuning import apply_input_tuning, rms_level, int16_to_float32

logger = logging.getLogger(__name__)

STOP_JOIN_TIMEOUT = 2.0


def check_microphone_available() -> bool:
    """Return True if the system exposes a default input device."""
    instance = pyaudio.PyAudio()
    try:
        instance.get_default_input_device_info()
        return True
    except (IOError, OSError):
        return False
    finally:
        instance.terminate()


def list_input_devices() -> List[Dict[str, Any]]:
    """List devices with at least one input channel."""
    instance = pyaudio.PyAudio()
    try:
        devices = []
        for index in range(instance.get_device_count()):
            info = instance.get_device_info_by_index(index)
            if info.get("maxInputChannels", 0) > 0:
                devices.append({"index": index, "name": info.get("name", f"device {index}")})
        return devices
    finally:
        instance.terminate()


class AudioCapture:
    """Reads the microphone on a background thread.

    Every buffer is converted to mono float32, run through the session's gain
    and noise gate, and passed to ``on_buffer`` as an ``AudioEvent``. One
    more buffer is read after a stop is requested; it is marked ``final``.
    """

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        input_device_index: Optional[int] = None,
    ):
        """Initialize microphone capture.

        Args:
            callback: Receives every AudioEvent, on the reader thread
            sample_rate: Capture rate; decoders expect 16 kHz
            chunk_size: Frames per PyAudio read
            channels: Input channels; anything above 1 is downmixed
            input_device_index: PyAudio device index, or None for the default input
        """
        self.on_buffer = callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.input_device_index = input_device_index
        self.settings = CaptureSettings()

        self.reader: Optional[threading.Thread] = None
        self.stop_event = threading.Event()
        self.is_recording = False

        self.started_at: Optional[float] = None
        self.total_chunks = 0
        self.last_level = 0.0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def start_recording(self, settings: Optional[CaptureSettings] = None) -> bool:
        """Open the input stream and start reading.

        Args:
            settings: Gain and noise gate for this session

        Returns:
            False if the input stream could not be opened
        """
        if self.is_recording:
            logger.warning("Capture already running")
            return True

        self.settings = settings or CaptureSettings()
        try:
            self._open_stream()
        except (IOError, OSError) as e:
            logger.error(f"🎤 Could not open input stream: {e}")
            self._close_stream()
            return False

        self.stop_event.clear()
        self.started_at = time.time()
        self.total_chunks = 0
        self.last_level = 0.0

        self.reader = threading.Thread(target=self._read_loop, name="MicrophoneReader", daemon=True)
        self.reader.start()
        self.is_recording = True
        logger.info(f"🎤 Capture started (gain={self.settings.input_gain}, gate={self.settings.noise_gate})")
        return True

    def stop_recording(self) -> None:
        """Ask the reader to finish and wait for it to close the stream."""
        if not self.is_recording:
            logger.debug("Capture not running")
            return

        self.stop_event.set()
        if self.reader and self.reader.is_alive():
            self.reader.join(timeout=STOP_JOIN_TIMEOUT)
            if self.reader.is_alive():
                logger.warning(f"Microphone reader still running after {STOP_JOIN_TIMEOUT}s")

        self.is_recording = False
        logger.info(f"🎤 Capture stopped after {self.total_chunks} buffers")

    def _open_stream(self) -> None:
        self.pyaudio_instance = pyaudio.PyAudio()
        self.stream = self.pyaudio_instance.open(
            format=pyaudio.paInt16,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.input_device_index,
            frames_per_buffer=self.chunk_size,
        )
        logger.debug(f"Input stream open: {self.sample_rate}Hz x{self.channels}, {self.chunk_size} frames/read")

    def _close_stream(self) -> None:
        if self.stream:
            self.stream.stop_stream()
            self.stream.close()
            self.stream = None
        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def _read_buffer(self, final: bool) -> None:
        pcm = self.stream.read(self.chunk_size, exception_on_overflow=False)
        samples = int16_to_float32(pcm)
        if self.channels > 1:
            samples = samples.reshape(-1, self.channels).mean(axis=1)

        tuned = apply_input_tuning(samples, self.settings.input_gain, self.settings.noise_gate)
        self.last_level = rms_level(tuned)
        self.total_chunks += 1

        self.on_buffer(AudioEvent(
            samples=tuned,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=1,
            level=self.last_level,
            final=final,
        ))

    def _read_loop(self) -> None:
        try:
            while not self.stop_event.is_set():
                self._read_buffer(final=False)
            # Audio spoken right before the stop is still in the device buffer
            self._read_buffer(final=True)
        except (IOError, OSError) as e:
            logger.error(f"🎤 Input stream read failed: {e}")
        finally:
            self._close_stream()

    def stats(self) -> AudioStats:
        elapsed = time.time() - self.started_at if self.started_at else 0.0
        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=elapsed,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            level=self.last_level,
        )

    def __del__(self):
        if self.is_recording:
            self.stop_recording()
