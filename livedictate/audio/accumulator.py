"""Chunk accumulator for streaming transcription."""

import logging
import threading
from collections import deque
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class ChunkAccumulator:
    """Buffers captured samples and decides when a chunk is ready to decode.

    Two buffers are kept under one lock:

    - ``pending``: samples not yet sent to the decoder. On dispatch it is
      drained except for the last ``overlap_size`` samples, which seed the
      next chunk so words on a boundary are heard twice.
    - session audio: the most recent ``final_window_size`` samples of the
      whole session, used for the finalize pass.

    At most one chunk is in flight: while ``is_processing`` is set, new audio
    keeps buffering but nothing is dispatched.
    """

    def __init__(self,
                 chunk_size: int,
                 overlap_size: int,
                 minimum_final_size: int,
                 final_window_size: int):
        """Initialize accumulator.

        Args:
            chunk_size: Pending samples needed before a chunk is dispatched
            overlap_size: Samples carried over into the next chunk
            minimum_final_size: Shorter finalize windows are discarded
            final_window_size: Maximum samples re-decoded on finalize
        """
        if overlap_size >= chunk_size:
            raise ValueError("overlap_size must be smaller than chunk_size")
        self.chunk_size = chunk_size
        self.overlap_size = overlap_size
        self.minimum_final_size = minimum_final_size
        self.final_window_size = final_window_size

        self.lock = threading.Lock()
        self._pending = []
        self._pending_samples = 0
        self._session_audio = deque()
        self._session_samples = 0
        self.is_processing = False
        self.is_shutting_down = False

        logger.info(f"ChunkAccumulator initialized: chunk={chunk_size}, overlap={overlap_size}, "
                    f"final window={final_window_size} samples")

    @property
    def pending_samples(self) -> int:
        with self.lock:
            return self._pending_samples

    @property
    def session_samples(self) -> int:
        with self.lock:
            return self._session_samples

    def feed(self, samples: np.ndarray, allow_dispatch: bool = True) -> Optional[np.ndarray]:
        """Append captured samples; return a chunk if one should be decoded now.

        Args:
            samples: Mono float32 samples
            allow_dispatch: False while no decoder is available

        Returns:
            The chunk to decode, or None. The caller owns the chunk and must
            call ``mark_idle`` when its decode has finished.
        """
        if samples is None or len(samples) == 0:
            return None

        samples = np.asarray(samples, dtype=np.float32)
        with self.lock:
            self._pending.append(samples)
            self._pending_samples += len(samples)
            self._append_session_audio(samples)

            if (not allow_dispatch or self.is_processing or self.is_shutting_down
                    or self._pending_samples < self.chunk_size):
                return None

            chunk = np.concatenate(self._pending)
            if len(chunk) > self.overlap_size and self.overlap_size > 0:
                seed = chunk[-self.overlap_size:].copy()
                self._pending = [seed]
                self._pending_samples = len(seed)
            else:
                self._pending = []
                self._pending_samples = 0
            self.is_processing = True

        logger.debug(f"Dispatching chunk of {len(chunk)} samples")
        return chunk

    def _append_session_audio(self, samples: np.ndarray) -> None:
        self._session_audio.append(samples)
        self._session_samples += len(samples)
        # Drop whole buffers that fall entirely outside the finalize window
        while self._session_audio and \
                self._session_samples - len(self._session_audio[0]) >= self.final_window_size:
            dropped = self._session_audio.popleft()
            self._session_samples -= len(dropped)

    def mark_idle(self) -> None:
        """Signal that the in-flight chunk has finished decoding."""
        with self.lock:
            self.is_processing = False

    def prepare_for_finalize(self) -> None:
        """Stop dispatching chunks; remaining audio goes to the finalize pass."""
        with self.lock:
            self.is_shutting_down = True
        logger.debug("Accumulator preparing for finalize")

    def take_final_window(self) -> Optional[np.ndarray]:
        """Take the tail of the session audio and clear both buffers.

        Also clears the shutting-down flag so the next session can dispatch.

        Returns:
            Up to ``final_window_size`` samples, or None if less than
            ``minimum_final_size`` samples were captured.
        """
        with self.lock:
            if self._session_audio:
                audio = np.concatenate(list(self._session_audio))[-self.final_window_size:]
            else:
                audio = np.zeros(0, dtype=np.float32)
            self._clear_locked()

        if len(audio) < self.minimum_final_size:
            if len(audio):
                logger.info(f"Discarding short final audio: {len(audio)} samples")
            return None
        return audio

    def reset(self) -> None:
        """Clear all buffered audio. An in-flight chunk stays in flight."""
        with self.lock:
            self._clear_locked()

    def _clear_locked(self) -> None:
        self._pending = []
        self._pending_samples = 0
        self._session_audio.clear()
        self._session_samples = 0
        self.is_shutting_down = False
