"""Event models for pub/sub audio processing architecture."""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np


@dataclass
class AudioEvent:
    """Captured audio buffer with metadata.

    Samples are mono float32 in the range [-1.0, 1.0].
    """
    samples: np.ndarray
    timestamp: float  # Unix timestamp when buffer was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    level: float = 0.0  # Normalized RMS level (0..1)
    final: bool = False  # True if this is the last buffer for the session
    chunk_duration_ms: Optional[int] = field(default=None)

    def __post_init__(self):
        """Calculate buffer duration if not provided."""
        if self.chunk_duration_ms is None:
            frames = len(self.samples) // max(self.channels, 1)
            self.chunk_duration_ms = int(frames * 1000 / self.sample_rate)
