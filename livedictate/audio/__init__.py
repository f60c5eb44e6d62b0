"""Audio buffering and processing module.

``capture`` is not imported here so the rest of the package works without
PyAudio installed.
"""

from .accumulator import ChunkAccumulator
from .audio_pub import AudioPublisher
from .tuning import apply_input_tuning, rms_level

__all__ = [
    'ChunkAccumulator',
    'AudioPublisher',
    'apply_input_tuning',
    'rms_level',
]
