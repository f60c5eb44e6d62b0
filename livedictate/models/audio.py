"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    level: float = 0.0  # Last normalized input level (0..1)


@dataclass(frozen=True)
class CaptureSettings:
    """Input tuning applied to every captured buffer."""
    input_gain: float = 1.0
    noise_gate: float = 0.0
