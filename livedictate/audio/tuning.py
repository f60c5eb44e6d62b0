"""Input tuning and level metering for captured audio."""

import numpy as np

from ..models.audio import CaptureSettings

MIN_GAIN = 0.1
MAX_GAIN = 6.0
MAX_NOISE_GATE = 0.2
LEVEL_FLOOR_DB = -55.0

WHISPER_MODE_SETTINGS = CaptureSettings(input_gain=2.2, noise_gate=0.004)
NORMAL_SETTINGS = CaptureSettings(input_gain=1.0, noise_gate=0.0)


def apply_input_tuning(samples: np.ndarray, gain: float, noise_gate: float) -> np.ndarray:
    """Boost, gate and clip float samples.

    Gain is clamped to [0.1, 6.0] and the gate to [0, 0.2]. Samples whose
    boosted magnitude is below the gate become silence; the result is
    clipped to [-1, 1].
    """
    samples = np.asarray(samples, dtype=np.float32)
    if samples.size == 0:
        return samples

    effective_gain = min(max(gain, MIN_GAIN), MAX_GAIN)
    gate = min(max(noise_gate, 0.0), MAX_NOISE_GATE)

    boosted = samples * np.float32(effective_gain)
    boosted[np.abs(boosted) < gate] = 0.0
    return np.clip(boosted, -1.0, 1.0)


def rms_level(samples: np.ndarray) -> float:
    """Perceptual input level in [0, 1]: -55 dB maps to 0, 0 dB to 1."""
    samples = np.asarray(samples, dtype=np.float32)
    if samples.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))
    db = 20.0 * np.log10(max(rms, 1e-6))
    return float(min(max((db - LEVEL_FLOOR_DB) / -LEVEL_FLOOR_DB, 0.0), 1.0))


def int16_to_float32(audio_chunk: bytes) -> np.ndarray:
    """Convert 16-bit PCM bytes to float32 samples in [-1, 1)."""
    return np.frombuffer(audio_chunk, dtype=np.int16).astype(np.float32) / 32768.0
