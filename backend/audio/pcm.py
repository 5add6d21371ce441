"""PCM conversion utilities."""
import numpy as np

from constants import AUDIO_SAMPLE_WIDTH_BYTES


def downmix_to_mono(samples: np.ndarray) -> np.ndarray:
    """Average a (frames, channels) array into one channel; 1-D input passes through."""
    if samples.ndim == 1:
        return samples
    return samples.mean(axis=1).astype(samples.dtype)


def pcm16_duration_s(num_bytes: int, sample_rate_hz: int, channels: int = 1) -> float:
    """Playback duration of num_bytes of PCM16 audio."""
    if sample_rate_hz <= 0 or channels <= 0:
        raise ValueError("sample_rate_hz and channels must be > 0")
    return num_bytes / (sample_rate_hz * channels * AUDIO_SAMPLE_WIDTH_BYTES)
