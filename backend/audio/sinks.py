"""
Audio sinks for the synthesis socket.

- drain_to_writer: copy an async byte stream into a binary writer
- write_pcm16_wav: persist raw PCM16 as a WAV file
"""

from __future__ import annotations

import inspect
from typing import Any, AsyncIterable

import numpy as np
import soundfile as sf

from constants import AUDIO_CHANNELS


async def drain_to_writer(audio: AsyncIterable[bytes], writer: Any) -> int:
    """
    Write every chunk to writer in order.

    writer.write may be a plain or a coroutine function (or a
    StreamWriter, in which case drain() is awaited after each chunk).

    Returns:
        Total number of bytes written.
    """
    total = 0
    async for chunk in audio:
        result = writer.write(chunk)
        if inspect.isawaitable(result):
            await result
        drain = getattr(writer, "drain", None)
        if drain is not None:
            await drain()
        total += len(chunk)
    return total


def write_pcm16_wav(
    path: str,
    pcm_bytes: bytes,
    sample_rate_hz: int,
    channels: int = AUDIO_CHANNELS,
) -> None:
    """Write PCM16 little-endian bytes as a 16-bit WAV file."""
    if len(pcm_bytes) % 2 != 0:
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    samples = np.frombuffer(pcm_bytes, dtype="<i2")
    if channels > 1:
        samples = samples[: len(samples) - len(samples) % channels].reshape(-1, channels)

    sf.write(path, samples, sample_rate_hz, subtype="PCM_16", format="WAV")
