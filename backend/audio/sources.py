"""
Audio sources for the transcription socket.

- read_wav_pcm16: decode an audio file into mono PCM16LE bytes
- iter_reader_chunks: async chunks from any binary reader
  (a file object or an asyncio.StreamReader)
- paced: replay chunks at real-time speed
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, AsyncIterable, AsyncIterator

import soundfile as sf

from audio.pcm import downmix_to_mono


def read_wav_pcm16(path: str) -> tuple[bytes, int]:
    """
    Read an audio file as mono PCM16 little-endian.

    Returns:
        (pcm_bytes, sample_rate_hz)

    No resampling: callers announce the returned rate in STTOptions.
    """
    samples, sample_rate = sf.read(path, dtype="int16", always_2d=False)
    samples = downmix_to_mono(samples)
    return samples.astype("<i2").tobytes(), int(sample_rate)


async def iter_reader_chunks(reader: Any, chunk_bytes: int) -> AsyncIterator[bytes]:
    """
    Yield chunk_bytes-sized reads from a binary reader until EOF.

    reader.read may be a plain or a coroutine function. The last chunk may
    be shorter.
    """
    if chunk_bytes <= 0:
        raise ValueError("chunk_bytes must be > 0")

    while True:
        data = reader.read(chunk_bytes)
        if inspect.isawaitable(data):
            data = await data
        if not data:
            return
        yield bytes(data)


async def paced(
    chunks: AsyncIterable[bytes],
    chunk_duration_s: float,
) -> AsyncIterator[bytes]:
    """
    Re-yield chunks no faster than one per chunk_duration_s.

    The schedule is anchored to the first chunk, so slow consumers do not
    accumulate drift.
    """
    start = time.monotonic()
    index = 0
    async for chunk in chunks:
        delay = start + index * chunk_duration_s - time.monotonic()
        if delay > 0:
            await asyncio.sleep(delay)
        index += 1
        yield chunk
