"""
PCM chunk splitting utilities (pure).

Purpose:
- Cut a PCM16 blob (e.g. a WAV file's samples) into fixed-duration chunks
  for sending over the transcription socket.

Invariants:
- PCM16 signed, little-endian
- Mono unless channels says otherwise
- Chunk size = sample_rate_hz * chunk_ms / 1000 * channels * 2 bytes

Design:
- Pure functions only (no sockets, no timing, no IO).
- The trailing partial chunk is dropped unless keep_tail=True.
"""

from __future__ import annotations

from constants import (
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_WIDTH_BYTES,
    DEFAULT_STT_SAMPLE_RATE_HZ,
    STT_CHUNK_MS,
)


def bytes_per_chunk(
    *,
    sample_rate_hz: int = DEFAULT_STT_SAMPLE_RATE_HZ,
    chunk_ms: int = STT_CHUNK_MS,
    channels: int = AUDIO_CHANNELS,
    sample_width_bytes: int = AUDIO_SAMPLE_WIDTH_BYTES,
) -> int:
    """
    Size in bytes of one chunk.

    Raises:
        ValueError if any parameter is non-positive or the chunk is empty.
    """
    if sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be > 0")
    if chunk_ms <= 0:
        raise ValueError("chunk_ms must be > 0")
    if channels <= 0:
        raise ValueError("channels must be > 0")
    if sample_width_bytes <= 0:
        raise ValueError("sample_width_bytes must be > 0")

    samples_per_chunk = (sample_rate_hz * chunk_ms) // 1000
    size = samples_per_chunk * channels * sample_width_bytes
    if size <= 0:
        raise ValueError("bytes_per_chunk must be > 0")
    return size


def split_pcm_into_chunks(
    pcm_bytes: bytes,
    *,
    sample_rate_hz: int = DEFAULT_STT_SAMPLE_RATE_HZ,
    chunk_ms: int = STT_CHUNK_MS,
    channels: int = AUDIO_CHANNELS,
    sample_width_bytes: int = AUDIO_SAMPLE_WIDTH_BYTES,
    keep_tail: bool = False,
) -> list[bytes]:
    """
    Split raw PCM16 bytes into fixed-duration chunks.

    Returns:
        List of chunks, each exactly bytes_per_chunk() long, except the
        last one when keep_tail=True and the input does not divide evenly.

    Raises:
        ValueError if parameters are invalid.

    Notes:
        This function does NOT:
        - validate WAV headers (input must already be raw PCM)
        - resample audio
        - pad trailing audio
    """
    size = bytes_per_chunk(
        sample_rate_hz=sample_rate_hz,
        chunk_ms=chunk_ms,
        channels=channels,
        sample_width_bytes=sample_width_bytes,
    )

    if not pcm_bytes:
        return []

    whole = len(pcm_bytes) // size
    end = whole * size
    out = [pcm_bytes[offset : offset + size] for offset in range(0, end, size)]

    if keep_tail and end < len(pcm_bytes):
        out.append(pcm_bytes[end:])
    return out


def bytes_to_chunk_count(
    num_bytes: int,
    *,
    sample_rate_hz: int = DEFAULT_STT_SAMPLE_RATE_HZ,
    chunk_ms: int = STT_CHUNK_MS,
    channels: int = AUDIO_CHANNELS,
    sample_width_bytes: int = AUDIO_SAMPLE_WIDTH_BYTES,
) -> int:
    """
    Return the number of whole chunks represented by num_bytes.

    Drops any incomplete trailing chunk (floor division).
    """
    if num_bytes <= 0:
        return 0

    return num_bytes // bytes_per_chunk(
        sample_rate_hz=sample_rate_hz,
        chunk_ms=chunk_ms,
        channels=channels,
        sample_width_bytes=sample_width_bytes,
    )
