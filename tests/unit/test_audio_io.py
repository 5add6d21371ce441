# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import io
import time

import numpy as np
import pytest
import soundfile as sf

from audio.pcm import downmix_to_mono, pcm16_duration_s
from audio.sinks import drain_to_writer, write_pcm16_wav
from audio.sources import iter_reader_chunks, paced, read_wav_pcm16


def test_downmix_and_duration() -> None:
    stereo = np.array([[100, 300], [-100, -300]], dtype=np.int16)
    assert downmix_to_mono(stereo).tolist() == [200, -200]
    assert pcm16_duration_s(32000, 16000) == pytest.approx(1.0)


def test_wav_write_then_read(tmp_path) -> None:
    pcm = np.arange(-800, 800, 10, dtype="<i2").tobytes()
    path = str(tmp_path / "out.wav")

    write_pcm16_wav(path, pcm, 16000)
    data, rate = read_wav_pcm16(path)

    assert rate == 16000
    assert data == pcm
    assert sf.info(path).subtype == "PCM_16"


def test_stereo_wav_is_mixed_down(tmp_path) -> None:
    path = str(tmp_path / "stereo.wav")
    stereo = np.array([[1000, 3000]] * 10, dtype=np.int16)
    sf.write(path, stereo, 8000, subtype="PCM_16")

    data, rate = read_wav_pcm16(path)

    assert rate == 8000
    assert np.frombuffer(data, dtype="<i2").tolist() == [2000] * 10


@pytest.mark.asyncio
async def test_iter_reader_chunks_from_file_object() -> None:
    reader = io.BytesIO(b"abcdefghij")
    chunks = [c async for c in iter_reader_chunks(reader, 4)]
    assert chunks == [b"abcd", b"efgh", b"ij"]


@pytest.mark.asyncio
async def test_iter_reader_chunks_from_stream_reader() -> None:
    reader = asyncio.StreamReader()
    reader.feed_data(b"hello world")
    reader.feed_eof()

    chunks = [c async for c in iter_reader_chunks(reader, 5)]

    assert b"".join(chunks) == b"hello world"


@pytest.mark.asyncio
async def test_drain_to_writer_preserves_order() -> None:
    async def source():
        for chunk in (b"one", b"two", b"three"):
            yield chunk

    sink = io.BytesIO()
    total = await drain_to_writer(source(), sink)

    assert total == 11
    assert sink.getvalue() == b"onetwothree"


@pytest.mark.asyncio
async def test_paced_spaces_chunks() -> None:
    async def source():
        for i in range(3):
            yield bytes([i])

    start = time.monotonic()
    out = [c async for c in paced(source(), 0.02)]
    elapsed = time.monotonic() - start

    assert out == [b"\x00", b"\x01", b"\x02"]
    assert elapsed >= 0.035
