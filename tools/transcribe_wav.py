# tools/transcribe_wav.py
# Run with backend on the path: PYTHONPATH=backend python tools/transcribe_wav.py ...
from __future__ import annotations

import argparse
import asyncio
import sys

from audio.frame_generator import split_pcm_into_chunks
from audio.sources import paced, read_wav_pcm16
from client import VoiceStreamingClient
from constants import STT_CHUNK_MS
from protocol.options import STTOptions, default_stt_options
from streaming.errors import StreamingError


async def _chunks(pcm: bytes, sample_rate_hz: int, chunk_ms: int):
    for chunk in split_pcm_into_chunks(
        pcm, sample_rate_hz=sample_rate_hz, chunk_ms=chunk_ms, keep_tail=True
    ):
        yield chunk


async def main() -> int:
    ap = argparse.ArgumentParser(description="Stream a WAV file to realtime STT and print transcripts.")
    ap.add_argument("--wav", required=True, help="Path to a PCM16 WAV (any rate; mixed down to mono)")
    ap.add_argument("--model", default=None, help="STT model id")
    ap.add_argument("--language", default="", help="Language hint (e.g. en)")
    ap.add_argument("--chunk-ms", type=int, default=STT_CHUNK_MS, help="Chunk duration in ms")
    ap.add_argument("--realtime", action="store_true", help="Pace chunks at real-time speed")
    ap.add_argument("--partials", action="store_true", help="Print partial transcripts too")
    args = ap.parse_args()

    pcm, sample_rate = read_wav_pcm16(args.wav)
    defaults = default_stt_options()
    options = STTOptions(
        model_id=args.model or defaults.model_id,
        language_code=args.language,
        sample_rate_hz=sample_rate,
        encoding=defaults.encoding,
        enable_partials=args.partials,
        enable_word_timestamps=defaults.enable_word_timestamps,
    )

    try:
        client = VoiceStreamingClient()
        conn = await client.websocket_stt.connect(options)
    except StreamingError as e:
        print(f"[stt] connect failed: {e}", file=sys.stderr)
        return 2

    chunks = _chunks(pcm, sample_rate, args.chunk_ms)
    if args.realtime:
        chunks = paced(chunks, args.chunk_ms / 1000.0)

    finals = 0
    async with conn:
        handle = conn.stream_audio(chunks)
        async for t in handle.output:
            if t.is_final:
                finals += 1
                print(t.text)
            elif args.partials:
                print(f"... {t.text}", file=sys.stderr)
        error = await handle.wait()

    if error is not None:
        print(f"[stt] stream failed: {error}", file=sys.stderr)
        return 1

    print(f"[stt] finals={finals}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
