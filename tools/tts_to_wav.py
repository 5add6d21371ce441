# tools/tts_to_wav.py
# Run with backend on the path: PYTHONPATH=backend python tools/tts_to_wav.py ...
from __future__ import annotations

import argparse
import asyncio
import sys

from client import VoiceStreamingClient
from constants import DEFAULT_TTS_OUTPUT_FORMAT, PCM_OUTPUT_FORMATS
from protocol.options import TTSOptions, VoiceSettings, default_tts_options
from audio.pcm import pcm16_duration_s
from audio.sinks import write_pcm16_wav
from streaming.errors import StreamingError


def _sample_rate_for(output_format: str) -> int:
    # pcm_<rate>
    return int(output_format.split("_", 1)[1])


async def _read_lines(path: str | None):
    if path is None:
        lines = sys.stdin.read().splitlines()
    else:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    for line in lines:
        if line.strip():
            yield line + " "


async def main() -> int:
    ap = argparse.ArgumentParser(description="Stream text lines to TTS and save the audio as WAV.")
    ap.add_argument("--voice", required=True, help="Voice ID")
    ap.add_argument("--out", required=True, help="Output WAV path")
    ap.add_argument("--text-file", default=None, help="Text file (default: stdin)")
    ap.add_argument("--model", default=None, help="TTS model id")
    ap.add_argument(
        "--format",
        default=DEFAULT_TTS_OUTPUT_FORMAT,
        choices=sorted(PCM_OUTPUT_FORMATS),
        help="PCM output format",
    )
    ap.add_argument("--stability", type=float, default=None)
    ap.add_argument("--similarity-boost", type=float, default=None)
    args = ap.parse_args()

    defaults = default_tts_options()
    voice_settings = None
    if args.stability is not None or args.similarity_boost is not None:
        voice_settings = VoiceSettings(
            stability=args.stability if args.stability is not None else 0.5,
            similarity_boost=args.similarity_boost if args.similarity_boost is not None else 0.75,
        )
    options = TTSOptions(
        model_id=args.model or defaults.model_id,
        output_format=args.format,
        voice_settings=voice_settings,
        optimize_streaming_latency=defaults.optimize_streaming_latency,
    )

    try:
        client = VoiceStreamingClient()
        conn = await client.websocket_tts.connect(args.voice, options)
    except StreamingError as e:
        print(f"[tts] connect failed: {e}", file=sys.stderr)
        return 2

    pcm = bytearray()
    async with conn:
        handle = conn.stream_text(_read_lines(args.text_file))
        async for chunk in handle.output:
            pcm.extend(chunk)
        error = await handle.wait()

    if error is not None:
        print(f"[tts] stream failed: {error}", file=sys.stderr)
        return 1

    sample_rate = _sample_rate_for(args.format)
    write_pcm16_wav(args.out, bytes(pcm), sample_rate)
    duration_s = pcm16_duration_s(len(pcm), sample_rate)
    print(f"[tts] wrote {len(pcm)} bytes ({duration_s:.2f}s) to {args.out}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
