"""
Command line client.

Usage:
    slides-worker path/to/video.mp4
    slides-worker path/to/video.mp4 --server http://localhost:8000 --output report.html

Extracts frames and audio locally, streams the analysis from the server,
and writes an HTML report (by default next to the video).
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import httpx

from .client import decompose_video, stream_process
from .config import WorkerConfig
from .errors import PipelineError
from .logging_setup import setup_logging
from .models import EventType
from .pipeline.transcribe import SENTINEL_PREFIX, transcription_sentinel
from .report import render_report_html

logger = logging.getLogger("slides_worker")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slides-worker",
        description="Extract a transcript and slide images from a video"
    )
    parser.add_argument("video", help="Path to video file")
    parser.add_argument("--server", help="Processing server URL (or set SLIDES_SERVER_URL)")
    parser.add_argument("--output", "-o", help="Report path (default: <video>.html beside the video)")
    parser.add_argument("--interval", type=int, help="Seconds between sampled frames")
    parser.add_argument("--max-frames", type=int, help="Maximum frames to submit")
    parser.add_argument("--timeout", type=float, default=300.0, help="Seconds to wait for the server")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = WorkerConfig.from_env()
    if args.interval is not None:
        config.FRAME_INTERVAL_SEC = args.interval
    if args.max_frames is not None:
        config.MAX_FRAMES_PER_RUN = args.max_frames
    server_url = args.server or config.SERVER_URL

    setup_logging(config.LOG_LEVEL, config.LOG_DIR)

    try:
        config.validate(require_api_key=False)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    video_path = Path(args.video).resolve()
    output_path = Path(args.output) if args.output else video_path.with_suffix(".html")

    print(f"Processing: {video_path.name}")

    try:
        print("Extracting frames and audio...")
        decomposed = decompose_video(str(video_path), config)
        payload = decomposed.to_request()
        if decomposed.audio_error:
            print(f"  Audio unavailable: {decomposed.audio_error}")
        print(f"  {len(payload['frames'])} frames sampled")

        print("Sending to server for analysis...")
        result = None
        for event in stream_process(server_url, payload, timeout=args.timeout):
            if event.type == EventType.PROGRESS:
                print(f"  {event.message}")
            elif event.type == EventType.COMPLETE:
                result = event.result
            else:
                print(f"Error: {event.message}", file=sys.stderr)
                return 1

    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Error: could not reach {server_url}: {e}", file=sys.stderr)
        return 1

    if result is None:
        print("Error: server closed the stream without a result", file=sys.stderr)
        return 1

    # The server only saw an empty payload; name the local capture failure instead
    if decomposed.audio_error and result.transcript.startswith(SENTINEL_PREFIX):
        result = replace(result, transcript=transcription_sentinel(f"audio capture failed: {decomposed.audio_error}"))

    output_path.write_text(render_report_html(result, title=video_path.stem), encoding="utf-8")

    print(f"Done! {len(result.slides)} slides. Report saved to: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
