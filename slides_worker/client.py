"""
Client side of the pipeline.

Decomposes a local video into sampled frames and one audio payload, sends
them to the processing server and follows its event stream.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

import httpx

from .config import WorkerConfig
from .errors import CaptureUnavailable, DecodeError
from .models import AudioPayload, Frame, ProgressEvent, VideoAsset
from .pipeline.audio import extract_audio
from .pipeline.frames import sample_frames
from .pipeline.media import probe_video
from .pipeline.util import DEFAULT_AUDIO_MIME

logger = logging.getLogger("slides_worker")

SSE_PREFIX = "data: "


@dataclass
class DecomposedVideo:
    """Outputs of the two client-side stages; each may have failed on its own"""
    asset: VideoAsset
    frames: Optional[List[Frame]] = None
    audio: Optional[AudioPayload] = None
    frames_error: Optional[DecodeError] = None
    audio_error: Optional[CaptureUnavailable] = None

    def to_request(self) -> Dict[str, Any]:
        """
        Build the process endpoint body.

        Raises:
            DecodeError: if frame sampling failed (there is no frame set to send)
        """
        if self.frames_error is not None:
            raise self.frames_error

        # Without audio the run still goes ahead; the server reports an empty payload
        audio = self.audio or AudioPayload.from_bytes(b'', DEFAULT_AUDIO_MIME)

        return {
            'audioDataUrl': audio.data_url,
            'frames': [frame.to_dict() for frame in self.frames or []]
        }


def decompose_video(video_path: str, config: WorkerConfig) -> DecomposedVideo:
    """
    Sample frames and capture audio from one video concurrently.

    Each stage opens its own decoder on the asset. A failure in one stage
    is recorded on the result and does not stop the other.

    Raises:
        DecodeError: if the asset itself cannot be probed
    """
    asset = probe_video(video_path)
    decomposed = DecomposedVideo(asset=asset)

    with ThreadPoolExecutor(max_workers=2) as executor:
        frames_future = executor.submit(
            sample_frames,
            asset,
            interval_sec=config.FRAME_INTERVAL_SEC,
            max_frames=config.MAX_FRAMES_PER_RUN,
            image_format=config.FRAME_IMAGE_FORMAT,
            max_width=config.FRAME_MAX_WIDTH or None
        )
        audio_future = executor.submit(
            extract_audio,
            asset,
            grace_sec=config.AUDIO_TIMEOUT_GRACE_SEC
        )

        try:
            decomposed.frames = frames_future.result()
        except DecodeError as e:
            decomposed.frames_error = e

        try:
            decomposed.audio = audio_future.result()
        except CaptureUnavailable as e:
            logger.warning(f"Continuing without audio: {e}")
            decomposed.audio_error = e

    return decomposed


def iter_events(lines: Iterable[str]) -> Iterator[ProgressEvent]:
    """Parse server-sent event lines into ProgressEvents"""
    for line in lines:
        if not line.startswith(SSE_PREFIX):
            continue
        try:
            event = ProgressEvent.from_dict(json.loads(line[len(SSE_PREFIX):]))
        except (ValueError, KeyError) as e:
            logger.warning(f"Skipping unparseable event {line[:80]!r}: {e}")
            continue
        yield event


def stream_process(server_url: str, payload: Dict[str, Any], timeout: float = 300.0) -> Iterator[ProgressEvent]:
    """
    Submit a run to the server and yield its events as they arrive.

    Stops after the first terminal event.
    """
    url = f"{server_url.rstrip('/')}/api/process"
    with httpx.stream("POST", url, json=payload, timeout=timeout) as response:
        response.raise_for_status()
        for event in iter_events(response.iter_lines()):
            yield event
            if event.is_terminal:
                return
