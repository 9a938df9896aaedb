import os
import logging
from contextlib import contextmanager
from typing import Iterator

import cv2
import ffmpeg
import numpy as np

from ..errors import DecodeError
from ..models import VideoAsset

logger = logging.getLogger("slides_worker")


def probe_video(video_path: str) -> VideoAsset:
    """
    Read container metadata for a video file

    Returns:
        VideoAsset with duration, frame dimensions and audio presence

    Raises:
        DecodeError: if the file is missing or cannot be probed
    """
    if not os.path.exists(video_path):
        raise DecodeError(f"Video file not found: {video_path}")

    try:
        probe = ffmpeg.probe(video_path)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors='replace') if e.stderr else str(e)
        raise DecodeError(f"FFprobe failed for {video_path}: {stderr.strip()}")
    except (OSError, ValueError) as e:
        raise DecodeError(f"FFprobe failed for {video_path}: {e}")

    streams = probe.get('streams', [])
    video_stream = next((s for s in streams if s.get('codec_type') == 'video'), None)
    if video_stream is None:
        raise DecodeError(f"No video stream in {video_path}")

    has_audio = any(s.get('codec_type') == 'audio' for s in streams)

    duration = probe.get('format', {}).get('duration') or video_stream.get('duration') or 0
    try:
        duration = float(duration)
    except (TypeError, ValueError):
        duration = 0.0

    if duration <= 0:
        raise DecodeError(f"Could not determine duration of {video_path}")

    asset = VideoAsset(
        path=video_path,
        duration_sec=duration,
        width=int(video_stream.get('width', 0)),
        height=int(video_stream.get('height', 0)),
        has_audio=has_audio
    )

    logger.info(f"Probed {video_path}: {duration:.2f}s, {asset.width}x{asset.height}, audio={has_audio}")
    return asset


class VideoDecoder:
    """Seekable OpenCV decoder bound to one video asset"""

    def __init__(self, asset: VideoAsset):
        self.asset = asset
        self.capture = cv2.VideoCapture(asset.path)
        if not self.capture.isOpened():
            self.capture.release()
            raise DecodeError(f"Unable to open video: {asset.path}")

    def seek(self, seconds: float) -> None:
        """Position the decoder at the given time; returns once positioned"""
        if not self.capture.set(cv2.CAP_PROP_POS_MSEC, seconds * 1000.0):
            raise DecodeError(f"Seek to {seconds}s failed for {self.asset.path}")

    def read(self) -> np.ndarray:
        """Read the image at the current position (BGR)"""
        ok, image = self.capture.read()
        if not ok or image is None:
            position = self.capture.get(cv2.CAP_PROP_POS_MSEC) / 1000.0
            raise DecodeError(f"Failed to decode frame near {position:.2f}s in {self.asset.path}")
        return image

    def close(self) -> None:
        self.capture.release()


@contextmanager
def open_decoder(asset: VideoAsset) -> Iterator[VideoDecoder]:
    """Open a decoder for the asset and release it on every exit path"""
    decoder = VideoDecoder(asset)
    try:
        yield decoder
    finally:
        decoder.close()
