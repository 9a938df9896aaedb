import io
import logging
from typing import List, Optional, Callable, ContextManager

import cv2
import numpy as np
from PIL import Image

from ..errors import DecodeError
from ..models import Frame, VideoAsset
from .media import open_decoder, VideoDecoder
from .util import encode_data_url

logger = logging.getLogger("slides_worker")

DecoderFactory = Callable[[VideoAsset], ContextManager[VideoDecoder]]

_PIL_FORMATS = {
    'jpeg': ('JPEG', 'image/jpeg'),
    'png': ('PNG', 'image/png'),
}


def sample_frames(
    asset: VideoAsset,
    interval_sec: int = 5,
    max_frames: Optional[int] = None,
    decoder_factory: DecoderFactory = open_decoder,
    image_format: str = "jpeg",
    max_width: Optional[int] = None
) -> List[Frame]:
    """
    Capture a still image every interval_sec seconds, from 0 up to (not
    including) the asset's duration.

    Returns:
        Frames ordered by timestamp

    Raises:
        DecodeError: if the decoder fails at any point; frames captured so
            far are discarded
    """
    if interval_sec <= 0:
        raise ValueError("interval_sec must be positive")

    frames: List[Frame] = []

    logger.info(f"Sampling frames from {asset.path} every {interval_sec}s ({asset.duration_sec:.2f}s total)")

    try:
        with decoder_factory(asset) as decoder:
            target = 0
            while target < asset.duration_sec:
                if max_frames is not None and len(frames) >= max_frames:
                    logger.info(f"Frame cap of {max_frames} reached at {target}s")
                    break

                decoder.seek(target)
                image = decoder.read()

                frames.append(Frame(
                    timestamp=target,
                    image=encode_frame_image(image, image_format, max_width)
                ))
                logger.debug(f"Captured frame at {target}s")

                target += interval_sec

    except DecodeError as e:
        logger.error(f"Frame sampling failed for {asset.path}: {e}")
        raise
    except Exception as e:
        error_msg = f"Frame sampling failed for {asset.path}: {e}"
        logger.error(error_msg)
        raise DecodeError(error_msg) from e

    logger.info(f"Sampled {len(frames)} frames from {asset.path}")
    return frames


def encode_frame_image(image: np.ndarray, image_format: str = "jpeg", max_width: Optional[int] = None) -> str:
    """Encode a BGR image as a data URL, downscaling to max_width if wider"""
    pil_format, mime_type = _PIL_FORMATS[image_format]

    rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    img = Image.fromarray(rgb)

    if max_width and img.width > max_width:
        height = max(1, round(img.height * max_width / img.width))
        img = img.resize((max_width, height), Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    if pil_format == 'JPEG':
        img.save(buffer, format=pil_format, quality=85)
    else:
        img.save(buffer, format=pil_format)

    return encode_data_url(buffer.getvalue(), mime_type)
