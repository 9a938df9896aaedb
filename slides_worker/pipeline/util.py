import base64
import binascii
import re
from typing import Tuple


DEFAULT_AUDIO_MIME = "audio/mpeg"

_DATA_URL_RE = re.compile(r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*?);base64,(?P<data>.*)$', re.DOTALL)

# Whisper picks the decoder from the upload's file extension
_AUDIO_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/webm": "webm",
    "video/webm": "webm",
    "audio/ogg": "ogg",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/flac": "flac",
}


def encode_data_url(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URL"""
    encoded = base64.b64encode(data).decode('ascii')
    return f"data:{mime_type};base64,{encoded}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """
    Decode a base64 data URL.

    Returns:
        Tuple of (mime_type, raw_bytes)

    Raises:
        ValueError: if the string is not a base64 data URL
    """
    if not isinstance(data_url, str):
        raise ValueError("data URL must be a string")

    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ValueError("not a base64 data URL")

    mime_type = match.group('mime') or "application/octet-stream"
    try:
        data = base64.b64decode(match.group('data'), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid base64 payload: {e}")

    return mime_type, data


def data_url_mime_type(data_url: str) -> str:
    """Get the MIME type of a data URL without decoding its payload"""
    match = _DATA_URL_RE.match(data_url.strip()) if isinstance(data_url, str) else None
    if not match or not match.group('mime'):
        return "application/octet-stream"
    return match.group('mime')


def audio_extension(mime_type: str) -> str:
    """Map an audio MIME type to the file extension expected by speech-to-text"""
    base = mime_type.split(';', 1)[0].strip().lower()
    if base in _AUDIO_EXTENSIONS:
        return _AUDIO_EXTENSIONS[base]
    subtype = base.split('/', 1)[-1]
    return subtype or "mp3"


def format_timecode(seconds: float) -> str:
    """Format seconds as HH:MM:SS"""
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
