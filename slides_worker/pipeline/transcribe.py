import asyncio
import logging

from ..adapters.base import SpeechToTextAdapter
from ..errors import AdapterFailure
from ..models import AudioPayload

logger = logging.getLogger("slides_worker")


SENTINEL_PREFIX = "[Transcription unavailable: "


def transcription_sentinel(reason: str) -> str:
    """Placeholder transcript recording why transcription was unavailable"""
    return f"{SENTINEL_PREFIX}{reason}]"


class TranscriptionAdapter:
    """Converts an audio payload into a transcript, degrading to a sentinel on failure"""

    def __init__(self, backend: SpeechToTextAdapter, timeout_sec: float = 60.0):
        self.backend = backend
        self.timeout_sec = timeout_sec

    async def transcribe(self, audio: AudioPayload) -> str:
        """
        Transcribe the audio payload. Never raises.

        Returns:
            The transcript text, or a bracketed sentinel containing the
            failure reason
        """
        try:
            try:
                audio_bytes = audio.decode()
            except ValueError as e:
                raise AdapterFailure(f"malformed audio payload: {e}")

            if not audio_bytes:
                raise AdapterFailure("empty audio payload")

            logger.info(f"Transcribing {len(audio_bytes)} bytes of {audio.format_hint} audio")

            text = await asyncio.wait_for(
                self.backend.transcribe(audio_bytes, audio.format_hint),
                timeout=self.timeout_sec
            )

        except asyncio.TimeoutError:
            reason = f"timed out after {self.timeout_sec:g}s"
        except Exception as e:
            reason = str(e) or type(e).__name__
        else:
            logger.info(f"Transcription completed: {len(text)} characters")
            return text

        logger.warning(f"Transcription failed, using placeholder: {reason}")
        return transcription_sentinel(reason)
