"""
Abstract base classes for the external analysis services.

Defines the narrow interface the pipeline consumes, enabling easy
swapping between speech-to-text and vision providers (OpenAI, local
models, test fakes).
"""

from abc import ABC, abstractmethod


class SpeechToTextAdapter(ABC):
    """Abstract base class for speech-to-text services"""

    @abstractmethod
    async def transcribe(self, audio: bytes, format_hint: str) -> str:
        """
        Convert encoded audio into plain text.

        Args:
            audio: Encoded audio bytes
            format_hint: Container/codec hint such as "mp3" or "webm"

        Returns:
            Transcribed text

        Raises:
            Any exception on service failure
        """
        pass


class VisionJudgeAdapter(ABC):
    """Abstract base class for vision-capable judgment services"""

    @abstractmethod
    async def judge(self, image: str, prompt: str) -> str:
        """
        Ask a question about one image.

        Args:
            image: Encoded still image, as a data URL
            prompt: Question constraining the answer

        Returns:
            Short free-text answer

        Raises:
            Any exception on service failure
        """
        pass
