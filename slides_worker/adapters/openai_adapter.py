"""
OpenAI implementations of the speech-to-text and vision adapters.

Uses Whisper for transcription and a vision-capable chat model for
per-frame judgments. Both clients carry a per-call timeout.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from .base import SpeechToTextAdapter, VisionJudgeAdapter

logger = logging.getLogger("slides_worker")


class OpenAISpeechToTextAdapter(SpeechToTextAdapter):
    """Whisper implementation of speech-to-text"""

    def __init__(self, model: str = "whisper-1", timeout: float = 60.0, client: Optional[AsyncOpenAI] = None):
        self.model = model
        self.client = client or AsyncOpenAI(timeout=timeout, max_retries=0)

    async def transcribe(self, audio: bytes, format_hint: str) -> str:
        logger.debug(f"Sending {len(audio)} bytes of {format_hint} audio to {self.model}")

        transcription = await self.client.audio.transcriptions.create(
            model=self.model,
            file=(f"audio.{format_hint}", audio),
            response_format="text"
        )

        # response_format="text" yields a bare string
        if isinstance(transcription, str):
            return transcription
        return getattr(transcription, 'text', '') or ''


class OpenAIVisionJudgeAdapter(VisionJudgeAdapter):
    """Chat-completions implementation of the vision judge"""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        max_tokens: int = 10,
        client: Optional[AsyncOpenAI] = None
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or AsyncOpenAI(timeout=timeout, max_retries=0)

    async def judge(self, image: str, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": prompt
                        },
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": image
                            }
                        }
                    ]
                }
            ],
            max_tokens=self.max_tokens
        )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
