import asyncio
import base64
from typing import List, Optional, Sequence, Union

import pytest

from slides_worker.adapters.base import SpeechToTextAdapter, VisionJudgeAdapter
from slides_worker.coordinator import EventChannel, PipelineCoordinator
from slides_worker.pipeline.transcribe import TranscriptionAdapter
from slides_worker.pipeline.vision import FrameClassifier

AUDIO_DATA_URL = "data:audio/webm;base64," + base64.b64encode(b"fake-audio").decode()


def image_url(index: int) -> str:
    return "data:image/png;base64," + base64.b64encode(f"frame-{index}".encode()).decode()


def make_frames(count: int, interval: int = 5) -> List[dict]:
    return [{'timestamp': i * interval, 'dataUrl': image_url(i)} for i in range(count)]


def make_payload(frame_count: int = 3, audio: Optional[str] = AUDIO_DATA_URL) -> dict:
    payload = {'frames': make_frames(frame_count)}
    if audio is not None:
        payload['audioDataUrl'] = audio
    return payload


class FakeSpeechToText(SpeechToTextAdapter):
    def __init__(self, text: str = "hello world", error: Optional[Exception] = None, delay: float = 0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = []

    async def transcribe(self, audio: bytes, format_hint: str) -> str:
        self.calls.append((audio, format_hint))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


class FakeVisionJudge(VisionJudgeAdapter):
    """Answers from a script; an Exception entry is raised instead of returned"""

    def __init__(self, answers: Sequence[Union[str, Exception]] = (), default: str = "NO", delays: Sequence[float] = ()):
        self.answers = list(answers)
        self.default = default
        self.delays = list(delays)
        self.calls: List[str] = []

    async def judge(self, image: str, prompt: str) -> str:
        index = len(self.calls)
        self.calls.append(image)
        if index < len(self.delays) and self.delays[index]:
            await asyncio.sleep(self.delays[index])
        answer = self.answers[index] if index < len(self.answers) else self.default
        if isinstance(answer, Exception):
            raise answer
        return answer


def make_coordinator(speech=None, judge=None, max_frames=20, concurrency=1, timeout=5.0) -> PipelineCoordinator:
    return PipelineCoordinator(
        TranscriptionAdapter(speech or FakeSpeechToText(), timeout_sec=timeout),
        FrameClassifier(judge or FakeVisionJudge(), timeout_sec=timeout),
        max_frames=max_frames,
        classify_concurrency=concurrency
    )


def run_and_collect(coordinator: PipelineCoordinator, payload) -> list:
    """Run the coordinator to completion and return every event it emitted"""

    async def scenario():
        channel = EventChannel()
        events = []

        async def drain():
            async for event in channel:
                events.append(event)

        await asyncio.gather(coordinator.run(payload, channel), drain())
        return events

    return asyncio.run(scenario())


@pytest.fixture
def speech():
    return FakeSpeechToText()


@pytest.fixture
def judge():
    return FakeVisionJudge()
