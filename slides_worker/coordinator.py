"""
Pipeline coordination and event streaming.

Runs one request through transcription and per-frame classification,
emitting progress events into a single-producer channel that the HTTP
layer drains. Every run ends with exactly one terminal event (complete or
error) and a closed channel, unless the consumer has already gone away.
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, List, Optional, Sequence

from .errors import ChannelClosed, InputMissing, MalformedInput
from .logging_setup import log_exception
from .models import Frame, PipelineResult, ProgressEvent, RunState, RunStats, Slide
from .pipeline.aggregate import aggregate
from .pipeline.transcribe import TranscriptionAdapter, SENTINEL_PREFIX
from .pipeline.vision import FrameClassifier
from .schemas import parse_run_request

logger = logging.getLogger("slides_worker")

_CLOSE = object()


class EventChannel:
    """Single-producer event channel between a coordinator and its consumer"""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.cancelled = False

    async def send(self, event: ProgressEvent) -> None:
        """Queue an event; raises ChannelClosed once the channel is closed or cancelled"""
        if self.closed:
            raise ChannelClosed("event channel is closed")
        await self._queue.put(event)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._queue.put(_CLOSE)

    def cancel(self) -> None:
        """Called by the consumer when it stops reading"""
        self.cancelled = True
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSE)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield item


class PipelineCoordinator:
    """Drives one run: transcribe, classify frames, aggregate, report"""

    def __init__(
        self,
        transcriber: TranscriptionAdapter,
        classifier: FrameClassifier,
        max_frames: int = 20,
        classify_concurrency: int = 1
    ):
        self.transcriber = transcriber
        self.classifier = classifier
        self.max_frames = max_frames
        self.classify_concurrency = max(1, classify_concurrency)
        self.state = RunState.IDLE
        self.stats = RunStats()

    async def run(self, payload: Any, channel: EventChannel) -> Optional[PipelineResult]:
        """
        Execute one run against a raw request body.

        Args:
            payload: Request body (JSON bytes/str or an already-parsed dict)
            channel: Channel receiving the run's events

        Returns:
            PipelineResult on completion, None if the run failed or was abandoned
        """
        if self.state != RunState.IDLE:
            raise RuntimeError("A coordinator executes exactly one run")

        start_time = time.time()

        try:
            request = parse_run_request(payload)
            self.stats.frames_submitted = len(request.frames)

            self.state = RunState.TRANSCRIBING_AUDIO
            await channel.send(ProgressEvent.progress("Transcribing audio..."))
            transcript = await self.transcriber.transcribe(request.audio)
            self.stats.transcript_degraded = transcript.startswith(SENTINEL_PREFIX)
            self.stats.stages_completed.append("transcribe")

            self.state = RunState.CLASSIFYING_FRAMES
            await channel.send(ProgressEvent.progress("Analyzing frames for slides..."))
            slides = await self._classify_frames(request.frames, channel)
            self.stats.stages_completed.append("classify")

            self.state = RunState.AGGREGATING
            result = aggregate(transcript, slides)
            self.stats.stages_completed.append("aggregate")

            await channel.send(ProgressEvent.complete(result))
            self.state = RunState.COMPLETE

            logger.info(
                f"Run completed in {time.time() - start_time:.2f}s: "
                f"{self.stats.slides_accepted}/{self.stats.frames_classified} frames accepted, "
                f"{self.stats.frames_dropped} dropped over cap"
            )
            return result

        except ChannelClosed:
            self.state = RunState.CANCELLED
            cause = "Client disconnected" if channel.cancelled else "Event channel closed"
            logger.warning(
                f"{cause}, abandoning run after {self.stats.frames_classified} classified frames "
                f"(stages done: {self._stages_done()})"
            )

        except (InputMissing, MalformedInput) as e:
            self.state = RunState.FAILED
            logger.warning(f"Rejected run request: {e}")
            await self._send_error(channel, str(e))

        except asyncio.CancelledError:
            self.state = RunState.CANCELLED
            logger.warning(f"Run cancelled by the transport (stages done: {self._stages_done()})")
            raise

        except Exception as e:
            log_exception(logger, f"Run failed while {self.state.value} (stages done: {self._stages_done()}): {e}")
            self.state = RunState.FAILED
            await self._send_error(channel, str(e) or "Processing failed")

        finally:
            await channel.close()

        return None

    def _stages_done(self) -> str:
        return ", ".join(self.stats.stages_completed) or "none"

    async def _send_error(self, channel: EventChannel, message: str) -> None:
        try:
            await channel.send(ProgressEvent.error(message))
        except ChannelClosed:
            logger.debug("Error event not delivered: client already disconnected")

    async def _classify_frames(self, frames: Sequence[Frame], channel: EventChannel) -> List[Slide]:
        """Classify up to max_frames frames; slides keep submission order"""
        capped = list(frames[:self.max_frames])
        self.stats.frames_dropped = len(frames) - len(capped)
        if self.stats.frames_dropped:
            logger.info(f"Dropping {self.stats.frames_dropped} frames beyond the cap of {self.max_frames}")

        if self.classify_concurrency > 1:
            verdicts = await self._classify_concurrently(capped, channel)
        else:
            verdicts = []
            for index, frame in enumerate(capped):
                verdicts.append(await self._classify_one(index, frame, len(capped), channel))

        slides = [Slide.from_frame(frame) for frame, accepted in zip(capped, verdicts) if accepted]
        self.stats.slides_accepted = len(slides)
        return slides

    async def _classify_concurrently(self, frames: List[Frame], channel: EventChannel) -> List[bool]:
        # Progress events are best-effort ordered here; verdicts stay indexed by frame
        semaphore = asyncio.Semaphore(self.classify_concurrency)

        async def classify_bounded(index: int, frame: Frame) -> bool:
            async with semaphore:
                return await self._classify_one(index, frame, len(frames), channel)

        tasks = [asyncio.ensure_future(classify_bounded(i, frame)) for i, frame in enumerate(frames)]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def _classify_one(self, index: int, frame: Frame, total: int, channel: EventChannel) -> bool:
        await channel.send(ProgressEvent.progress(f"Analyzing frame {index + 1}/{total}..."))
        accepted = await self.classifier.classify(frame.image)
        self.stats.frames_classified += 1
        logger.debug(f"Frame {index + 1}/{total} at {frame.timestamp}s: {'slide' if accepted else 'skipped'}")
        return accepted
