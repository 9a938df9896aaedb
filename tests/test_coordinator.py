import asyncio
import json

import pytest

from slides_worker.coordinator import EventChannel
from slides_worker.errors import ChannelClosed
from slides_worker.models import EventType, RunState

from conftest import (
    AUDIO_DATA_URL, FakeSpeechToText, FakeVisionJudge, image_url, make_coordinator,
    make_payload, run_and_collect,
)


def _types(events):
    return [event.type for event in events]


def test_end_to_end_keeps_accepted_frames_in_order():
    judge = FakeVisionJudge(["YES", "NO", "YES"])
    coordinator = make_coordinator(speech=FakeSpeechToText("the lecture text"), judge=judge)

    events = run_and_collect(coordinator, make_payload(3))

    assert _types(events)[-1] == EventType.COMPLETE
    result = events[-1].result
    assert result.transcript == "the lecture text"
    assert [slide.timestamp for slide in result.slides] == [0, 10]
    assert [slide.image for slide in result.slides] == [image_url(0), image_url(2)]
    assert coordinator.state == RunState.COMPLETE


def test_progress_events_follow_stage_order():
    events = run_and_collect(make_coordinator(), make_payload(2))

    assert [event.message for event in events[:-1]] == [
        "Transcribing audio...",
        "Analyzing frames for slides...",
        "Analyzing frame 1/2...",
        "Analyzing frame 2/2...",
    ]
    assert sum(event.is_terminal for event in events) == 1


def test_frames_beyond_cap_are_never_classified():
    judge = FakeVisionJudge(default="YES")
    coordinator = make_coordinator(judge=judge)

    events = run_and_collect(coordinator, make_payload(25))

    assert len(judge.calls) == 20
    assert judge.calls == [image_url(i) for i in range(20)]
    slides = events[-1].result.slides
    assert len(slides) == 20
    assert max(slide.timestamp for slide in slides) == 95
    assert "Analyzing frame 20/20..." in [event.message for event in events]
    assert coordinator.stats.frames_dropped == 5


def test_cap_is_configurable():
    judge = FakeVisionJudge(default="YES")
    events = run_and_collect(make_coordinator(judge=judge, max_frames=3), make_payload(10))

    assert len(judge.calls) == 3
    assert len(events[-1].result.slides) == 3


def test_transcription_failure_still_completes_with_sentinel():
    speech = FakeSpeechToText(error=RuntimeError("401 invalid api key"))
    judge = FakeVisionJudge(["YES", "YES"])
    coordinator = make_coordinator(speech=speech, judge=judge)

    events = run_and_collect(coordinator, make_payload(2))

    result = events[-1].result
    assert events[-1].type == EventType.COMPLETE
    assert result.transcript == "[Transcription unavailable: 401 invalid api key]"
    assert len(result.slides) == 2
    assert len(judge.calls) == 2
    assert coordinator.stats.transcript_degraded


def test_single_classification_failure_does_not_short_circuit():
    judge = FakeVisionJudge(["YES", ConnectionError("reset by peer"), "YES", "YES"])

    events = run_and_collect(make_coordinator(judge=judge), make_payload(4))

    assert len(judge.calls) == 4
    assert [slide.timestamp for slide in events[-1].result.slides] == [0, 10, 15]


def test_missing_frames_yields_single_error_event():
    speech = FakeSpeechToText()
    coordinator = make_coordinator(speech=speech)

    events = run_and_collect(coordinator, {'audioDataUrl': AUDIO_DATA_URL})

    assert len(events) == 1
    assert events[0].type == EventType.ERROR
    assert events[0].message == "Missing audio or frames data"
    assert speech.calls == []
    assert coordinator.state == RunState.FAILED


def test_missing_or_empty_audio_yields_single_error_event():
    for payload in (make_payload(2, audio=None), make_payload(2, audio="")):
        events = run_and_collect(make_coordinator(), payload)
        assert _types(events) == [EventType.ERROR]


def test_invalid_json_body_yields_error_event():
    events = run_and_collect(make_coordinator(), b"{not json")

    assert _types(events) == [EventType.ERROR]
    assert "not valid JSON" in events[0].message


def test_malformed_frame_yields_error_event():
    payload = {'audioDataUrl': AUDIO_DATA_URL, 'frames': [{'timestamp': 0}]}

    events = run_and_collect(make_coordinator(), json.dumps(payload).encode())

    assert _types(events) == [EventType.ERROR]
    assert "dataUrl" in events[0].message


def test_one_invalid_frame_rejects_the_whole_run(judge):
    payload = make_payload(3)
    payload['frames'][1] = {'timestamp': -1, 'dataUrl': image_url(1)}

    events = run_and_collect(make_coordinator(judge=judge), payload)

    assert _types(events) == [EventType.ERROR]
    assert "frames.1.timestamp" in events[0].message
    assert judge.calls == []


def test_empty_frame_list_completes_without_slides():
    judge = FakeVisionJudge()
    events = run_and_collect(make_coordinator(judge=judge), make_payload(0))

    assert events[-1].type == EventType.COMPLETE
    assert events[-1].result.slides == ()
    assert judge.calls == []


def test_unexpected_fault_becomes_error_event():
    class ExplodingTranscriber:
        async def transcribe(self, audio):
            raise KeyError()

    coordinator = make_coordinator()
    coordinator.transcriber = ExplodingTranscriber()

    events = run_and_collect(coordinator, make_payload(2))

    assert _types(events) == [EventType.PROGRESS, EventType.ERROR]
    assert events[-1].message == "Processing failed"
    assert coordinator.state == RunState.FAILED


def test_disconnect_stops_classification(caplog):
    judge = FakeVisionJudge(default="YES", delays=[0.01] * 10)
    coordinator = make_coordinator(judge=judge)

    async def scenario():
        channel = EventChannel()
        run = asyncio.ensure_future(coordinator.run(make_payload(10), channel))
        received = []
        async for event in channel:
            received.append(event)
            if event.message == "Analyzing frame 3/10...":
                channel.cancel()
                break
        result = await run
        return received, result, channel

    with caplog.at_level("WARNING", logger="slides_worker"):
        received, result, channel = asyncio.run(scenario())

    assert result is None
    assert coordinator.state == RunState.CANCELLED
    assert len(judge.calls) <= 3
    assert channel.closed and channel.cancelled
    assert "Client disconnected" in caplog.text
    assert "stages done: transcribe" in caplog.text


def test_concurrent_classification_preserves_slide_order():
    # Later frames answer first; slides must still follow submission order
    judge = FakeVisionJudge(["YES", "NO", "YES", "YES"], delays=[0.05, 0.0, 0.02, 0.0])
    coordinator = make_coordinator(judge=judge, concurrency=4)

    events = run_and_collect(coordinator, make_payload(4))

    assert [slide.timestamp for slide in events[-1].result.slides] == [0, 10, 15]
    assert sum(event.message.startswith("Analyzing frame ") for event in events[:-1]) == 4


def test_channel_rejects_sends_after_close():
    async def scenario():
        channel = EventChannel()
        await channel.close()
        await channel.close()
        try:
            await channel.send(object())
        except ChannelClosed:
            return True
        return False

    assert asyncio.run(scenario())


def test_coordinator_runs_only_once():
    coordinator = make_coordinator()
    run_and_collect(coordinator, make_payload(1))

    with pytest.raises(RuntimeError):
        asyncio.run(coordinator.run(make_payload(1), EventChannel()))
