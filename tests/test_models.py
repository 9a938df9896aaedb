import json

import pytest

from slides_worker.models import AudioPayload, EventType, PipelineResult, ProgressEvent, Slide, RunState
from slides_worker.pipeline.aggregate import aggregate
from slides_worker.pipeline.util import decode_data_url, encode_data_url, audio_extension, format_timecode
from slides_worker.schemas import parse_run_request
from slides_worker.errors import InputMissing, MalformedInput


def test_sse_framing_of_each_event_kind():
    result = PipelineResult(transcript="t", slides=(Slide(image="img", timestamp=5),))

    assert ProgressEvent.progress("Working...").to_sse() == 'data: {"type": "progress", "message": "Working..."}\n\n'
    assert ProgressEvent.error("boom").to_sse() == 'data: {"type": "error", "message": "boom"}\n\n'
    complete = json.loads(ProgressEvent.complete(result).to_sse()[len("data: "):])
    assert complete == {'type': "complete", 'data': {'transcription': "t", 'slides': [{'image': "img", 'timestamp': 5}]}}


def test_event_round_trips_through_dict():
    event = ProgressEvent.complete(PipelineResult("words", (Slide("a", 0), Slide("b", 10))))

    assert ProgressEvent.from_dict(event.to_dict()) == event
    assert event.is_terminal
    assert not ProgressEvent.progress("x").is_terminal


def test_aggregate_preserves_order_and_is_immutable():
    slides = [Slide("a", 0), Slide("c", 10)]

    result = aggregate("transcript", slides)
    slides.append(Slide("d", 15))

    assert result.slides == (Slide("a", 0), Slide("c", 10))
    assert result.transcript == "transcript"


def test_data_url_helpers():
    url = encode_data_url(b"\x00\x01binary", "audio/webm")

    assert url.startswith("data:audio/webm;base64,")
    assert decode_data_url(url) == ("audio/webm", b"\x00\x01binary")
    assert decode_data_url("data:audio/webm;codecs=opus;base64,AAEC") == ("audio/webm", b"\x00\x01\x02")


def test_decode_rejects_non_data_urls():
    for value in ("https://example.com/a.mp3", "data:audio/webm,plain", "data:audio/webm;base64,@@@", None):
        with pytest.raises(ValueError):
            decode_data_url(value)


def test_audio_format_hints():
    assert AudioPayload("data:audio/webm;codecs=opus;base64,AA==").format_hint == "webm"
    assert AudioPayload.from_bytes(b"x").format_hint == "mp3"
    assert audio_extension("audio/x-wav") == "wav"
    assert audio_extension("audio/aac") == "aac"


def test_format_timecode():
    assert format_timecode(0) == "00:00:00"
    assert format_timecode(3725) == "01:02:05"


def test_parse_run_request_keeps_whole_second_timestamps_integral():
    request = parse_run_request({
        'audioDataUrl': "data:audio/webm;base64,AA==",
        'frames': [{'timestamp': 0, 'dataUrl': "data:image/png;base64,AA=="}, {'timestamp': 7.5, 'dataUrl': "x"}],
    })

    assert [frame.timestamp for frame in request.frames] == [0, 7.5]
    assert isinstance(request.frames[0].timestamp, int)


def test_parse_run_request_errors():
    with pytest.raises(InputMissing):
        parse_run_request(None)
    with pytest.raises(InputMissing):
        parse_run_request(b"")
    with pytest.raises(MalformedInput):
        parse_run_request("[1, 2]")
    with pytest.raises(MalformedInput):
        parse_run_request({'audioDataUrl': "data:,", 'frames': [{'timestamp': -5, 'dataUrl': "x"}]})


def test_terminal_run_states():
    assert RunState.COMPLETE.is_terminal
    assert RunState.CANCELLED.is_terminal
    assert not RunState.CLASSIFYING_FRAMES.is_terminal
    assert EventType("error") == EventType.ERROR
