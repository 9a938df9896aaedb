"""
Wire schemas for the HTTP surface.

Request bodies are validated with pydantic and then converted into the
immutable domain records from models.py.
"""

import json
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .errors import InputMissing, MalformedInput
from .models import AudioPayload, Frame, RunRequest

MISSING_INPUT_MESSAGE = "Missing audio or frames data"


class FrameIn(BaseModel):
    """One sampled frame as submitted by the client"""
    timestamp: float = Field(ge=0, description="Capture time in seconds")
    dataUrl: str = Field(description="Encoded still image as a data URL")


class ProcessRequest(BaseModel):
    """Body of the streaming process endpoint"""
    audioDataUrl: str
    frames: List[FrameIn]


class SlideIn(BaseModel):
    image: str
    timestamp: float


class DocumentRequest(BaseModel):
    """Body of the report endpoint"""
    transcription: str = ""
    slides: List[SlideIn] = Field(default_factory=list)
    title: Optional[str] = None


def parse_run_request(payload: Union[bytes, str, dict, None]) -> RunRequest:
    """
    Validate a raw request body into a RunRequest.

    Raises:
        MalformedInput: if the body is not a JSON object or a frame is malformed
        InputMissing: if the audio payload or the frame list is absent
    """
    if isinstance(payload, (bytes, str)):
        try:
            payload = json.loads(payload) if payload else None
        except ValueError as e:
            raise MalformedInput(f"Request body is not valid JSON: {e}")

    if payload is None:
        raise InputMissing(MISSING_INPUT_MESSAGE)

    if not isinstance(payload, dict):
        raise MalformedInput("Request body must be a JSON object")

    # An empty frames list is present input; an empty audio string is not
    if not payload.get('audioDataUrl') or payload.get('frames') is None:
        raise InputMissing(MISSING_INPUT_MESSAGE)

    try:
        request = ProcessRequest.model_validate(payload)
    except ValidationError as e:
        raise MalformedInput(f"Invalid request: {_describe_validation_error(e)}")

    return RunRequest(
        audio=AudioPayload(data_url=request.audioDataUrl),
        frames=tuple(Frame(timestamp=_seconds(f.timestamp), image=f.dataUrl) for f in request.frames)
    )


def _seconds(value: float) -> Any:
    # Keep whole-second timestamps integral so they round-trip as sent
    return int(value) if float(value).is_integer() else value


def _describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get('loc', ()))
    return f"{location}: {first.get('msg', 'invalid value')}"
