"""
Domain models for the slides worker.

Defines the core data structures passed between the decomposition stages,
the adapters, the coordinator and the HTTP layer. Every record here is
immutable once built; none of them is persisted.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple

from .pipeline.util import encode_data_url, decode_data_url, data_url_mime_type, audio_extension, DEFAULT_AUDIO_MIME


@dataclass(frozen=True)
class VideoAsset:
    """Represents a video file together with its container metadata"""
    path: str
    duration_sec: float
    width: int
    height: int
    has_audio: bool = True


@dataclass(frozen=True)
class Frame:
    """Represents one sampled still image"""
    timestamp: float
    image: str  # encoded still image, as a data URL

    def to_dict(self) -> Dict[str, Any]:
        return {'timestamp': self.timestamp, 'dataUrl': self.image}


@dataclass(frozen=True)
class AudioPayload:
    """Represents the encoded full-duration audio track of one video"""
    data_url: str

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str = DEFAULT_AUDIO_MIME) -> 'AudioPayload':
        return cls(data_url=encode_data_url(data, mime_type))

    @property
    def mime_type(self) -> str:
        return data_url_mime_type(self.data_url)

    @property
    def format_hint(self) -> str:
        return audio_extension(self.mime_type)

    def decode(self) -> bytes:
        """Decode the payload; raises ValueError if it is not a valid data URL"""
        _, data = decode_data_url(self.data_url)
        return data


@dataclass(frozen=True)
class Slide:
    """Represents a frame accepted by the classifier"""
    image: str
    timestamp: float

    @classmethod
    def from_frame(cls, frame: Frame) -> 'Slide':
        return cls(image=frame.image, timestamp=frame.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {'image': self.image, 'timestamp': self.timestamp}


@dataclass(frozen=True)
class PipelineResult:
    """Terminal artifact of one run"""
    transcript: str
    slides: Tuple[Slide, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'transcription': self.transcript,
            'slides': [slide.to_dict() for slide in self.slides]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PipelineResult':
        slides = tuple(
            Slide(image=slide['image'], timestamp=slide['timestamp'])
            for slide in data.get('slides') or []
        )
        return cls(transcript=data.get('transcription', ''), slides=slides)


@dataclass(frozen=True)
class RunRequest:
    """Validated input of one run"""
    audio: AudioPayload
    frames: Tuple[Frame, ...]


class EventType(str, Enum):
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    """One unit of the streamed status/result protocol"""
    type: EventType
    message: Optional[str] = None
    result: Optional[PipelineResult] = None

    @classmethod
    def progress(cls, message: str) -> 'ProgressEvent':
        return cls(type=EventType.PROGRESS, message=message)

    @classmethod
    def complete(cls, result: PipelineResult) -> 'ProgressEvent':
        return cls(type=EventType.COMPLETE, result=result)

    @classmethod
    def error(cls, message: str) -> 'ProgressEvent':
        return cls(type=EventType.ERROR, message=message)

    @property
    def is_terminal(self) -> bool:
        return self.type in (EventType.COMPLETE, EventType.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        if self.type == EventType.COMPLETE:
            return {'type': self.type.value, 'data': self.result.to_dict()}
        return {'type': self.type.value, 'message': self.message}

    def to_sse(self) -> str:
        """Serialize as a server-sent events frame"""
        return f"data: {json.dumps(self.to_dict())}\n\n"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgressEvent':
        event_type = EventType(data.get('type'))
        if event_type == EventType.COMPLETE:
            return cls.complete(PipelineResult.from_dict(data.get('data') or {}))
        return cls(type=event_type, message=data.get('message', ''))


class RunState(str, Enum):
    """Coordinator states of one run"""
    IDLE = "idle"
    TRANSCRIBING_AUDIO = "transcribing_audio"
    CLASSIFYING_FRAMES = "classifying_frames"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETE, RunState.FAILED, RunState.CANCELLED)


@dataclass
class RunStats:
    """Counters for one run, logged when the run terminates"""
    frames_submitted: int = 0
    frames_dropped: int = 0
    frames_classified: int = 0
    slides_accepted: int = 0
    transcript_degraded: bool = False
    stages_completed: List[str] = field(default_factory=list)
