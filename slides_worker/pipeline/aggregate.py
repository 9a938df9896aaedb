from typing import Iterable

from ..models import PipelineResult, Slide


def aggregate(transcript: str, slides: Iterable[Slide]) -> PipelineResult:
    """Pair the transcript with the accepted slides, keeping their order"""
    return PipelineResult(transcript=transcript, slides=tuple(slides))
