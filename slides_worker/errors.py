"""
Error taxonomy for the slides pipeline.

Run-level errors (InputMissing, MalformedInput) terminate a run with a
single error event. DecodeError and CaptureUnavailable are local to the
client-side decomposition stages. AdapterFailure never escapes an adapter:
it is converted to a degraded value at the adapter boundary.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors"""


class InputMissing(PipelineError):
    """Request is missing the audio payload or the frame sequence"""


class MalformedInput(PipelineError):
    """Request body could not be parsed into a run request"""


class DecodeError(PipelineError):
    """Video asset could not be decoded"""


class CaptureUnavailable(PipelineError):
    """Audio capture could not be started for the asset"""


class AdapterFailure(PipelineError):
    """External speech or vision service failed"""


class ChannelClosed(PipelineError):
    """Event consumer has gone away or the channel was already closed"""
