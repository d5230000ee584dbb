"""
Error types raised by the audio signal pipeline.

Every error carries the name of the stage that failed so callers can
report a useful message to the end user without inspecting tracebacks.
"""

from typing import Optional


class AudioPipelineError(Exception):
    """Base class for all audio pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class DecodeError(AudioPipelineError):
    """Malformed transport encoding (bad base64 alphabet or padding)."""

    stage = "decode"


class FormatError(AudioPipelineError):
    """Byte buffer or container does not match the expected PCM layout."""

    stage = "interpret"


class DegenerateBufferError(AudioPipelineError):
    """A ratio, factor or speed that cannot produce a meaningful buffer."""

    stage = "transform"
