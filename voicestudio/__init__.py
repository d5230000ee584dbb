"""
Voice Studio audio pipeline.

Decodes speech payloads from a TTS provider, applies independent speed
and pitch control, and encodes the result as WAV.
"""

from .pipeline import BatchResult, RenderResult, SpeechPipeline, StudioConfig

__all__ = [
    "BatchResult",
    "RenderResult",
    "SpeechPipeline",
    "StudioConfig",
]
