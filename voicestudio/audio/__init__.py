"""Audio decoding, speed/pitch effects, and WAV encoding."""

from .decoder import decode_base64, decode_pcm
from .effects import EffectSettings, process_wav, transform, transform_async
from .errors import AudioPipelineError, DecodeError, DegenerateBufferError, FormatError
from .models import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE, AudioBuffer
from .resampler import BaseResampler, LinearResampler, pitch_factor_for
from .time_stretch import time_stretch
from .wav_writer import WavSerializer, encode_wav, encoded_blob_to_wav, read_wav

__all__ = [
    "AudioBuffer",
    "AudioPipelineError",
    "BaseResampler",
    "DEFAULT_CHANNELS",
    "DEFAULT_SAMPLE_RATE",
    "DecodeError",
    "DegenerateBufferError",
    "EffectSettings",
    "FormatError",
    "LinearResampler",
    "WavSerializer",
    "decode_base64",
    "decode_pcm",
    "encode_wav",
    "encoded_blob_to_wav",
    "pitch_factor_for",
    "process_wav",
    "read_wav",
    "time_stretch",
    "transform",
    "transform_async",
]
