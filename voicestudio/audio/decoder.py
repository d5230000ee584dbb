"""
Decoding of provider audio payloads into :class:`AudioBuffer` objects.

The speech provider returns headerless 16-bit signed little-endian PCM
wrapped in base64 text.  Decoding happens in two steps: the transport
layer (base64 → bytes) and the frame interpreter (bytes → normalised
per-channel float samples).
"""

import binascii
import logging
from base64 import b64decode
from typing import Union

import numpy as np

from .errors import DecodeError, FormatError
from .models import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE, SAMPLE_WIDTH, AudioBuffer

logger = logging.getLogger(__name__)

# Scale used to map int16 samples into [-1, 1)
PCM_SCALE = 32768.0


def decode_base64(blob: Union[str, bytes]) -> bytes:
    """
    Decode a standard base64 string into raw bytes.

    Surrounding whitespace is ignored; anything else outside the base64
    alphabet, or bad ``=`` padding, is rejected.

    Raises:
        DecodeError: If *blob* is not valid base64.
    """
    if isinstance(blob, str):
        blob = blob.strip()
    else:
        blob = bytes(blob).strip()

    try:
        data = b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64 payload: {e}") from e

    logger.debug("Decoded %d base64 characters into %d bytes", len(blob), len(data))
    return data


def decode_pcm(
    data: bytes,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    num_channels: int = DEFAULT_CHANNELS,
    strict: bool = False,
) -> AudioBuffer:
    """
    Interpret raw 16-bit PCM bytes as an :class:`AudioBuffer`.

    Each sample ``s`` becomes ``s / 32768``, so the most negative value
    maps to exactly ``-1.0`` and the most positive to ``32767/32768``.
    Interleaved samples are split into channels in order (sample 0 →
    channel 0, sample 1 → channel 1, ...).

    A trailing partial frame is dropped with a warning, since upstream
    encoders occasionally pad their output.  Pass ``strict=True`` to
    treat that as an error instead.

    Args:
        data:         Raw PCM bytes.
        sample_rate:  Sample rate of the payload in Hz.
        num_channels: Number of interleaved channels.
        strict:       Raise instead of truncating misaligned input.

    Raises:
        FormatError: On non-positive rate/channel count, or misaligned
                     input when *strict* is set.
    """
    if sample_rate <= 0:
        raise FormatError(f"sample rate must be positive, got {sample_rate}")
    if num_channels < 1:
        raise FormatError(f"channel count must be >= 1, got {num_channels}")

    frame_size = SAMPLE_WIDTH * num_channels
    remainder = len(data) % frame_size
    if remainder:
        if strict:
            raise FormatError(
                f"{len(data)} bytes is not a multiple of the "
                f"{frame_size}-byte frame size"
            )
        logger.warning(
            "PCM payload of %d bytes is not frame-aligned; dropping %d trailing bytes",
            len(data),
            remainder,
        )
        data = data[: len(data) - remainder]

    pcm = np.frombuffer(data, dtype="<i2")
    frame_count = len(pcm) // num_channels

    # (frames, channels) → (channels, frames)
    samples = pcm.reshape(frame_count, num_channels).T.astype(np.float32) / PCM_SCALE

    buffer = AudioBuffer(samples, sample_rate)
    logger.debug("Interpreted PCM: %r", buffer)
    return buffer
