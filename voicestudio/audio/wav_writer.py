"""
WAV container encoding.

Writes canonical 44-byte-header RIFF/WAVE files holding interleaved
16-bit PCM.  The header is built field by field through
:class:`WavSerializer`, which owns the write cursor.
"""

import io
import logging
import struct
import wave
from typing import Union

import numpy as np

from .decoder import decode_base64, decode_pcm
from .errors import FormatError
from .models import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE, SAMPLE_WIDTH, AudioBuffer

logger = logging.getLogger(__name__)

HEADER_SIZE = 44
FMT_CHUNK_SIZE = 16
WAVE_FORMAT_PCM = 1
BITS_PER_SAMPLE = 16


class WavSerializer:
    """
    Little-endian writer over a pre-sized byte array.

    Each ``write_*`` method stores a value at the cursor and advances it
    by the value's width.
    """

    def __init__(self, size: int):
        self._data = bytearray(size)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def write_tag(self, tag: bytes) -> None:
        """Write a four-character chunk identifier."""
        if len(tag) != 4:
            raise ValueError(f"chunk tag must be 4 bytes, got {tag!r}")
        self._data[self._pos: self._pos + 4] = tag
        self._pos += 4

    def write_uint16(self, value: int) -> None:
        struct.pack_into("<H", self._data, self._pos, value)
        self._pos += 2

    def write_uint32(self, value: int) -> None:
        struct.pack_into("<I", self._data, self._pos, value)
        self._pos += 4

    def write_samples(self, pcm: np.ndarray) -> None:
        """Write an int16 array as little-endian samples."""
        raw = pcm.astype("<i2").tobytes()
        self._data[self._pos: self._pos + len(raw)] = raw
        self._pos += len(raw)

    def getvalue(self) -> bytes:
        return bytes(self._data)


def quantize(samples: np.ndarray) -> np.ndarray:
    """
    Convert float samples to int16.

    Values are clamped to ``[-1, 1]``; negatives scale by 32768 and
    non-negatives by 32767, mirroring the decoder's ``s / 32768``.
    The scaled value is rounded half-to-even before the int16 cast.
    Browser encoders that use ``(sample * 0x7fff) | 0`` truncate toward
    zero instead, so their output can sit one LSB closer to zero.
    """
    clipped = np.clip(samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.round(scaled).astype(np.int16)


def encode_wav(buffer: AudioBuffer) -> bytes:
    """
    Serialise *buffer* as a 16-bit PCM WAV file.

    Returns:
        ``frame_count * num_channels * 2 + 44`` bytes.
    """
    n_channels = buffer.num_channels
    data_size = buffer.frame_count * n_channels * SAMPLE_WIDTH
    total = data_size + HEADER_SIZE

    out = WavSerializer(total)

    out.write_tag(b"RIFF")
    out.write_uint32(total - 8)
    out.write_tag(b"WAVE")

    out.write_tag(b"fmt ")
    out.write_uint32(FMT_CHUNK_SIZE)
    out.write_uint16(WAVE_FORMAT_PCM)
    out.write_uint16(n_channels)
    out.write_uint32(buffer.sample_rate)
    out.write_uint32(buffer.sample_rate * SAMPLE_WIDTH * n_channels)  # byte rate
    out.write_uint16(n_channels * SAMPLE_WIDTH)  # block align
    out.write_uint16(BITS_PER_SAMPLE)

    out.write_tag(b"data")
    out.write_uint32(total - HEADER_SIZE)

    # (channels, frames) → frame-major interleave
    out.write_samples(quantize(buffer.samples).T.ravel())

    logger.debug("Encoded WAV: %d bytes from %r", total, buffer)
    return out.getvalue()


def read_wav(wav_bytes: bytes) -> AudioBuffer:
    """
    Parse a 16-bit PCM WAV file into an :class:`AudioBuffer`.

    Raises:
        FormatError: If the bytes are not a readable 16-bit PCM WAV.
    """
    try:
        with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
            n_channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError) as e:
        raise FormatError(f"failed to read WAV: {e}", stage="decode") from e

    if sample_width != SAMPLE_WIDTH:
        raise FormatError(
            f"unsupported sample width {sample_width * 8} bits; expected 16",
            stage="decode",
        )
    return decode_pcm(raw, sample_rate=sample_rate, num_channels=n_channels)


def encoded_blob_to_wav(
    blob: Union[str, bytes],
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    num_channels: int = DEFAULT_CHANNELS,
) -> bytes:
    """
    Wrap a base64 PCM payload in a WAV container without transforming it.

    Used for untransformed previews.
    """
    buffer = decode_pcm(decode_base64(blob), sample_rate, num_channels)
    return encode_wav(buffer)
