"""
Independent speed and pitch control.

Resampling by a pitch factor ``F`` changes pitch *and* duration, so the
buffer is first time-stretched by ``R = speed / F`` (pitch preserved),
then resampled by ``F``.  The durations multiply out to ``R * F = speed``
while the pitch shift comes from ``F`` alone.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Optional

from .errors import DegenerateBufferError
from .models import AudioBuffer
from .resampler import BaseResampler, LinearResampler, pitch_factor_for
from .time_stretch import time_stretch
from .wav_writer import encode_wav, read_wav

logger = logging.getLogger(__name__)

# Slider bounds exposed by the studio UI.  Not enforced by the core.
SPEED_RANGE = (0.5, 2.0)
PITCH_RANGE = (-10.0, 10.0)


@dataclass(frozen=True)
class EffectSettings:
    """
    Requested speed and pitch for a transform.

    Attributes:
        speed: Duration multiplier relative to the original playback
               rate (>1 = faster, shorter audio).  Must be positive.
        pitch: Pitch shift in semitones, signed.
    """

    speed: float = 1.0
    pitch: float = 0.0

    def __post_init__(self):
        if not (math.isfinite(self.speed) and self.speed > 0):
            raise DegenerateBufferError(
                f"speed must be positive and finite, got {self.speed}"
            )
        if not math.isfinite(self.pitch):
            raise DegenerateBufferError(f"pitch must be finite, got {self.pitch}")
        # Raises for shifts too large to express as a frequency ratio
        pitch_factor_for(self.pitch)

    @property
    def pitch_factor(self) -> float:
        return pitch_factor_for(self.pitch)

    @property
    def stretch_ratio(self) -> float:
        return self.speed / self.pitch_factor

    @property
    def is_identity(self) -> bool:
        return self.speed == 1.0 and self.pitch == 0.0

    def in_ui_range(self) -> bool:
        """Whether both values fall inside the studio slider bounds."""
        return (
            SPEED_RANGE[0] <= self.speed <= SPEED_RANGE[1]
            and PITCH_RANGE[0] <= self.pitch <= PITCH_RANGE[1]
        )


def transform(
    buffer: AudioBuffer,
    speed: float,
    pitch: float,
    resampler: Optional[BaseResampler] = None,
) -> AudioBuffer:
    """
    Apply *speed* and *pitch* (semitones) to *buffer* independently.

    Extreme speeds are not rejected; they simply produce very short or
    very long buffers.

    Returns:
        A new buffer whose duration is ``1 / speed`` of the original and
        whose pitch is shifted by *pitch* semitones.

    Raises:
        DegenerateBufferError: If *speed* is not positive and finite.
    """
    settings = EffectSettings(speed=speed, pitch=pitch)
    resampler = resampler or LinearResampler()

    logger.debug(
        "transform: speed=%.3f pitch=%+.2f st → stretch=%.4f, factor=%.4f (%s)",
        settings.speed,
        settings.pitch,
        settings.stretch_ratio,
        settings.pitch_factor,
        resampler.name,
    )

    stretched = time_stretch(buffer, settings.stretch_ratio)
    return resampler.resample(stretched, settings.pitch_factor)


async def transform_async(
    buffer: AudioBuffer,
    speed: float,
    pitch: float,
    resampler: Optional[BaseResampler] = None,
) -> AudioBuffer:
    """
    Awaitable :func:`transform`, run in the event loop's default executor.

    The work is atomic: the coroutine returns the full buffer or raises.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, transform, buffer, speed, pitch, resampler
    )


def process_wav(wav_bytes: bytes, speed: float, pitch: float) -> bytes:
    """
    Speed/pitch transform of a complete 16-bit WAV file.

    Returns:
        New WAV bytes.  A neutral request re-encodes the input audio
        unchanged.
    """
    buffer = read_wav(wav_bytes)
    return encode_wav(transform(buffer, speed, pitch))
