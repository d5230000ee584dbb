"""
Resampling-based pitch shifting.

Playing a buffer back at ``factor`` times its rate raises the pitch by
``12 * log2(factor)`` semitones and shortens it by ``1 / factor``.  The
effect orchestrator pre-stretches the audio to cancel the duration
change, so this stage is a pure resample with no windowing.

Backends implement :class:`BaseResampler`; callers that run inside an
event loop can await :meth:`BaseResampler.resample_async`.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod

import numpy as np

from .errors import DegenerateBufferError
from .models import AudioBuffer

logger = logging.getLogger(__name__)


def pitch_factor_for(semitones: float) -> float:
    """Frequency multiplier for a shift of *semitones* (``2 ** (n / 12)``)."""
    try:
        factor = 2.0 ** (semitones / 12.0)
    except OverflowError as e:
        raise DegenerateBufferError(
            f"pitch shift of {semitones} semitones is out of range", stage="transform"
        ) from e
    if factor == 0.0:
        raise DegenerateBufferError(
            f"pitch shift of {semitones} semitones is out of range", stage="transform"
        )
    return factor


def output_length(frame_count: int, factor: float) -> int:
    """Frame count after resampling by *factor*, never less than one."""
    return max(1, math.floor(frame_count / factor))


class BaseResampler(ABC):
    """
    Common interface for pitch-shift resamplers.

    Subclasses implement :meth:`_resample_samples`; validation, the
    empty-buffer policy, and buffer construction live here so every
    backend behaves the same at the edges.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend identifier."""

    @abstractmethod
    def _resample_samples(self, samples: np.ndarray, new_length: int) -> np.ndarray:
        """
        Resample a ``(channels, frames)`` array to *new_length* frames.

        *samples* always has at least one frame.
        """

    def resample(self, buffer: AudioBuffer, factor: float) -> AudioBuffer:
        """
        Resample *buffer* by *factor*, shifting pitch and duration.

        Returns:
            New buffer of ``max(1, floor(frame_count / factor))`` frames
            at the original sample rate.

        Raises:
            DegenerateBufferError: If *factor* is not positive and finite.
        """
        if not (math.isfinite(factor) and factor > 0):
            raise DegenerateBufferError(
                f"pitch factor must be positive and finite, got {factor}",
                stage="resample",
            )

        if buffer.is_empty:
            logger.debug("%s: empty input, returning one silent frame", self.name)
            return AudioBuffer.silent(1, buffer.sample_rate, buffer.num_channels)

        new_length = output_length(buffer.frame_count, factor)
        logger.debug(
            "%s: factor=%.4f (%+.2f st), %d → %d frames",
            self.name,
            factor,
            12.0 * math.log2(factor),
            buffer.frame_count,
            new_length,
        )
        resampled = self._resample_samples(buffer.samples, new_length)
        return AudioBuffer(resampled, buffer.sample_rate)

    async def resample_async(self, buffer: AudioBuffer, factor: float) -> AudioBuffer:
        """Run :meth:`resample` in the event loop's default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.resample, buffer, factor)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LinearResampler(BaseResampler):
    """
    Software resampler using linear interpolation.

    Output frame ``k`` reads the input at position ``k * step``, where
    ``step = frame_count / new_length`` is the playback rate corrected
    for the floor in :func:`output_length`.
    """

    @property
    def name(self) -> str:
        return "linear"

    def _resample_samples(self, samples: np.ndarray, new_length: int) -> np.ndarray:
        old_length = samples.shape[1]
        step = old_length / new_length
        positions = np.arange(new_length, dtype=np.float64) * step
        source = np.arange(old_length, dtype=np.float64)

        out = np.empty((samples.shape[0], new_length), dtype=np.float32)
        for ch in range(samples.shape[0]):
            out[ch] = np.interp(positions, source, samples[ch])
        return out
