"""
Pitch-preserving time stretching for speech audio.

Uses plain overlap-add (OLA) with a Hann window: fixed-size segments are
read from the input at the analysis hop and laid down at a scaled
synthesis hop, so duration changes while the waveform inside each
segment (and therefore the pitch) is untouched.

Only depends on ``numpy``.
"""

import logging
import math

import numpy as np

from .errors import DegenerateBufferError
from .models import AudioBuffer

logger = logging.getLogger(__name__)

# 1024 samples @ 24 kHz is a ~42 ms window
WINDOW_SIZE = 1024
HOP_SIZE = 512  # 50% overlap

# Ratios this close to 1.0 are passed through untouched
IDENTITY_TOLERANCE = 0.001

# Output samples with less accumulated window weight stay unnormalised
MIN_WEIGHT = 0.01


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def time_stretch(buffer: AudioBuffer, ratio: float) -> AudioBuffer:
    """
    Change the duration of *buffer* without changing its pitch.

    Args:
        buffer: Input audio.
        ratio:  Stretch ratio.  >1 shortens the audio, <1 lengthens it.
                The output has ``floor(frame_count / ratio)`` frames.

    Returns:
        A new buffer at the same sample rate and channel count, or
        *buffer* itself when *ratio* is within 0.001 of 1.0.

        An empty input yields a single silent frame.  Samples near the
        edges that fewer windows overlapped (the start of the first
        window and the tail past the last full window) are left as raw
        accumulator values, i.e. close to silence.

    Raises:
        DegenerateBufferError: If *ratio* is not a positive finite number.
    """
    if not (math.isfinite(ratio) and ratio > 0):
        raise DegenerateBufferError(
            f"stretch ratio must be positive and finite, got {ratio}", stage="stretch"
        )

    if buffer.is_empty:
        logger.debug("time_stretch: empty input, returning one silent frame")
        return AudioBuffer.silent(1, buffer.sample_rate, buffer.num_channels)

    if abs(ratio - 1.0) < IDENTITY_TOLERANCE:
        return buffer

    old_length = buffer.frame_count
    new_length = max(1, math.floor(old_length / ratio))
    out_hop = max(1, math.floor(HOP_SIZE / ratio))

    logger.debug(
        "time_stretch: ratio=%.4f, %d → %d frames, synthesis hop=%d",
        ratio,
        old_length,
        new_length,
        out_hop,
    )

    stretched = _overlap_add(buffer.samples, ratio, new_length, out_hop)
    return AudioBuffer(stretched, buffer.sample_rate)


# ------------------------------------------------------------------
# OLA internals
# ------------------------------------------------------------------


def _overlap_add(
    samples: np.ndarray,
    ratio: float,
    new_length: int,
    out_hop: int,
) -> np.ndarray:
    """
    Overlap-add resynthesis of a ``(channels, frames)`` array.

    Every channel is read and written at the same positions but never
    mixed, so channels are processed independently.  The accumulators
    are local to this call.

    Returns:
        ``float32`` array of shape ``(channels, new_length)``.
    """
    old_length = samples.shape[1]
    window = np.hanning(WINDOW_SIZE)

    output = np.zeros((samples.shape[0], new_length), dtype=np.float64)
    weights = np.zeros(new_length, dtype=np.float64)

    i = 0
    n_windows = 0
    while i + WINDOW_SIZE <= new_length:
        input_idx = math.floor(i * ratio)
        if input_idx + WINDOW_SIZE > old_length:
            break

        segment = samples[:, input_idx: input_idx + WINDOW_SIZE]
        output[:, i: i + WINDOW_SIZE] += segment * window
        weights[i: i + WINDOW_SIZE] += window

        i += out_hop
        n_windows += 1

    # Normalise by window overlap where enough windows contributed
    covered = weights > MIN_WEIGHT
    output[:, covered] /= weights[covered]

    logger.debug(
        "OLA: %d windows, %d/%d samples normalised",
        n_windows,
        int(np.count_nonzero(covered)),
        new_length,
    )
    return output.astype(np.float32)
