"""
In-memory audio representation shared by every pipeline stage.
"""

from dataclasses import dataclass

import numpy as np

# Native output format of the speech provider
DEFAULT_SAMPLE_RATE = 24000
DEFAULT_CHANNELS = 1

SAMPLE_WIDTH = 2  # 16-bit PCM


@dataclass(frozen=True, eq=False)
class AudioBuffer:
    """
    Normalised multi-channel audio.

    ``samples`` has shape ``(num_channels, frame_count)`` and holds
    ``float32`` values nominally in ``[-1.0, 1.0]``.  The array is made
    read-only on construction; stages that change audio build a new
    buffer instead of writing into one they were handed.
    """

    samples: np.ndarray
    sample_rate: int = DEFAULT_SAMPLE_RATE

    def __post_init__(self):
        arr = np.array(self.samples, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr[np.newaxis, :]
        if arr.ndim != 2 or arr.shape[0] < 1:
            raise ValueError(
                f"samples must have shape (channels, frames), got {arr.shape}"
            )
        try:
            rate = int(self.sample_rate)
        except (TypeError, ValueError, OverflowError):
            rate = None
        if rate is None or rate != self.sample_rate:
            raise ValueError(f"sample_rate must be an integer, got {self.sample_rate}")
        if rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        arr.setflags(write=False)
        object.__setattr__(self, "samples", arr)
        # 24000.0 is stored as 24000 so the WAV header packs it
        object.__setattr__(self, "sample_rate", rate)

    @classmethod
    def silent(
        cls,
        frame_count: int,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        num_channels: int = DEFAULT_CHANNELS,
    ) -> "AudioBuffer":
        """Create a buffer of *frame_count* zero-valued frames."""
        return cls(np.zeros((num_channels, frame_count), dtype=np.float32), sample_rate)

    @property
    def num_channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frame_count(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.frame_count / self.sample_rate

    @property
    def is_empty(self) -> bool:
        return self.frame_count == 0

    def channel(self, index: int) -> np.ndarray:
        return self.samples[index]

    def __len__(self) -> int:
        return self.frame_count

    def __repr__(self) -> str:
        return (
            f"AudioBuffer({self.num_channels}ch, {self.frame_count} frames, "
            f"{self.sample_rate}Hz, {self.duration:.2f}s)"
        )
