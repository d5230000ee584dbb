import base64

import numpy as np
import pytest

from voicestudio.audio.models import AudioBuffer

SAMPLE_RATE = 24000


def sine(freq: float, seconds: float, sample_rate: int = SAMPLE_RATE, amp: float = 0.5):
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return amp * np.sin(2 * np.pi * freq * t)


def dominant_frequency(x: np.ndarray, sample_rate: int = SAMPLE_RATE) -> float:
    """Frequency of the strongest FFT bin of *x*."""
    spectrum = np.abs(np.fft.rfft(x * np.hanning(len(x))))
    return float(np.argmax(spectrum)) * sample_rate / len(x)


def pcm_bytes(values) -> bytes:
    return np.asarray(values, dtype="<i2").tobytes()


@pytest.fixture
def tone():
    """One second of a 440 Hz mono tone."""
    return AudioBuffer(sine(440.0, 1.0), SAMPLE_RATE)


@pytest.fixture
def stereo_tone():
    left = sine(440.0, 1.0)
    right = sine(660.0, 1.0, amp=0.25)
    return AudioBuffer(np.vstack([left, right]), SAMPLE_RATE)


@pytest.fixture
def speech_payload():
    """Base64 payload of half a second of 16-bit mono tone, as sent by the provider."""
    pcm = np.round(sine(220.0, 0.5) * 32767).astype("<i2").tobytes()
    return base64.b64encode(pcm).decode("ascii")
