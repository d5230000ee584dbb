import base64
import io
import struct
import wave

import numpy as np
import pytest

from conftest import pcm_bytes
from voicestudio.audio.decoder import decode_pcm
from voicestudio.audio.errors import DecodeError, FormatError
from voicestudio.audio.models import AudioBuffer
from voicestudio.audio.wav_writer import (
    HEADER_SIZE,
    WavSerializer,
    encode_wav,
    encoded_blob_to_wav,
    quantize,
    read_wav,
)


def test_header_layout_stereo():
    buf = AudioBuffer.silent(100, sample_rate=24000, num_channels=2)
    wav = encode_wav(buf)

    assert len(wav) == 100 * 2 * 2 + 44 == 444
    assert wav[0:4] == b"RIFF"
    assert struct.unpack("<I", wav[4:8])[0] == 444 - 8
    assert wav[8:12] == b"WAVE"
    assert wav[12:16] == b"fmt "

    fmt_len, audio_fmt, channels, rate, byte_rate, align, bits = struct.unpack(
        "<IHHIIHH", wav[16:36]
    )
    assert fmt_len == 16
    assert audio_fmt == 1
    assert channels == 2
    assert rate == 24000
    assert byte_rate == 96000
    assert align == 4
    assert bits == 16

    assert wav[36:40] == b"data"
    assert struct.unpack("<I", wav[40:44])[0] == 400


def test_readable_by_standard_wave_module(stereo_tone):
    wav = encode_wav(stereo_tone)
    with wave.open(io.BytesIO(wav), "rb") as wf:
        assert wf.getnchannels() == 2
        assert wf.getsampwidth() == 2
        assert wf.getframerate() == 24000
        assert wf.getnframes() == stereo_tone.frame_count


def test_samples_are_interleaved_frame_major():
    buf = decode_pcm(pcm_bytes([10, -10, 20, -20]), num_channels=2)
    wav = encode_wav(buf)
    assert np.frombuffer(wav[HEADER_SIZE:], dtype="<i2").tolist() == [10, -10, 20, -20]


def test_clamps_out_of_range_samples():
    buf = AudioBuffer(np.array([1.5, 1.0, -1.5, -1.0], dtype=np.float32))
    pcm = np.frombuffer(encode_wav(buf)[HEADER_SIZE:], dtype="<i2")
    assert pcm.tolist() == [32767, 32767, -32768, -32768]


def test_quantize_asymmetric_scaling():
    q = quantize(np.array([0.0, 0.5, -0.5, 32767 / 32768]))
    assert q.dtype == np.int16
    # 0.5 * 32767 = 16383.5 rounds half to even
    assert q.tolist() == [0, 16384, -16384, 32766]


def test_roundtrip_exact_for_lower_range():
    values = np.arange(-32768, 16384, 7, dtype=np.int16)
    buf = decode_pcm(values.astype("<i2").tobytes())
    out = np.frombuffer(encode_wav(buf)[HEADER_SIZE:], dtype="<i2")
    np.testing.assert_array_equal(out, values)


def test_roundtrip_within_one_lsb_at_positive_extreme():
    values = np.arange(16384, 32768, dtype=np.int16)
    buf = decode_pcm(values.astype("<i2").tobytes())
    out = np.frombuffer(encode_wav(buf)[HEADER_SIZE:], dtype="<i2").astype(int)
    assert np.all(values.astype(int) - out <= 1)
    assert np.all(out <= values)


def test_empty_buffer_is_header_only():
    wav = encode_wav(AudioBuffer.silent(0))
    assert len(wav) == HEADER_SIZE
    assert struct.unpack("<I", wav[40:44])[0] == 0


def test_serializer_cursor_advances_per_field():
    out = WavSerializer(12)
    out.write_tag(b"data")
    assert out.position == 4
    out.write_uint16(0xBEEF)
    assert out.position == 6
    out.write_uint32(1)
    assert out.position == 10
    out.write_samples(np.array([-2], dtype=np.int16))
    assert out.position == 12
    assert out.getvalue() == b"data\xef\xbe\x01\x00\x00\x00\xfe\xff"


def test_serializer_rejects_bad_tag():
    with pytest.raises(ValueError):
        WavSerializer(4).write_tag(b"fmt")


def test_read_wav_roundtrip(stereo_tone):
    buf = read_wav(encode_wav(stereo_tone))
    assert buf.num_channels == 2
    assert buf.sample_rate == 24000
    np.testing.assert_allclose(buf.samples, stereo_tone.samples, atol=1e-4)


def test_read_wav_rejects_garbage():
    with pytest.raises(FormatError) as exc:
        read_wav(b"not a wav file at all")
    assert exc.value.stage == "decode"


def test_read_wav_rejects_8_bit():
    raw = io.BytesIO()
    with wave.open(raw, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(1)
        wf.setframerate(8000)
        wf.writeframes(b"\x80" * 10)
    with pytest.raises(FormatError):
        read_wav(raw.getvalue())


def test_encoded_blob_to_wav_preview():
    pcm = pcm_bytes([0, 100, -100, -32768, 16000])
    wav = encoded_blob_to_wav(base64.b64encode(pcm).decode("ascii"))
    assert len(wav) == HEADER_SIZE + len(pcm)
    assert wav[HEADER_SIZE:] == pcm
    assert struct.unpack("<I", wav[24:28])[0] == 24000


def test_encoded_blob_to_wav_custom_format():
    pcm = pcm_bytes([1, 2, 3, 4])
    wav = encoded_blob_to_wav(base64.b64encode(pcm), sample_rate=48000, num_channels=2)
    channels, rate = struct.unpack("<HI", wav[22:28])
    assert (channels, rate) == (2, 48000)


def test_encoded_blob_to_wav_invalid_payload():
    with pytest.raises(DecodeError):
        encoded_blob_to_wav("%%%")


def test_integral_float_sample_rate_is_stored_as_int():
    buf = AudioBuffer(np.zeros(10), 48000 / 2)
    assert buf.sample_rate == 24000
    assert isinstance(buf.sample_rate, int)
    assert struct.unpack("<I", encode_wav(buf)[24:28])[0] == 24000


@pytest.mark.parametrize("rate", [24000.5, float("nan"), float("inf"), "24000"])
def test_non_integral_sample_rate_rejected(rate):
    with pytest.raises(ValueError):
        AudioBuffer(np.zeros(10), rate)


def test_quantize_rounds_rather_than_truncates():
    # 0.6 LSB rounds up to 1; truncation toward zero would give 0
    assert quantize(np.array([0.6 / 32767, -0.6 / 32768])).tolist() == [1, -1]
