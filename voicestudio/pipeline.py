"""
Render pipeline: provider payload → PCM → speed/pitch → WAV.

Coordinates the full rendering workflow:

1. **Decode**: unwrap the base64 payload returned by the speech
   provider (or read raw PCM bytes) and interpret it as normalised
   per-channel samples.
2. **Transform**: time-stretch and resample so speed and pitch are
   controlled independently.  Skipped for neutral settings, which is
   the preview path.
3. **Encode**: serialise the result as a 16-bit PCM WAV file.

Usage::

    from voicestudio.pipeline import SpeechPipeline, StudioConfig

    pipeline = SpeechPipeline(StudioConfig(speed=1.2, pitch=-2.0))
    result = pipeline.render(base64_payload)
    Path("out.wav").write_bytes(result.wav_bytes)
    print(result.summary())
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from voicestudio.audio.decoder import decode_base64, decode_pcm
from voicestudio.audio.effects import EffectSettings, transform, transform_async
from voicestudio.audio.errors import AudioPipelineError, DecodeError
from voicestudio.audio.models import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE, AudioBuffer
from voicestudio.audio.resampler import BaseResampler, LinearResampler
from voicestudio.audio.wav_writer import encode_wav

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class StudioConfig:
    """
    All tuneable parameters for the render pipeline.

    Attributes:
        sample_rate:      Sample rate of the provider's PCM payload (Hz).
        num_channels:     Interleaved channel count of the payload.
        speed:            Playback speed multiplier (>1 = faster).
        pitch:            Pitch shift in semitones.
        raw_pcm:          Input files hold raw PCM bytes, not base64 text.
        strict_alignment: Fail on payloads that end in a partial frame
                          instead of dropping the trailing bytes.
        disable_tqdm:     Suppress progress bars for batch renders.
    """

    sample_rate: int = DEFAULT_SAMPLE_RATE
    num_channels: int = DEFAULT_CHANNELS
    speed: float = 1.0
    pitch: float = 0.0

    raw_pcm: bool = False
    strict_alignment: bool = False
    disable_tqdm: bool = False

    @property
    def effects(self) -> EffectSettings:
        return EffectSettings(speed=self.speed, pitch=self.pitch)


# ------------------------------------------------------------------
# Result
# ------------------------------------------------------------------


@dataclass
class RenderResult:
    """
    Output of a single render with per-phase timing.
    """

    wav_bytes: bytes = b""
    output_path: str = ""
    input_frames: int = 0
    output_frames: int = 0
    input_duration: float = 0.0
    output_duration: float = 0.0
    transformed: bool = False

    time_decode: float = 0.0
    time_transform: float = 0.0
    time_encode: float = 0.0

    @property
    def elapsed_seconds(self) -> float:
        return self.time_decode + self.time_transform + self.time_encode

    def summary(self) -> str:
        """Format a human-readable summary of the render."""
        mode = "transformed" if self.transformed else "preview (untransformed)"
        lines = [
            f"{'=' * 60}",
            "RENDER COMPLETE",
            f"{'=' * 60}",
        ]
        if self.output_path:
            lines.append(f"  Output:    {self.output_path}")
        lines += [
            f"  Mode:      {mode}",
            f"  Input:     {self.input_frames} frames ({self.input_duration:.2f}s)",
            f"  Output:    {self.output_frames} frames ({self.output_duration:.2f}s)",
            f"  WAV size:  {len(self.wav_bytes) / 1024:.1f} KB",
            "",
            f"  Decode:    {self.time_decode * 1000:.1f} ms",
            f"  Transform: {self.time_transform * 1000:.1f} ms",
            f"  Encode:    {self.time_encode * 1000:.1f} ms",
            f"  Total:     {self.elapsed_seconds * 1000:.1f} ms",
            f"{'=' * 60}",
        ]
        return "\n".join(lines)


@dataclass
class BatchResult:
    """Outcome of :meth:`SpeechPipeline.render_many`."""

    results: List[RenderResult] = field(default_factory=list)
    failures: List[Tuple[str, AudioPipelineError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class SpeechPipeline:
    """
    Turns provider speech payloads into speed/pitch-adjusted WAV files.

    Each render owns its working buffers, so one pipeline can serve
    concurrent :meth:`render_async` calls.
    """

    def __init__(
        self,
        config: Optional[StudioConfig] = None,
        resampler: Optional[BaseResampler] = None,
    ):
        self.config = config or StudioConfig()
        self.resampler = resampler or LinearResampler()
        # Validate speed/pitch up front rather than on the first render
        self._effects = self.config.effects

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    def render(self, payload: Union[str, bytes]) -> RenderResult:
        """
        Render a provider payload to WAV bytes.

        Args:
            payload: Base64 text, or raw PCM bytes when
                     ``config.raw_pcm`` is set.

        Returns:
            :class:`RenderResult` holding the WAV bytes and metrics.

        Raises:
            AudioPipelineError: Tagged with the stage that failed.
        """
        result = RenderResult()
        buffer = self._phase_decode(payload, result)

        t0 = time.perf_counter()
        if self._effects.is_identity:
            logger.debug("Neutral settings, skipping transform")
            final = buffer
        else:
            final = transform(
                buffer, self._effects.speed, self._effects.pitch, self.resampler
            )
            result.transformed = True
        result.time_transform = time.perf_counter() - t0

        self._phase_encode(final, result)
        return result

    async def render_async(self, payload: Union[str, bytes]) -> RenderResult:
        """Awaitable :meth:`render`; every phase runs in the default executor."""
        loop = asyncio.get_running_loop()
        result = RenderResult()
        buffer = await loop.run_in_executor(None, self._phase_decode, payload, result)

        t0 = time.perf_counter()
        if self._effects.is_identity:
            final = buffer
        else:
            final = await transform_async(
                buffer, self._effects.speed, self._effects.pitch, self.resampler
            )
            result.transformed = True
        result.time_transform = time.perf_counter() - t0

        await loop.run_in_executor(None, self._phase_encode, final, result)
        return result

    def render_file(
        self, input_path: Union[str, Path], output_path: Union[str, Path]
    ) -> RenderResult:
        """Render the payload stored at *input_path* to a WAV at *output_path*."""
        src = Path(input_path)
        payload = src.read_bytes()
        if not self.config.raw_pcm:
            try:
                payload = payload.decode("ascii")
            except UnicodeDecodeError as e:
                raise DecodeError(
                    f"{src} is not base64 text; use --raw for PCM input",
                    stage="decode",
                ) from e

        result = self.render(payload)

        dest = Path(output_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(result.wav_bytes)
        result.output_path = str(dest)
        logger.info(
            "Rendered %s → %s: %.2fs → %.2fs",
            src,
            dest,
            result.input_duration,
            result.output_duration,
        )
        return result

    def render_many(
        self, jobs: Sequence[Tuple[Union[str, Path], Union[str, Path]]]
    ) -> BatchResult:
        """
        Render several ``(input_path, output_path)`` pairs.

        A failing input is recorded and the batch carries on with the
        rest; nothing is retried.
        """
        batch = BatchResult()
        pbar = tqdm(
            jobs,
            desc="Rendering",
            unit="file",
            disable=self.config.disable_tqdm,
        )
        for input_path, output_path in pbar:
            pbar.set_postfix(file=Path(input_path).name)
            try:
                batch.results.append(self.render_file(input_path, output_path))
            except AudioPipelineError as e:
                logger.error("Failed to render %s: %s", input_path, e)
                batch.failures.append((str(input_path), e))

        logger.info(
            "Batch complete: %d rendered, %d failed",
            len(batch.results),
            len(batch.failures),
        )
        return batch

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _phase_decode(
        self, payload: Union[str, bytes], result: RenderResult
    ) -> AudioBuffer:
        cfg = self.config
        t0 = time.perf_counter()

        pcm = payload if cfg.raw_pcm else decode_base64(payload)
        buffer = decode_pcm(
            pcm,
            sample_rate=cfg.sample_rate,
            num_channels=cfg.num_channels,
            strict=cfg.strict_alignment,
        )

        result.input_frames = buffer.frame_count
        result.input_duration = buffer.duration
        result.time_decode = time.perf_counter() - t0
        return buffer

    def _phase_encode(self, buffer: AudioBuffer, result: RenderResult) -> None:
        t0 = time.perf_counter()
        result.wav_bytes = encode_wav(buffer)
        result.output_frames = buffer.frame_count
        result.output_duration = buffer.duration
        result.time_encode = time.perf_counter() - t0

    def __repr__(self) -> str:
        cfg = self.config
        return (
            f"SpeechPipeline(speed={cfg.speed}x, pitch={cfg.pitch:+g}st, "
            f"{cfg.sample_rate}Hz, {cfg.num_channels}ch, {self.resampler.name})"
        )
