#!/usr/bin/env python3
"""
Voice Studio — CLI entry point.

Converts speech payloads saved from the TTS provider (base64 text, or
raw 16-bit PCM with ``--raw``) into WAV files, with independent speed
and pitch control.

Usage::

    python studio.py reply.b64
    python studio.py reply.b64 -o out.wav --speed 1.3 --pitch -2
    python studio.py take1.b64 take2.b64 --out-dir renders/ --pitch 3
    python studio.py capture.pcm -o out.wav --raw --sample-rate 48000 --channels 2

Verbosity levels::

    -v 0   Quiet — warnings and errors only.
    -v 1   Normal — per-file summaries and progress bars (default).
    -v 2   Debug — per-stage ratios, frame counts and timings.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Tuple

from voicestudio.audio.effects import PITCH_RANGE, SPEED_RANGE
from voicestudio.audio.models import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE
from voicestudio.pipeline import SpeechPipeline, StudioConfig

logger = logging.getLogger("voicestudio")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _positive_float(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'.")
    if not f > 0:
        raise argparse.ArgumentTypeError(f"Value must be > 0, got {value}.")
    return f


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid integer '{value}'.")
    if n < 1:
        raise argparse.ArgumentTypeError(f"Value must be >= 1, got {value}.")
    return n


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all pipeline options."""
    p = argparse.ArgumentParser(
        description="Render TTS speech payloads to WAV with speed/pitch control.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python studio.py reply.b64 -o out.wav --speed 1.3 --pitch -2\n"
            "  python studio.py a.b64 b.b64 --out-dir renders/\n"
            "  python studio.py capture.pcm --raw --channels 2\n"
        ),
    )

    # -- Positional --------------------------------------------------------
    p.add_argument("inputs", nargs="+", help="Payload file(s) to render")
    p.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output WAV path (single input only). "
        "Default: input path with a .wav suffix.",
    )
    p.add_argument(
        "--out-dir",
        default=None,
        metavar="DIR",
        help="Write outputs into DIR instead of next to each input",
    )

    # -- Input format ------------------------------------------------------
    fmt = p.add_argument_group("input format")
    fmt.add_argument(
        "--raw",
        action="store_true",
        help="Inputs are raw 16-bit little-endian PCM, not base64 text",
    )
    fmt.add_argument(
        "--sample-rate",
        type=_positive_int,
        default=DEFAULT_SAMPLE_RATE,
        metavar="HZ",
        help=f"Payload sample rate (default: {DEFAULT_SAMPLE_RATE})",
    )
    fmt.add_argument(
        "--channels",
        type=_positive_int,
        default=DEFAULT_CHANNELS,
        metavar="N",
        help=f"Interleaved channel count (default: {DEFAULT_CHANNELS})",
    )
    fmt.add_argument(
        "--strict",
        action="store_true",
        help="Fail on payloads ending in a partial frame instead of trimming",
    )

    # -- Effects -----------------------------------------------------------
    fx = p.add_argument_group("effects")
    fx.add_argument(
        "--speed",
        type=_positive_float,
        default=1.0,
        metavar="FLOAT",
        help="Speed multiplier, >1 is faster (default: 1.0)",
    )
    fx.add_argument(
        "--pitch",
        type=float,
        default=0.0,
        metavar="SEMITONES",
        help="Pitch shift in semitones (default: 0)",
    )

    # -- Debug / output control --------------------------------------------
    debug = p.add_argument_group("debug & output")
    debug.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    debug.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the root ``voicestudio`` logger.

    At verbosity 0 (WARNING), uses a minimal format. At 2 (DEBUG),
    includes timestamps and the module name.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger("voicestudio")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)


# ------------------------------------------------------------------
# Output path resolution
# ------------------------------------------------------------------


def _resolve_jobs(args: argparse.Namespace) -> List[Tuple[Path, Path]]:
    """Pair every input with its output WAV path."""
    jobs = []
    for name in args.inputs:
        src = Path(name)
        if args.output and len(args.inputs) == 1:
            dest = Path(args.output)
        else:
            dest = src.with_suffix(".wav")
            if args.out_dir:
                dest = Path(args.out_dir) / dest.name
        jobs.append((src, dest))
    return jobs


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main(argv=None):
    """Parse arguments, configure logging, and run the pipeline."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging must be configured before any logger calls
    _configure_logging(args.verbose)

    if args.output and len(args.inputs) > 1:
        parser.error("--output can only be used with a single input; use --out-dir")

    for name in args.inputs:
        if not Path(name).is_file():
            parser.error(f"Input file not found: {name}")

    config = StudioConfig(
        sample_rate=args.sample_rate,
        num_channels=args.channels,
        speed=args.speed,
        pitch=args.pitch,
        raw_pcm=args.raw,
        strict_alignment=args.strict,
        disable_tqdm=args.no_progress or args.verbose == 0 or len(args.inputs) == 1,
    )

    if not config.effects.in_ui_range():
        logger.warning(
            "Speed %.2fx / pitch %+.1f st is outside the usual range "
            "(speed %.1f–%.1f, pitch %+g..%+g); output may be degraded",
            config.speed,
            config.pitch,
            SPEED_RANGE[0],
            SPEED_RANGE[1],
            PITCH_RANGE[0],
            PITCH_RANGE[1],
        )

    pipeline = SpeechPipeline(config)
    logger.info("Voice Studio")
    logger.info("  Files:  %d", len(args.inputs))
    logger.info(
        "  Format: %d Hz, %d ch, %s",
        config.sample_rate,
        config.num_channels,
        "raw PCM" if config.raw_pcm else "base64",
    )
    if not config.effects.is_identity:
        logger.info("  Speed:  %.2fx", config.speed)
        logger.info("  Pitch:  %+.1f st", config.pitch)

    batch = pipeline.render_many(_resolve_jobs(args))

    if len(batch.results) == 1 and batch.ok:
        logger.info("\n%s", batch.results[0].summary())

    if not batch.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
