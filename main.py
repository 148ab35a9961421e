#!/usr/bin/env python3
"""SILK voice decoder CLI with optional ffmpeg transcoding.

Decodes SILK v3 files (WeChat/QQ voice messages and similar) to raw 16-bit
PCM, then optionally converts the PCM to another format with **ffmpeg**.
Point it at one file, or at a folder plus a file-name pattern to convert a
whole tree.

Examples
--------
Decode one file to a.pcm:
    python main.py a.amr

Decode and convert to a.mp3:
    python main.py a.amr --format mp3

Convert every .amr under ./voice to mp3 (recursive):
    python main.py voice -d '.*\\.amr' --format mp3

Use a specific ffmpeg binary:
    python main.py a.amr --format mp3 --ffmpeg /usr/local/bin/ffmpeg
"""
from __future__ import annotations

import argparse
import shutil
import sys
from typing import Optional, Sequence

from convert import (
    DEFAULT_SAMPLE_RATE,
    ConfigError,
    FileTask,
    MissingInputError,
    MissingTranscoderError,
    RunConfig,
    compile_pattern,
    run_batch,
    run_task,
    summarize,
)
from decoders import DEFAULT_DECODER, get_decoder, list_decoders

EXAMPLES = """\
examples:
  %(prog)s a.amr --format mp3
      decode a.amr and convert it to a.mp3
  %(prog)s voice -d '.*\\.amr' --format mp3
      convert every .amr under the voice folder to .mp3
  %(prog)s a.amr --format mp3 --ffmpeg /usr/local/bin/ffmpeg
      use the given ffmpeg binary

--format needs ffmpeg, either via --ffmpeg or on PATH.
"""

###############################################################################
# Argument parsing
###############################################################################


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:  # pragma: no cover
    parser = argparse.ArgumentParser(
        prog="silk-batch",
        description="Decode SILK v3 audio to PCM, optionally converting it with ffmpeg.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("input", help="Input file, or input folder when used with -d.")

    # Batch selection
    parser.add_argument(
        "-d",
        "--pattern",
        metavar="REGEX",
        default=None,
        help="Treat INPUT as a folder and decode every file whose name matches REGEX (recursive).",
    )

    # Decoding
    parser.add_argument(
        "-r",
        "--sample-rate",
        type=int,
        default=DEFAULT_SAMPLE_RATE,
        help="Sample rate in Hz (default: %(default)s).",
    )
    parser.add_argument(
        "--decoder",
        choices=list_decoders(),
        default=DEFAULT_DECODER,
        help="Decoder to use (default: %(default)s).",
    )

    # Output
    parser.add_argument(
        "-o",
        "--output",
        default="",
        help="Output file name (single file) or output suffix (batch).",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="target_format",
        default="",
        help="Target audio format such as mp3, wav or flac; requires ffmpeg.",
    )
    parser.add_argument("--ffmpeg", metavar="PATH", default=None, help="Path to the ffmpeg binary.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print commands and results.")

    return parser.parse_args(argv)

###############################################################################
# Configuration
###############################################################################


def resolve_transcoder(target_format: str, ffmpeg: Optional[str]) -> Optional[str]:
    """Return the ffmpeg binary to use, or None when no conversion is wanted."""
    if not target_format:
        return None
    if ffmpeg:
        return ffmpeg

    found = shutil.which("ffmpeg")
    if found is None:
        raise MissingTranscoderError(
            "--ffmpeg was not given and ffmpeg is not on PATH; install it or pass its path."
        )
    return found


def build_config(args: argparse.Namespace) -> RunConfig:
    """Validate the invocation and freeze it into a RunConfig.

    Nothing on disk is touched here, so every error raised is reported
    before the first file is opened.
    """
    if not args.input:
        raise MissingInputError("an input file is required.")

    transcoder = resolve_transcoder(args.target_format, args.ffmpeg)
    pattern = compile_pattern(args.pattern) if args.pattern is not None else None

    return RunConfig(
        source=args.input,
        pattern=pattern,
        sample_rate=args.sample_rate,
        output=args.output,
        target_format=args.target_format,
        transcoder=transcoder,
        verbose=args.verbose,
        decoder=args.decoder,
    )

###############################################################################
# Main program flow
###############################################################################


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = build_config(args)
        decoder = get_decoder(config.decoder)
    except (ConfigError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not config.batch:
        outcome = run_task(FileTask(config.source, batch=False), config, decoder)
        if not outcome.ok:
            print(f"❌ {outcome.error}", file=sys.stderr)
            return 1
        if config.verbose:
            print(f"→ {outcome.destination}")
        return 0

    # Individual failures are reported by run_batch; they never fail the run.
    outcomes = run_batch(config, decoder)
    if not outcomes:
        print(f"⚠️  No files under {config.source} match {config.pattern.pattern!r}.", file=sys.stderr)
    print(summarize(outcomes))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
