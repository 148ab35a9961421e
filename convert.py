#!/usr/bin/env python3
"""Decode SILK voice files to raw PCM, optionally transcoding with ffmpeg.

This module holds the batch machinery behind *main.py*: picking candidate
files, naming outputs, decoding each file and handing the PCM to a sink. The
sink is either a plain ``.pcm`` write or an **ffmpeg** process that reads the
PCM from stdin and writes any container it supports.

Files are processed one at a time. In batch mode a failing file is reported
and skipped; it never stops the run.
"""
from __future__ import annotations

import enum
import os
import re
import subprocess
import sys
from dataclasses import dataclass
from typing import Iterator, List, Optional, Pattern, Sequence, Union

from decoders import Decoder

PathLike = Union[str, os.PathLike]

DEFAULT_SUFFIX = ".pcm"
DEFAULT_SAMPLE_RATE = 24000

###############################################################################
# Errors
###############################################################################


class ConfigError(Exception):
    """Invalid invocation, detected before any file is touched."""


class MissingInputError(ConfigError):
    pass


class PatternCompileError(ConfigError):
    pass


class MissingTranscoderError(ConfigError):
    pass


class Stage(str, enum.Enum):
    OPEN = "open"
    DECODE = "decode"
    NAME = "name"
    WRITE = "write"
    TRANSCODE = "transcode"


class ConversionError(Exception):
    """A single file failed somewhere between open and sink."""

    stage: Stage

    def __init__(self, path: PathLike, message: str):
        super().__init__(message)
        self.path = path


class OpenError(ConversionError):
    stage = Stage.OPEN


class DecodeError(ConversionError):
    stage = Stage.DECODE


class WriteError(ConversionError):
    stage = Stage.WRITE


class TranscodeSpawnError(ConversionError):
    stage = Stage.TRANSCODE


class TranscodeExitError(ConversionError):
    stage = Stage.TRANSCODE

    def __init__(self, path: PathLike, message: str, output: str = ""):
        super().__init__(path, message)
        self.output = output

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}\nOutput: {self.output}" if self.output else base


###############################################################################
# Data model
###############################################################################


@dataclass(frozen=True)
class RunConfig:
    """Everything one invocation needs, built once by the CLI."""

    source: PathLike
    pattern: Optional[Pattern[str]] = None
    sample_rate: int = DEFAULT_SAMPLE_RATE
    output: str = ""
    target_format: str = ""
    transcoder: Optional[str] = None
    verbose: bool = False
    decoder: str = "silk"

    @property
    def batch(self) -> bool:
        return self.pattern is not None

    @property
    def default_suffix(self) -> str:
        # ffmpeg infers the container from the extension
        return f".{self.target_format}" if self.target_format else DEFAULT_SUFFIX


@dataclass(frozen=True)
class FileTask:
    path: PathLike
    batch: bool = False


@dataclass(frozen=True)
class DecodedAudio:
    pcm: bytes
    sample_rate: int


@dataclass(frozen=True)
class Outcome:
    """Result of one FileTask: a destination on success, stage + error otherwise."""

    path: PathLike
    destination: Optional[str] = None
    stage: Optional[Stage] = None
    error: Optional[ConversionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


###############################################################################
# Output naming
###############################################################################


def output_name(
    source: PathLike,
    batch: bool,
    output: str = "",
    default_suffix: str = DEFAULT_SUFFIX,
) -> str:
    """Return the destination path for *source*.

    A single file with an *output* override is written exactly there. In batch
    mode the override is a suffix (``mp3`` and ``.mp3`` are equivalent). The
    suffix replaces everything from the last dot on, unless that dot is the
    very first character, in which case it is simply appended.
    """
    path = os.fspath(source)
    if output and not batch:
        return output

    suffix = default_suffix
    if output:
        suffix = output if output.startswith(".") else "." + output

    i = path.rfind(".")
    if i > 0:
        return path[:i] + suffix
    return path + suffix


###############################################################################
# File selection
###############################################################################


def compile_pattern(text: str) -> Pattern[str]:
    """Compile the batch file-name pattern, before any traversal starts."""
    try:
        return re.compile(text)
    except re.error as exc:
        raise PatternCompileError(f"cannot compile pattern {text!r}: {exc}") from exc


def _walk_files(root: str) -> Iterator[os.DirEntry]:
    entries: List[os.DirEntry] = []
    try:
        with os.scandir(root) as it:
            for entry in it:
                entries.append(entry)
    except OSError:
        # keep whatever was listed before the failure
        pass
    entries.sort(key=lambda e: e.name)

    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if is_dir:
            yield from _walk_files(entry.path)
        else:
            yield entry


def select_paths(root: PathLike, pattern: Optional[Pattern[str]] = None) -> Iterator[str]:
    """Yield the files to decode.

    Without a pattern this is just *root*, unchecked; the open step reports a
    missing file. With a pattern, *root* is walked recursively in name order
    and every non-directory whose base name matches is yielded. Unreadable
    directories and entries are skipped silently.
    """
    path = os.fspath(root)
    if pattern is None:
        yield path
        return

    if not os.path.isdir(path):
        if os.path.lexists(path) and pattern.search(os.path.basename(path)):
            yield path
        return

    for entry in _walk_files(path):
        if pattern.search(entry.name):
            yield entry.path


###############################################################################
# Sinks
###############################################################################


def write_raw(source: PathLike, destination: str, audio: DecodedAudio) -> None:
    """Write the PCM buffer as-is. A failed write may leave a partial file."""
    try:
        with open(destination, "wb") as out:
            out.write(audio.pcm)
    except OSError as exc:
        raise WriteError(source, f"failed to write output file {destination!r}: {exc}") from exc


def transcoder_command(transcoder: str, sample_rate: int, destination: str) -> List[str]:
    return [
        transcoder,
        "-y",
        "-f", "s16le",  # PCM is little-endian
        "-ar", str(sample_rate),
        "-i", "-",  # read from stdin
        destination,
    ]


def transcode(
    source: PathLike,
    destination: str,
    audio: DecodedAudio,
    transcoder: str,
    verbose: bool = False,
) -> None:
    """Feed the PCM buffer to ffmpeg on stdin and wait for it to finish."""
    cmd = transcoder_command(transcoder, audio.sample_rate, destination)
    if verbose:
        print(f"Running: {' '.join(cmd)}")

    try:
        proc = subprocess.run(
            cmd,
            input=audio.pcm,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as exc:
        raise TranscodeSpawnError(source, f"failed to run {transcoder}: {exc}") from exc

    if proc.returncode != 0:
        output = proc.stdout.decode("utf-8", errors="replace").strip()
        raise TranscodeExitError(
            source,
            f"{transcoder} exited with status {proc.returncode}",
            output=output,
        )

    if verbose:
        print(f"Generated: {destination}")


###############################################################################
# Pipeline
###############################################################################


def decode_file(task: FileTask, config: RunConfig, decoder: Decoder) -> str:
    """Decode one file and emit it through the configured sink.

    Returns the destination path. Raises a ConversionError subclass naming
    the stage that failed.
    """
    try:
        stream = open(task.path, "rb")
    except OSError as exc:
        raise OpenError(task.path, f"failed to open input file {os.fspath(task.path)!r}: {exc}") from exc

    # the source handle is closed before the sink runs
    with stream:
        try:
            pcm = decoder.decode(stream, config.sample_rate)
        except Exception as exc:
            raise DecodeError(task.path, f"failed to decode input file {os.fspath(task.path)!r}: {exc}") from exc

    audio = DecodedAudio(pcm=pcm, sample_rate=config.sample_rate)
    if config.verbose:
        print(f"Decoded {os.fspath(task.path)}: {len(audio.pcm)} bytes at {audio.sample_rate} Hz")

    destination = output_name(task.path, task.batch, config.output, config.default_suffix)

    if config.target_format:
        transcode(task.path, destination, audio, config.transcoder or "ffmpeg", config.verbose)
    else:
        write_raw(task.path, destination, audio)
    return destination


def run_task(task: FileTask, config: RunConfig, decoder: Decoder) -> Outcome:
    """Run the pipeline for one file, turning failures into an Outcome."""
    try:
        destination = decode_file(task, config, decoder)
    except ConversionError as exc:
        return Outcome(path=task.path, stage=exc.stage, error=exc)
    return Outcome(path=task.path, destination=destination)


###############################################################################
# Batch
###############################################################################


def report_failure(outcome: Outcome) -> None:
    print(f"❌ [{outcome.stage.value}] {os.fspath(outcome.path)}: {outcome.error}", file=sys.stderr)


def run_batch(config: RunConfig, decoder: Decoder) -> List[Outcome]:
    """Decode every file *select_paths* yields, continuing past failures."""
    outcomes: List[Outcome] = []
    for path in select_paths(config.source, config.pattern):
        outcome = run_task(FileTask(path, batch=True), config, decoder)
        if outcome.ok:
            print(f"→ {outcome.destination}")
        else:
            report_failure(outcome)
        outcomes.append(outcome)
    return outcomes


def summarize(outcomes: Sequence[Outcome]) -> str:
    failed = sum(1 for o in outcomes if not o.ok)
    return f"{len(outcomes) - failed} succeeded, {failed} failed"
