"""Decoder interface.

A decoder turns one compressed voice file into raw PCM; the batch front end
only ever calls :meth:`Decoder.decode`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO


class Decoder(ABC):
    """Consumes an open binary stream, returns little-endian signed 16-bit PCM."""

    @abstractmethod
    def decode(self, stream: BinaryIO, sample_rate: int) -> bytes:
        """Decode *stream* into PCM.

        Args:
            stream: Source file opened for binary reading.
            sample_rate: Output sample rate in Hz.

        Returns:
            The fully buffered s16le PCM payload.
        """
        pass
