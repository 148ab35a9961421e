"""SILK v3 decoder.

This decoder wraps the silk-python library (``pysilk``), which decodes
``#!SILK_V3`` streams straight from a file object into another file object.
"""

from __future__ import annotations

import io
from typing import BinaryIO

import pysilk

from .base import Decoder

# SILK's API-level output rates
SAMPLE_RATES = (8000, 12000, 16000, 24000, 32000, 44100, 48000)


class SilkDecoder(Decoder):
    """SILK v3 voice-message decoder (WeChat/QQ voice notes)."""

    def decode(self, stream: BinaryIO, sample_rate: int) -> bytes:
        """Decode a SILK stream to PCM.

        Raises:
            ValueError: If *sample_rate* is not a SILK output rate.
            pysilk.SilkError: If the stream is not valid SILK.
        """
        if sample_rate not in SAMPLE_RATES:
            rates = ", ".join(str(r) for r in SAMPLE_RATES)
            raise ValueError(f"Unsupported SILK sample rate: {sample_rate}. Available: {rates}")

        pcm = io.BytesIO()
        pysilk.decode(stream, pcm, sample_rate)
        return pcm.getvalue()
