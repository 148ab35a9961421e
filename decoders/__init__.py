"""Decoders selectable with ``--decoder``.

Only SILK v3 ships today; the table maps the CLI name to its class.
"""

from __future__ import annotations

from typing import Dict, List, Type

from .base import Decoder
from .silk_decoder import SilkDecoder

_DECODERS: Dict[str, Type[Decoder]] = {
    "silk": SilkDecoder,
}

DEFAULT_DECODER = "silk"


def list_decoders() -> List[str]:
    return list(_DECODERS)


def get_decoder(name: str) -> Decoder:
    """Instantiate the decoder registered as *name*.

    Raises:
        ValueError: If no decoder has that name.
    """
    try:
        return _DECODERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown decoder: '{name}'. Available decoders: {', '.join(_DECODERS)}"
        ) from None


__all__ = ["Decoder", "SilkDecoder", "DEFAULT_DECODER", "list_decoders", "get_decoder"]
