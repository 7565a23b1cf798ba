"""Decoder selection and file loading."""

from __future__ import annotations

import logging
from pathlib import Path

from dtepack.config import DecoderConfig
from dtepack.core.models import Tree
from dtepack.decode.base import TreeDecoder
from dtepack.decode.blob import BlobDecoder
from dtepack.decode.exceptions import UnsupportedFormatError
from dtepack.decode.source import SourceDecoder

logger = logging.getLogger(__name__)


def default_decoders() -> tuple[TreeDecoder, ...]:
    """Decoders in the fixed order they are consulted."""
    return (BlobDecoder(), SourceDecoder())


def select_decoder(
    data: bytes,
    source_identifier: str = "",
    *,
    decoders: tuple[TreeDecoder, ...] | None = None,
) -> TreeDecoder:
    """Pick a decoder by content first, then by file extension."""
    candidates = decoders if decoders is not None else default_decoders()

    for decoder in candidates:
        if decoder.sniff(data):
            return decoder

    suffix = Path(source_identifier).suffix.lower() if source_identifier else ""
    if suffix:
        for decoder in candidates:
            if suffix in decoder.extensions:
                return decoder

    label = source_identifier or "<memory>"
    raise UnsupportedFormatError(f"unrecognized device tree format: {label}")


def decode_bytes(
    data: bytes,
    source_identifier: str = "",
    *,
    config: DecoderConfig | None = None,
) -> Tree:
    decoder = select_decoder(data, source_identifier)
    logger.debug("decoding %s with %s decoder", source_identifier or "<memory>", decoder.name)
    return decoder.decode(data, source_identifier=source_identifier, config=config)


def load_tree(path: str | Path, *, config: DecoderConfig | None = None) -> Tree:
    """Read a file and decode it into a tree.

    `OSError` from reading propagates unchanged; decode failures raise
    `DecodeError` and never yield a partial tree.
    """
    target = Path(path)
    data = target.read_bytes()
    return decode_bytes(data, str(target), config=config)
