"""Decoder contract shared by the blob and source decoders."""

from __future__ import annotations

from typing import Protocol

from dtepack.config import DecoderConfig
from dtepack.core.models import Tree


class TreeDecoder(Protocol):
    """Protocol for decoders that turn one input buffer into one tree."""

    name: str
    extensions: tuple[str, ...]

    def sniff(self, data: bytes) -> bool:
        """Return True when the content itself identifies this format."""

    def decode(
        self,
        data: bytes,
        *,
        source_identifier: str = "",
        config: DecoderConfig | None = None,
    ) -> Tree:
        """Decode `data` into a fully formed tree or raise `DecodeError`."""
