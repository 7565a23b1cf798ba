from __future__ import annotations

import struct
from typing import Any

import pytest

from dtepack.decode.blob import (
    FDT_BEGIN_NODE,
    FDT_END,
    FDT_END_NODE,
    FDT_MAGIC,
    FDT_PROP,
    HEADER_SIZE,
)

RSVMAP_SIZE = 16


class BlobBuilder:
    """Assembles small blobs token by token for decoder tests."""

    def __init__(self) -> None:
        self._tokens: list[tuple[str, Any]] = []
        self._strings = bytearray()
        self._string_offsets: dict[str, int] = {}

    def begin_node(self, name: str = "") -> "BlobBuilder":
        self._tokens.append(("begin", name))
        return self

    def prop(self, name: str, payload: bytes | str = b"") -> "BlobBuilder":
        if isinstance(payload, str):
            payload = payload.encode("ascii") + b"\0"
        self._tokens.append(("prop", (self._string_offset(name), payload)))
        return self

    def prop_at(self, name_offset: int, payload: bytes = b"") -> "BlobBuilder":
        self._tokens.append(("prop", (name_offset, payload)))
        return self

    def end_node(self) -> "BlobBuilder":
        self._tokens.append(("word", FDT_END_NODE))
        return self

    def end(self) -> "BlobBuilder":
        self._tokens.append(("word", FDT_END))
        return self

    def word(self, value: int) -> "BlobBuilder":
        self._tokens.append(("word", value))
        return self

    def struct_block(self, byte_order: str = "big") -> bytes:
        fmt = ">" if byte_order == "big" else "<"
        out = bytearray()
        for kind, value in self._tokens:
            if kind == "begin":
                out += struct.pack(f"{fmt}I", FDT_BEGIN_NODE)
                out += _pad(value.encode("utf-8") + b"\0")
            elif kind == "prop":
                name_offset, payload = value
                out += struct.pack(f"{fmt}3I", FDT_PROP, len(payload), name_offset)
                out += _pad(payload)
            else:
                out += struct.pack(f"{fmt}I", value)
        return bytes(out)

    def build(
        self,
        *,
        byte_order: str = "big",
        version: int = 17,
        last_comp_version: int = 16,
        **overrides: int,
    ) -> bytes:
        """Return a complete blob; header words can be overridden by name."""
        fmt = ">" if byte_order == "big" else "<"
        struct_block = self.struct_block(byte_order)
        strings_block = bytes(self._strings)

        off_mem_rsvmap = HEADER_SIZE
        off_dt_struct = off_mem_rsvmap + RSVMAP_SIZE
        off_dt_strings = off_dt_struct + len(struct_block)
        total_size = off_dt_strings + len(strings_block)

        fields = {
            "magic": FDT_MAGIC,
            "total_size": total_size,
            "off_dt_struct": off_dt_struct,
            "off_dt_strings": off_dt_strings,
            "off_mem_rsvmap": off_mem_rsvmap,
            "version": version,
            "last_comp_version": last_comp_version,
            "boot_cpuid_phys": 0,
            "size_dt_strings": len(strings_block),
            "size_dt_struct": len(struct_block),
        }
        fields.update(overrides)

        header = struct.pack(f"{fmt}10I", *fields.values())
        return header + bytes(RSVMAP_SIZE) + struct_block + strings_block

    def _string_offset(self, name: str) -> int:
        if name not in self._string_offsets:
            self._string_offsets[name] = len(self._strings)
            self._strings += name.encode("utf-8") + b"\0"
        return self._string_offsets[name]


def _pad(data: bytes) -> bytes:
    return data + bytes(-len(data) % 4)


def sample_builder() -> BlobBuilder:
    return (
        BlobBuilder()
        .begin_node("")
        .prop("compatible", "acme,devboard")
        .prop("#address-cells", struct.pack(">I", 1))
        .begin_node("soc")
        .begin_node("uart@1000")
        .prop("status", "okay")
        .prop("reg", struct.pack(">2I", 0x1000, 0x10))
        .end_node()
        .end_node()
        .begin_node("chosen")
        .prop("empty")
        .end_node()
        .end_node()
        .end()
    )


@pytest.fixture
def blob_builder() -> type[BlobBuilder]:
    return BlobBuilder


@pytest.fixture
def sample_blob() -> bytes:
    return sample_builder().build()
