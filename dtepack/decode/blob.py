"""Decoder for the binary, offset-addressed device tree blob format.

Every read is bounds-checked against the validated buffer; any structural
problem aborts the whole decode.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import struct
from typing import Any
import warnings

from dtepack.config import DecoderConfig
from dtepack.core.models import Diagnostic, Node, Property, Tree, Value
from dtepack.core.types import ROOT_NAME
from dtepack.decode.exceptions import (
    BadMagicError,
    BlobCompatibilityWarning,
    BlockOverflowError,
    DepthLimitError,
    MalformedStructureError,
    OffsetOutOfRangeError,
    SizeMismatchError,
    TooSmallError,
    UnsupportedVersionError,
)

logger = logging.getLogger(__name__)

FDT_MAGIC = 0xD00DFEED
FDT_MAGIC_SWAPPED = 0xEDFE0DD0
HEADER_SIZE = 40

FDT_BEGIN_NODE = 0x1
FDT_PROP = 0x2
FDT_END_NODE = 0x3
FDT_END = 0x9

MIN_SUPPORTED_VERSION = 16
MAX_SUPPORTED_VERSION = 17

# Upper bound for a property name offset, independent of the strings block size.
MAX_NAME_OFFSET = 0x1000000

_MAGIC = struct.Struct(">I")
_HEADER_BY_ORDER = {
    "big": struct.Struct(">10I"),
    "little": struct.Struct("<10I"),
}


@dataclass(frozen=True, slots=True)
class BlobHeader:
    """The ten header words of a blob, normalized to host order."""

    magic: int
    total_size: int
    off_dt_struct: int
    off_dt_strings: int
    off_mem_rsvmap: int
    version: int
    last_comp_version: int
    boot_cpuid_phys: int
    size_dt_strings: int
    size_dt_struct: int
    byte_order: str = "big"

    @property
    def struct_end(self) -> int:
        return self.off_dt_struct + self.size_dt_struct

    @property
    def strings_end(self) -> int:
        return self.off_dt_strings + self.size_dt_strings

    def to_dict(self) -> dict[str, Any]:
        return {
            "magic": f"0x{self.magic:08x}",
            "total_size": self.total_size,
            "off_dt_struct": self.off_dt_struct,
            "off_dt_strings": self.off_dt_strings,
            "off_mem_rsvmap": self.off_mem_rsvmap,
            "version": self.version,
            "last_comp_version": self.last_comp_version,
            "boot_cpuid_phys": self.boot_cpuid_phys,
            "size_dt_strings": self.size_dt_strings,
            "size_dt_struct": self.size_dt_struct,
            "byte_order": self.byte_order,
        }


def detect_byte_order(data: bytes) -> str | None:
    """Return "big" or "little" when `data` starts with a blob magic word."""
    if len(data) < _MAGIC.size:
        return None
    (magic,) = _MAGIC.unpack_from(data, 0)
    if magic == FDT_MAGIC:
        return "big"
    if magic == FDT_MAGIC_SWAPPED:
        return "little"
    return None


def parse_blob_header(data: bytes) -> BlobHeader:
    """Validate the fixed header against the buffer it came from."""
    buffer_len = len(data)
    if buffer_len < HEADER_SIZE:
        raise TooSmallError(
            f"buffer of {buffer_len} bytes is smaller than the {HEADER_SIZE}-byte header"
        )

    byte_order = detect_byte_order(data)
    if byte_order is None:
        (magic,) = _MAGIC.unpack_from(data, 0)
        raise BadMagicError(f"invalid blob magic: 0x{magic:08x}")

    header = BlobHeader(*_HEADER_BY_ORDER[byte_order].unpack_from(data, 0), byte_order=byte_order)

    if header.total_size != buffer_len:
        raise SizeMismatchError(
            f"size mismatch: header declares {header.total_size} bytes, buffer has {buffer_len}"
        )

    for label, offset in (
        ("struct", header.off_dt_struct),
        ("strings", header.off_dt_strings),
        ("memory reservation map", header.off_mem_rsvmap),
    ):
        if offset >= buffer_len:
            raise OffsetOutOfRangeError(
                f"{label} block offset {offset} is outside the {buffer_len}-byte buffer"
            )

    if header.struct_end > buffer_len:
        raise BlockOverflowError(
            f"struct block ends at {header.struct_end}, past the {buffer_len}-byte buffer"
        )
    if header.strings_end > buffer_len:
        raise BlockOverflowError(
            f"strings block ends at {header.strings_end}, past the {buffer_len}-byte buffer"
        )

    if header.version < MIN_SUPPORTED_VERSION:
        raise UnsupportedVersionError(
            f"blob version {header.version} is older than {MIN_SUPPORTED_VERSION}"
        )

    return header


def infer_blob_value(payload: bytes) -> Value:
    """Type a raw property payload as a string or a byte sequence."""
    if not payload:
        return Value.string("")
    if payload[-1] == 0 and all(32 <= byte <= 126 for byte in payload[:-1]):
        return Value.string(payload[:-1].decode("ascii"))
    return Value.raw(payload)


def decode_blob(
    data: bytes,
    *,
    source_identifier: str = "",
    config: DecoderConfig | None = None,
) -> Tree:
    """Decode a complete blob buffer into a tree."""
    cfg = config or DecoderConfig()
    header = parse_blob_header(data)

    diagnostics: list[Diagnostic] = []
    if header.version > MAX_SUPPORTED_VERSION:
        message = (
            f"blob version {header.version} is newer than {MAX_SUPPORTED_VERSION} "
            "and may not be fully supported"
        )
        diagnostics.append(Diagnostic(code="BlobVersion", message=message))
        warnings.warn(message, BlobCompatibilityWarning, stacklevel=2)

    root = _StructWalker(bytes(data), header, max_depth=cfg.max_depth).walk()
    logger.debug(
        "decoded blob %s: version=%d byte_order=%s",
        source_identifier or "<memory>",
        header.version,
        header.byte_order,
    )
    return Tree(
        root=root,
        source_identifier=source_identifier,
        format="blob",
        header=header,
        diagnostics=diagnostics,
    )


class BlobDecoder:
    """Blob format adapter used by decoder selection."""

    name = "blob"
    extensions: tuple[str, ...] = (".dtb", ".dtbo")

    def sniff(self, data: bytes) -> bool:
        return detect_byte_order(data) is not None

    def decode(
        self,
        data: bytes,
        *,
        source_identifier: str = "",
        config: DecoderConfig | None = None,
    ) -> Tree:
        return decode_blob(data, source_identifier=source_identifier, config=config)


class _StructWalker:
    def __init__(self, data: bytes, header: BlobHeader, *, max_depth: int) -> None:
        self._data = data
        self._header = header
        self._max_depth = max_depth
        self._limit = header.struct_end
        self._word = struct.Struct(">I" if header.byte_order == "big" else "<I")
        self._prop = struct.Struct(">3I" if header.byte_order == "big" else "<3I")
        self._finished = False

    def walk(self) -> Node:
        offset = self._header.off_dt_struct
        token = self._token(offset)
        if token != FDT_BEGIN_NODE:
            raise MalformedStructureError(
                f"struct block starts with token 0x{token:x}, expected BEGIN_NODE"
            )
        root, _ = self._parse_node(offset, depth=1)
        root.name = ROOT_NAME
        return root

    def _token(self, offset: int) -> int:
        if offset + self._word.size > self._limit:
            raise MalformedStructureError(f"token at offset {offset} runs past the struct block")
        (token,) = self._word.unpack_from(self._data, offset)
        return token

    def _parse_node(self, offset: int, *, depth: int) -> tuple[Node, int]:
        if depth > self._max_depth:
            raise DepthLimitError(f"node nesting exceeds max depth {self._max_depth}")

        name, cursor = self._read_node_name(offset + self._word.size)
        if not name and depth > 1:
            raise MalformedStructureError(f"empty node name at offset {offset}")
        node = Node(name=name or ROOT_NAME)

        while not self._finished:
            token = self._token(cursor)
            if token == FDT_PROP:
                prop, cursor = self._parse_property(cursor)
                node.set_property(prop)
            elif token == FDT_BEGIN_NODE:
                child, cursor = self._parse_node(cursor, depth=depth + 1)
                node.add_child(child)
            elif token == FDT_END_NODE:
                return node, cursor + self._word.size
            elif token == FDT_END:
                self._finished = True
            else:
                cursor += self._word.size

        return node, cursor

    def _read_node_name(self, start: int) -> tuple[str, int]:
        end = self._data.find(b"\0", start, self._limit)
        if end < 0:
            raise MalformedStructureError(f"unterminated node name at offset {start}")
        name = _decode_name(self._data[start:end], start)
        return name, start + _align4(end - start + 1)

    def _parse_property(self, offset: int) -> tuple[Property, int]:
        payload_start = offset + self._prop.size
        if payload_start > self._limit:
            raise MalformedStructureError(f"truncated property record at offset {offset}")
        _, length, name_offset = self._prop.unpack_from(self._data, offset)

        if name_offset >= MAX_NAME_OFFSET or name_offset >= self._header.size_dt_strings:
            raise MalformedStructureError(
                f"property name offset {name_offset} at offset {offset} is out of range"
            )

        name_start = self._header.off_dt_strings + name_offset
        name_end = self._data.find(b"\0", name_start, self._header.strings_end)
        if name_end < 0:
            raise MalformedStructureError(f"unterminated property name at offset {name_start}")
        name = _decode_name(self._data[name_start:name_end], name_start)
        if not name:
            raise MalformedStructureError(f"empty property name at offset {offset}")

        payload_end = payload_start + length
        if payload_end > self._limit:
            raise MalformedStructureError(
                f"property '{name}' payload of {length} bytes runs past the struct block"
            )

        value = infer_blob_value(self._data[payload_start:payload_end])
        return Property(name=name, value=value), payload_start + _align4(length)


def _decode_name(raw: bytes, offset: int) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as error:
        raise MalformedStructureError(f"name at offset {offset} is not valid UTF-8") from error


def _align4(length: int) -> int:
    return (length + 3) & ~3
