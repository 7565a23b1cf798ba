"""Decoder subsystem for dtepack."""

from dtepack.decode.base import TreeDecoder
from dtepack.decode.blob import (
    FDT_MAGIC,
    FDT_MAGIC_SWAPPED,
    HEADER_SIZE,
    BlobDecoder,
    BlobHeader,
    decode_blob,
    detect_byte_order,
    infer_blob_value,
    parse_blob_header,
)
from dtepack.decode.exceptions import (
    BadMagicError,
    BlobCompatibilityWarning,
    BlockOverflowError,
    DecodeError,
    DepthLimitError,
    FormatError,
    MalformedStructureError,
    OffsetOutOfRangeError,
    SizeMismatchError,
    SourceSyntaxError,
    TooSmallError,
    UnsupportedFormatError,
    UnsupportedVersionError,
)
from dtepack.decode.loader import decode_bytes, default_decoders, load_tree, select_decoder
from dtepack.decode.source import SourceDecoder, decode_source, parse_source_value

__all__ = [
    "FDT_MAGIC",
    "FDT_MAGIC_SWAPPED",
    "HEADER_SIZE",
    "TreeDecoder",
    "BlobDecoder",
    "BlobHeader",
    "SourceDecoder",
    "DecodeError",
    "FormatError",
    "TooSmallError",
    "BadMagicError",
    "SizeMismatchError",
    "OffsetOutOfRangeError",
    "BlockOverflowError",
    "UnsupportedVersionError",
    "MalformedStructureError",
    "DepthLimitError",
    "SourceSyntaxError",
    "UnsupportedFormatError",
    "BlobCompatibilityWarning",
    "decode_blob",
    "decode_source",
    "decode_bytes",
    "default_decoders",
    "detect_byte_order",
    "infer_blob_value",
    "load_tree",
    "parse_blob_header",
    "parse_source_value",
    "select_decoder",
]
