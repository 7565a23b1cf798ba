"""Decoder subsystem exceptions."""


class DecodeError(Exception):
    """Base class for decode errors."""


class FormatError(DecodeError):
    """Blob failed header or structure validation."""

    code = "FormatError"


class TooSmallError(FormatError):
    """Buffer is shorter than the fixed header."""

    code = "TooSmall"


class BadMagicError(FormatError):
    """Magic word matches neither byte order."""

    code = "BadMagic"


class SizeMismatchError(FormatError):
    """Declared total size differs from the buffer length."""

    code = "SizeMismatch"


class OffsetOutOfRangeError(FormatError):
    """A header block offset points past the buffer."""

    code = "OffsetOutOfRange"


class BlockOverflowError(FormatError):
    """A header block extent runs past the buffer."""

    code = "BlockOverflow"


class UnsupportedVersionError(FormatError):
    """Blob version is older than the oldest supported version."""

    code = "UnsupportedVersion"


class MalformedStructureError(FormatError):
    """Struct block token stream is truncated or inconsistent."""

    code = "MalformedStructure"


class DepthLimitError(DecodeError):
    """Node nesting exceeds the configured depth limit."""


class SourceSyntaxError(DecodeError):
    """A source statement could not be decoded."""


class UnsupportedFormatError(DecodeError):
    """No decoder recognizes the input."""


class BlobCompatibilityWarning(UserWarning):
    """Blob version is newer than the newest fully supported version."""
