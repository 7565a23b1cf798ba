"""Decoder configuration."""

from __future__ import annotations

from dataclasses import dataclass
import os

MAX_DEPTH_ENV_VAR = "DTE_MAX_DEPTH"
DEFAULT_MAX_DEPTH = 256
# Recursive tree walks must stay under the interpreter recursion limit.
MAX_DEPTH_LIMIT = 512


class DecoderConfigError(ValueError):
    """Raised when decoder configuration is invalid."""


@dataclass(frozen=True, slots=True)
class DecoderConfig:
    """Limits applied by both decoders."""

    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self) -> None:
        if not isinstance(self.max_depth, int) or isinstance(self.max_depth, bool):
            raise DecoderConfigError("max_depth must be an integer")
        if self.max_depth < 1:
            raise DecoderConfigError("max_depth must be at least 1")
        if self.max_depth > MAX_DEPTH_LIMIT:
            raise DecoderConfigError(f"max_depth must be at most {MAX_DEPTH_LIMIT}")

    @classmethod
    def from_env(cls) -> "DecoderConfig":
        return cls(max_depth=_resolve_max_depth())

    def to_dict(self) -> dict[str, int]:
        return {"max_depth": self.max_depth}


def _resolve_max_depth() -> int:
    raw = os.environ.get(MAX_DEPTH_ENV_VAR)
    if raw is None:
        return DEFAULT_MAX_DEPTH
    try:
        parsed = int(raw)
    except ValueError:
        return DEFAULT_MAX_DEPTH
    if parsed < 1 or parsed > MAX_DEPTH_LIMIT:
        return DEFAULT_MAX_DEPTH
    return parsed
