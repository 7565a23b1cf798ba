"""Type definitions for device tree core models."""

from typing import Literal

ValueKind = Literal["string", "bytes", "cells", "cells64"]

VALUE_KINDS: tuple[str, ...] = (
    "string",
    "bytes",
    "cells",
    "cells64",
)

TreeFormat = Literal["blob", "source"]

ROOT_NAME = "/"
PATH_SEPARATOR = "/"

CELL32_MAX = 0xFFFFFFFF
CELL64_MAX = 0xFFFFFFFFFFFFFFFF
