"""Core data models for device trees: values, properties, nodes and trees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Iterator
import weakref

from dtepack.core.types import (
    CELL32_MAX,
    CELL64_MAX,
    PATH_SEPARATOR,
    ROOT_NAME,
    VALUE_KINDS,
)

if TYPE_CHECKING:
    from dtepack.decode.blob import BlobHeader


@dataclass(frozen=True, slots=True)
class Value:
    """A property value holding exactly one of four variants.

    Equality is variant-exact: a string never equals a cell list, even when
    both render to the same text.
    """

    kind: str
    data: str | bytes | tuple[int, ...]

    def __post_init__(self) -> None:
        if self.kind not in VALUE_KINDS:
            raise ValueError(f"Unsupported value kind: {self.kind}")
        if self.kind == "string" and not isinstance(self.data, str):
            raise TypeError("string value requires str data")
        if self.kind == "bytes" and not isinstance(self.data, bytes):
            raise TypeError("bytes value requires bytes data")
        if self.kind in ("cells", "cells64"):
            if not isinstance(self.data, tuple):
                raise TypeError(f"{self.kind} value requires a tuple of ints")
            limit = CELL32_MAX if self.kind == "cells" else CELL64_MAX
            for cell in self.data:
                if not isinstance(cell, int) or isinstance(cell, bool):
                    raise TypeError(f"{self.kind} value requires int cells")
                if cell < 0 or cell > limit:
                    raise ValueError(f"cell 0x{cell:x} out of range for {self.kind}")

    @classmethod
    def string(cls, text: str = "") -> "Value":
        return cls(kind="string", data=text)

    @classmethod
    def raw(cls, data: bytes | bytearray | Iterable[int]) -> "Value":
        return cls(kind="bytes", data=bytes(data))

    @classmethod
    def cells(cls, items: Iterable[int]) -> "Value":
        return cls(kind="cells", data=tuple(items))

    @classmethod
    def cells64(cls, items: Iterable[int]) -> "Value":
        return cls(kind="cells64", data=tuple(items))

    @property
    def is_string(self) -> bool:
        return self.kind == "string"

    @property
    def is_bytes(self) -> bool:
        return self.kind == "bytes"

    @property
    def is_cells(self) -> bool:
        return self.kind in ("cells", "cells64")

    def render(self) -> str:
        """Render for display: `"text"`, `[0x0a 0x0b]` or `<0x1000 0x10>`."""
        if self.kind == "string":
            return f'"{self.data}"'
        if self.kind == "bytes":
            return "[" + " ".join(f"0x{byte:02x}" for byte in self.data) + "]"
        return "<" + " ".join(f"0x{cell:x}" for cell in self.data) + ">"

    def to_python(self) -> str | list[int]:
        if self.kind == "string":
            return str(self.data)
        return list(self.data)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True, slots=True)
class Property:
    """A named value attached to a node."""

    name: str
    value: Value

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("property name must not be empty")


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A non-fatal finding recorded while decoding."""

    code: str
    message: str
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "line": self.line,
        }


@dataclass(eq=False, slots=True, weakref_slot=True)
class Node:
    """A named node owning ordered properties and child nodes.

    The parent link is a weak reference; it only serves path reconstruction.
    """

    name: str
    properties: list[Property] = field(default_factory=list)
    children: list["Node"] = field(default_factory=list)
    _parent: "weakref.ref[Node] | None" = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        for child in self.children:
            child._parent = weakref.ref(self)

    def __repr__(self) -> str:
        return (
            f"Node(name={self.name!r}, properties={len(self.properties)}, "
            f"children={len(self.children)})"
        )

    @property
    def parent(self) -> "Node | None":
        if self._parent is None:
            return None
        return self._parent()

    def add_child(self, child: "Node") -> "Node":
        """Append `child` and point its parent link here.

        No cycle check is performed.
        """
        child._parent = weakref.ref(self)
        self.children.append(child)
        return child

    def remove_child(self, child: "Node") -> bool:
        for idx, existing in enumerate(self.children):
            if existing is child:
                del self.children[idx]
                child._parent = None
                return True
        return False

    def set_property(self, prop: Property) -> None:
        """Add `prop`, replacing any property with the same name."""
        self.remove_property(prop.name)
        self.properties.append(prop)

    def remove_property(self, name: str) -> bool:
        before = len(self.properties)
        self.properties = [prop for prop in self.properties if prop.name != name]
        return len(self.properties) != before

    def get_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def full_path(self) -> str:
        names: list[str] = []
        current: Node | None = self
        while current is not None:
            names.append(current.name)
            current = current.parent
        names.reverse()

        path = ""
        for name in names:
            if name == ROOT_NAME:
                path = ROOT_NAME
            else:
                path = path.rstrip(PATH_SEPARATOR) + PATH_SEPARATOR + name
        return path or ROOT_NAME

    def find_by_path(self, path: str) -> "Node | None":
        """Resolve a `/`-separated path relative to this node.

        Empty segments are ignored; the first child with a matching name wins.
        """
        current = self
        for segment in path.split(PATH_SEPARATOR):
            if not segment:
                continue
            for child in current.children:
                if child.name == segment:
                    current = child
                    break
            else:
                return None
        return current

    def walk(self) -> Iterator["Node"]:
        """Pre-order traversal including this node."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find_by_pattern(self, pattern: str) -> list["Node"]:
        return [node for node in self.walk() if pattern in node.name]

    def find_by_name(self, name: str) -> list["Node"]:
        return [node for node in self.walk() if node.name == name]


@dataclass(slots=True)
class Tree:
    """A decoded device tree and where it came from."""

    root: Node
    source_identifier: str = ""
    format: str | None = None
    header: "BlobHeader | None" = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def find_by_path(self, path: str) -> Node | None:
        return self.root.find_by_path(path)

    def find_by_pattern(self, pattern: str) -> list[Node]:
        return self.root.find_by_pattern(pattern)

    def find_by_name(self, name: str) -> list[Node]:
        return self.root.find_by_name(name)

    def iter_nodes(self) -> Iterator[Node]:
        return self.root.walk()

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def property_count(self) -> int:
        return sum(len(node.properties) for node in self.iter_nodes())
