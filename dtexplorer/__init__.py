"""Stable public API surface for the device tree explorer.

This module is the supported import path for library users.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from dtepack import __version__
from dtepack.config import DecoderConfig
from dtepack.core.models import Node, Tree
from dtepack.decode import load_tree as _load_tree
from dtepack.diff import diff_trees
from dtepack.diff.models import DiffEntry, TreeDiffResult
from dtepack.export import export_text as _export_text
from dtepack.validation import ValidationResult, validate as _validate

ExportFormat = Literal["json", "yaml"]


def load_tree(path: str | Path, *, max_depth: int | None = None) -> Tree:
    """Load a device tree blob or source file.

    Args:
        path: File to read. Format is chosen by content, then extension.
        max_depth: Nesting limit; defaults to `DTE_MAX_DEPTH` or 256.

    Returns:
        The decoded tree.
    """
    config = DecoderConfig.from_env() if max_depth is None else DecoderConfig(max_depth=max_depth)
    return _load_tree(path, config=config)


def validate(tree: Tree | None) -> ValidationResult:
    """Run the minimal presence check on a decoded tree."""
    return _validate(tree)


def diff(base: Tree | None, overlay: Tree | None) -> TreeDiffResult:
    """Diff two trees and return ordered entries plus derived counts.

    A missing tree yields no entries and a populated `errors` list.
    """
    return diff_trees(base, overlay)


def export_text(tree: Tree, fmt: ExportFormat = "json") -> str:
    """Serialize a tree as JSON or YAML text."""
    return _export_text(tree, fmt)


def find_by_path(node: Node | Tree, path: str) -> Node | None:
    return node.find_by_path(path)


def find_by_pattern(node: Node | Tree, pattern: str) -> list[Node]:
    return node.find_by_pattern(pattern)


def full_path(node: Node) -> str:
    return node.full_path()


__all__ = [
    "__version__",
    "ExportFormat",
    "DiffEntry",
    "Node",
    "Tree",
    "TreeDiffResult",
    "ValidationResult",
    "load_tree",
    "validate",
    "diff",
    "export_text",
    "find_by_path",
    "find_by_pattern",
    "full_path",
]
