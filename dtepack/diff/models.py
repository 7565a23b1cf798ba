"""Data models for tree diff entries and summary counts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

DiffKind = Literal["added", "removed", "modified"]

DIFF_KINDS: tuple[str, ...] = ("added", "removed", "modified")


@dataclass(frozen=True, slots=True)
class DiffEntry:
    """One node-level or property-level difference at a node path."""

    kind: DiffKind
    path: str
    description: str
    property_name: str | None = None
    old_value: str | None = None
    new_value: str | None = None

    @property
    def is_node_change(self) -> bool:
        return not self.property_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "path": self.path,
            "property_name": self.property_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "description": self.description,
        }


@dataclass(frozen=True, slots=True)
class DiffSummary:
    """Counts derived by scanning a diff entry sequence."""

    total_changes: int = 0
    added_nodes: int = 0
    removed_nodes: int = 0
    added_properties: int = 0
    removed_properties: int = 0
    modified_properties: int = 0

    @classmethod
    def from_entries(cls, entries: tuple[DiffEntry, ...] | list[DiffEntry]) -> "DiffSummary":
        counts = {
            "added_nodes": 0,
            "removed_nodes": 0,
            "added_properties": 0,
            "removed_properties": 0,
            "modified_properties": 0,
        }
        for entry in entries:
            if entry.is_node_change:
                if entry.kind == "added":
                    counts["added_nodes"] += 1
                elif entry.kind == "removed":
                    counts["removed_nodes"] += 1
            elif entry.kind == "added":
                counts["added_properties"] += 1
            elif entry.kind == "removed":
                counts["removed_properties"] += 1
            else:
                counts["modified_properties"] += 1
        return cls(total_changes=len(entries), **counts)

    def to_dict(self) -> dict[str, int]:
        return {
            "total_changes": self.total_changes,
            "added_nodes": self.added_nodes,
            "removed_nodes": self.removed_nodes,
            "added_properties": self.added_properties,
            "removed_properties": self.removed_properties,
            "modified_properties": self.modified_properties,
        }


@dataclass(slots=True)
class TreeDiffResult:
    """Structured diff for two trees."""

    base_source: str
    overlay_source: str
    entries: tuple[DiffEntry, ...] = ()
    errors: list[str] = field(default_factory=list)

    @property
    def identical(self) -> bool:
        return not self.entries and not self.errors

    def summary(self) -> DiffSummary:
        return DiffSummary.from_entries(self.entries)

    def filter_by_kind(self, kind: DiffKind) -> list[DiffEntry]:
        return [entry for entry in self.entries if entry.kind == kind]

    def filter_by_path(self, pattern: str) -> list[DiffEntry]:
        return [entry for entry in self.entries if pattern in entry.path]

    def filter_by_property(self, pattern: str) -> list[DiffEntry]:
        return [
            entry
            for entry in self.entries
            if entry.property_name is not None and pattern in entry.property_name
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_source": self.base_source,
            "overlay_source": self.overlay_source,
            "identical": self.identical,
            "summary": self.summary().to_dict(),
            "errors": list(self.errors),
            "changes": [entry.to_dict() for entry in self.entries],
        }
