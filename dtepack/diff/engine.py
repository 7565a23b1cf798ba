"""Path-synchronized tree diff engine.

Nodes are matched by name under the same parent path. Output order is the
pre-order walk, with children and properties visited in lexicographic name
order: names present in the overlay first, then names only in the base.
"""

from __future__ import annotations

import logging

from dtepack.core.models import Node, Property, Tree
from dtepack.core.types import PATH_SEPARATOR, ROOT_NAME
from dtepack.diff.models import DiffEntry, DiffKind, DiffSummary, TreeDiffResult

logger = logging.getLogger(__name__)


class TreeDiff:
    """Diff of `base` into `overlay`, computed once and cached.

    Neither tree is mutated.
    """

    def __init__(self, base: Tree | None, overlay: Tree | None) -> None:
        self._base = base
        self._overlay = overlay
        self._entries: tuple[DiffEntry, ...] | None = None

    def is_valid(self) -> bool:
        return self._base is not None and self._overlay is not None

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if self._base is None:
            errors.append("Base device tree is null")
        if self._overlay is None:
            errors.append("Overlay device tree is null")
        return errors

    def entries(self) -> tuple[DiffEntry, ...]:
        if self._entries is None:
            self._entries = self._generate()
        return self._entries

    def added_nodes(self) -> list[DiffEntry]:
        return [e for e in self.entries() if e.kind == "added" and e.is_node_change]

    def removed_nodes(self) -> list[DiffEntry]:
        return [e for e in self.entries() if e.kind == "removed" and e.is_node_change]

    def modified_properties(self) -> list[DiffEntry]:
        return [e for e in self.entries() if e.kind == "modified" and not e.is_node_change]

    def filter_by_kind(self, kind: DiffKind) -> list[DiffEntry]:
        return [e for e in self.entries() if e.kind == kind]

    def filter_by_path(self, pattern: str) -> list[DiffEntry]:
        return [e for e in self.entries() if pattern in e.path]

    def filter_by_property(self, pattern: str) -> list[DiffEntry]:
        return [
            e for e in self.entries() if e.property_name is not None and pattern in e.property_name
        ]

    def summary(self) -> DiffSummary:
        return DiffSummary.from_entries(self.entries())

    def result(self) -> TreeDiffResult:
        return TreeDiffResult(
            base_source=self._base.source_identifier if self._base is not None else "",
            overlay_source=self._overlay.source_identifier if self._overlay is not None else "",
            entries=self.entries(),
            errors=self.validation_errors(),
        )

    def _generate(self) -> tuple[DiffEntry, ...]:
        if self._base is None or self._overlay is None:
            return ()
        out: list[DiffEntry] = []
        _compare_nodes(self._base.root, self._overlay.root, ROOT_NAME, out)
        logger.debug(
            "diff %s -> %s: %d change(s)",
            self._base.source_identifier or "<base>",
            self._overlay.source_identifier or "<overlay>",
            len(out),
        )
        return tuple(out)


def diff_trees(base: Tree | None, overlay: Tree | None) -> TreeDiffResult:
    """Diff two trees; a missing tree yields no entries and an error list."""
    return TreeDiff(base, overlay).result()


def _compare_nodes(
    base: Node | None,
    overlay: Node | None,
    path: str,
    out: list[DiffEntry],
) -> None:
    if base is None and overlay is None:
        return

    if base is None:
        out.append(
            DiffEntry(kind="added", path=path, description=f"Node added: {overlay.name}")
        )
        for child in overlay.children:
            _compare_nodes(None, child, _child_path(path, child.name), out)
        return

    if overlay is None:
        out.append(
            DiffEntry(kind="removed", path=path, description=f"Node removed: {base.name}")
        )
        for child in base.children:
            _compare_nodes(child, None, _child_path(path, child.name), out)
        return

    _compare_properties(base, overlay, path, out)

    base_children = _first_by_name(base.children)
    overlay_children = _first_by_name(overlay.children)

    for name in sorted(overlay_children):
        _compare_nodes(base_children.get(name), overlay_children[name], _child_path(path, name), out)

    for name in sorted(base_children):
        if name not in overlay_children:
            _compare_nodes(base_children[name], None, _child_path(path, name), out)


def _compare_properties(base: Node, overlay: Node, path: str, out: list[DiffEntry]) -> None:
    base_props = _first_by_name(base.properties)
    overlay_props = _first_by_name(overlay.properties)

    for name in sorted(overlay_props):
        new = overlay_props[name]
        old = base_props.get(name)
        if old is None:
            out.append(_property_entry("added", path, new, new_value=new.value.render()))
        elif old.value != new.value:
            out.append(
                _property_entry(
                    "modified",
                    path,
                    new,
                    old_value=old.value.render(),
                    new_value=new.value.render(),
                )
            )

    for name in sorted(base_props):
        if name not in overlay_props:
            old = base_props[name]
            out.append(_property_entry("removed", path, old, old_value=old.value.render()))


def _property_entry(
    kind: DiffKind,
    path: str,
    prop: Property,
    *,
    old_value: str | None = None,
    new_value: str | None = None,
) -> DiffEntry:
    return DiffEntry(
        kind=kind,
        path=path,
        property_name=prop.name,
        old_value=old_value,
        new_value=new_value,
        description=f"Property {kind}: {prop.name}",
    )


def _first_by_name(items: list[Node] | list[Property]) -> dict:
    mapping: dict = {}
    for item in items:
        mapping.setdefault(item.name, item)
    return mapping


def _child_path(path: str, name: str) -> str:
    if path == ROOT_NAME:
        return ROOT_NAME + name
    return path + PATH_SEPARATOR + name
