"""CLI-friendly rendering for tree diff results."""

from __future__ import annotations

import json

import yaml

from dtepack.diff.models import TreeDiffResult

_REPORT_TAGS = {"added": "[ADD]", "removed": "[DEL]", "modified": "[MOD]"}
_PATCH_TAGS = {"added": "[+]", "removed": "[-]", "modified": "[~]"}


def render_diff_summary(diff: TreeDiffResult) -> str:
    summary = diff.summary()
    return (
        f"base={diff.base_source or '<none>'} overlay={diff.overlay_source or '<none>'} "
        f"total={summary.total_changes} "
        f"added_nodes={summary.added_nodes} removed_nodes={summary.removed_nodes} "
        f"added_properties={summary.added_properties} "
        f"removed_properties={summary.removed_properties} "
        f"modified_properties={summary.modified_properties}"
    )


def render_diff_report(diff: TreeDiffResult, *, max_changes: int | None = None) -> str:
    summary = diff.summary()
    lines = [
        "Device Tree Diff Report",
        "=======================",
        "",
        "Summary:",
        f"  Total changes: {summary.total_changes}",
        f"  Added nodes: {summary.added_nodes}",
        f"  Removed nodes: {summary.removed_nodes}",
        f"  Modified properties: {summary.modified_properties}",
        f"  Added properties: {summary.added_properties}",
        f"  Removed properties: {summary.removed_properties}",
    ]

    for error in diff.errors:
        lines.append(f"  error: {error}")

    if not diff.entries:
        lines.append("")
        lines.append("no differences detected")
        return "\n".join(lines)

    lines.extend(["", "Detailed Changes:", "================="])
    shown = diff.entries if max_changes is None else diff.entries[: max(0, max_changes)]
    for entry in shown:
        target = entry.path if entry.is_node_change else f"{entry.path}:{entry.property_name}"
        lines.append(f"{_REPORT_TAGS[entry.kind]} {target}")
        lines.append(f"    {entry.description}")
        if entry.kind == "modified":
            lines.append(f"    Old: {entry.old_value}")
            lines.append(f"    New: {entry.new_value}")
        elif entry.new_value is not None:
            lines.append(f"    Value: {entry.new_value}")
        elif entry.old_value is not None:
            lines.append(f"    Value: {entry.old_value}")

    remaining = len(diff.entries) - len(shown)
    if remaining > 0:
        lines.append(f"... {remaining} additional change(s) not shown")
    return "\n".join(lines)


def render_diff_patch(diff: TreeDiffResult) -> str:
    summary = diff.summary()
    lines = [
        "--- Device Tree Diff ---",
        f"Total changes: {summary.total_changes}",
        (
            f"Added: {summary.added_nodes}, Removed: {summary.removed_nodes}, "
            f"Modified: {summary.modified_properties}"
        ),
        "",
    ]
    for entry in diff.entries:
        target = entry.path if entry.is_node_change else f"{entry.path}:{entry.property_name}"
        lines.append(f"{_PATCH_TAGS[entry.kind]} {target}")
        if entry.old_value is not None:
            lines.append(f"  - {entry.old_value}")
        if entry.new_value is not None:
            lines.append(f"  + {entry.new_value}")
        lines.append("")
    return "\n".join(lines)


def export_diff_text(diff: TreeDiffResult, fmt: str) -> str:
    """Serialize a diff result as `json` or `yaml`."""
    normalized = fmt.strip().lower()
    payload = {"diff": diff.to_dict()}
    if normalized == "json":
        return json.dumps(payload, indent=2, ensure_ascii=True) + "\n"
    if normalized == "yaml":
        return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)
    raise ValueError(f"Unsupported diff export format: {fmt}")
