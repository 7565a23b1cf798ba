"""JSON and YAML rendering of decoded trees."""

from __future__ import annotations

import json
from typing import Any

import yaml

from dtepack.core.models import Node, Tree

EXPORT_FORMATS: tuple[str, ...] = ("json", "yaml")


def node_to_dict(node: Node) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": node.name,
        "properties": {prop.name: prop.value.to_python() for prop in node.properties},
    }
    if node.children:
        children = []
        for child in node.children:
            children.append(node_to_dict(child))
        payload["children"] = children
    return payload


def tree_to_dict(tree: Tree) -> dict[str, Any]:
    return {
        "device-tree": {
            "source-file": tree.source_identifier,
            "root-node": node_to_dict(tree.root),
        }
    }


def export_text(tree: Tree, fmt: str) -> str:
    """Render `tree` as `json` or `yaml` text."""
    normalized = fmt.strip().lower()
    payload = tree_to_dict(tree)
    if normalized == "json":
        return json.dumps(payload, indent=2, ensure_ascii=True) + "\n"
    if normalized == "yaml":
        return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)
    raise ValueError(
        f"Unsupported export format: {fmt} (expected one of: {', '.join(EXPORT_FORMATS)})"
    )
