"""Minimal structural validation for decoded trees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dtepack.core.models import Tree

REQUIRED_ROOT_PROPERTIES: tuple[str, ...] = ("compatible",)


@dataclass(slots=True)
class ValidationResult:
    """Outcome of `validate`; findings never raise."""

    reasons: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.reasons

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "reasons": list(self.reasons)}


def validate(tree: Tree | None) -> ValidationResult:
    if tree is None:
        return ValidationResult(reasons=["No root node"])

    result = ValidationResult()
    for name in REQUIRED_ROOT_PROPERTIES:
        if tree.root.get_property(name) is None:
            result.reasons.append(f"Root node missing '{name}' property")
    return result
