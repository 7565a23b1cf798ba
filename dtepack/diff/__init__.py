"""Diff subsystem for dtepack."""

from dtepack.diff.engine import TreeDiff, diff_trees
from dtepack.diff.formatting import (
    export_diff_text,
    render_diff_patch,
    render_diff_report,
    render_diff_summary,
)
from dtepack.diff.models import DIFF_KINDS, DiffEntry, DiffKind, DiffSummary, TreeDiffResult

__all__ = [
    "DIFF_KINDS",
    "DiffKind",
    "DiffEntry",
    "DiffSummary",
    "TreeDiffResult",
    "TreeDiff",
    "diff_trees",
    "export_diff_text",
    "render_diff_patch",
    "render_diff_report",
    "render_diff_summary",
]
