import json

import pytest
import yaml

from dtepack.decode import load_tree
from dtepack.diff import (
    diff_trees,
    export_diff_text,
    render_diff_patch,
    render_diff_report,
    render_diff_summary,
)


@pytest.fixture
def board_diff():
    return diff_trees(
        load_tree("examples/trees/board_base.dts"),
        load_tree("examples/trees/board_overlay.dts"),
    )


def test_render_diff_summary_is_single_line(board_diff) -> None:
    line = render_diff_summary(board_diff)

    assert "\n" not in line
    assert "total=4" in line
    assert "added_nodes=1" in line
    assert "modified_properties=2" in line


def test_render_diff_report(board_diff) -> None:
    report = render_diff_report(board_diff)

    assert report.startswith("Device Tree Diff Report")
    assert "  Total changes: 4" in report
    assert "[ADD] /soc/i2c@3000" in report
    assert "[DEL] /soc/gpio@2000" in report
    assert "[MOD] /soc/uart@1000:reg" in report
    assert "    Old: <0x1000 0x10>" in report
    assert "    New: <0x1000 0x20>" in report


def test_render_diff_report_truncates(board_diff) -> None:
    report = render_diff_report(board_diff, max_changes=1)

    assert "[MOD] /:model" in report
    assert "[ADD]" not in report
    assert "... 3 additional change(s) not shown" in report


def test_render_diff_report_for_identical_trees() -> None:
    tree = load_tree("examples/trees/board_base.dts")

    report = render_diff_report(diff_trees(tree, tree))

    assert "no differences detected" in report
    assert "Detailed Changes" not in report


def test_render_diff_report_lists_errors() -> None:
    report = render_diff_report(diff_trees(None, None))

    assert "error: Base device tree is null" in report
    assert "error: Overlay device tree is null" in report


def test_render_diff_patch(board_diff) -> None:
    patch = render_diff_patch(board_diff)
    lines = patch.splitlines()

    assert lines[0] == "--- Device Tree Diff ---"
    assert "[+] /soc/i2c@3000" in lines
    assert "[-] /soc/gpio@2000" in lines
    idx = lines.index("[~] /soc/uart@1000:reg")
    assert lines[idx + 1] == "  - <0x1000 0x10>"
    assert lines[idx + 2] == "  + <0x1000 0x20>"


def test_export_diff_json(board_diff) -> None:
    payload = json.loads(export_diff_text(board_diff, "json"))

    assert payload["diff"]["summary"]["total_changes"] == 4
    assert payload["diff"]["changes"][0] == {
        "kind": "modified",
        "path": "/",
        "property_name": "model",
        "old_value": '"Acme Development Board"',
        "new_value": '"Acme Development Board rev B"',
        "description": "Property modified: model",
    }


def test_export_diff_yaml(board_diff) -> None:
    payload = yaml.safe_load(export_diff_text(board_diff, " YAML "))

    assert payload["diff"]["identical"] is False
    assert [change["kind"] for change in payload["diff"]["changes"]] == [
        "modified",
        "added",
        "modified",
        "removed",
    ]


def test_export_diff_rejects_unknown_format(board_diff) -> None:
    with pytest.raises(ValueError, match="Unsupported diff export format"):
        export_diff_text(board_diff, "xml")
