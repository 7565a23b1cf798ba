import json

import pytest
import yaml

from dtepack.decode import decode_source, load_tree
from dtepack.export import export_text, tree_to_dict
from dtepack.validation import validate


def test_validate_accepts_root_with_compatible() -> None:
    result = validate(load_tree("examples/trees/board_base.dts"))

    assert result.valid is True
    assert result.reasons == []


def test_validate_reports_missing_compatible() -> None:
    result = validate(load_tree("examples/trees/missing_compatible.dts"))

    assert result.valid is False
    assert result.reasons == ["Root node missing 'compatible' property"]


def test_validate_only_checks_root() -> None:
    tree = decode_source('/ { soc { compatible = "simple-bus"; }; };')

    assert validate(tree).valid is False


def test_validate_without_tree() -> None:
    result = validate(None)

    assert result.to_dict() == {"valid": False, "reasons": ["No root node"]}


def test_tree_to_dict_shape() -> None:
    tree = decode_source(
        '/ { compatible = "acme"; soc { reg = <0x10 0x20>; mac = [0a 0b]; }; };',
        source_identifier="inline.dts",
    )

    assert tree_to_dict(tree) == {
        "device-tree": {
            "source-file": "inline.dts",
            "root-node": {
                "name": "/",
                "properties": {"compatible": "acme"},
                "children": [
                    {
                        "name": "soc",
                        "properties": {"reg": [0x10, 0x20], "mac": [0x0A, 0x0B]},
                    }
                ],
            },
        }
    }


def test_export_json_round_trips_through_parser() -> None:
    tree = load_tree("examples/trees/board_base.dts")

    text = export_text(tree, "json")

    assert text.endswith("\n")
    assert json.loads(text) == tree_to_dict(tree)


def test_export_yaml_preserves_order() -> None:
    tree = load_tree("examples/trees/board_base.dts")

    text = export_text(tree, "yaml")
    payload = yaml.safe_load(text)

    root = payload["device-tree"]["root-node"]
    assert list(root["properties"]) == [
        "compatible",
        "model",
        "#address-cells",
        "#size-cells",
    ]
    assert [child["name"] for child in root["children"]] == ["cpus", "soc"]


def test_export_rejects_unknown_format() -> None:
    tree = decode_source("/ { };")

    with pytest.raises(ValueError, match="Unsupported export format"):
        export_text(tree, "toml")
