import struct

import pytest

from dtepack.config import MAX_DEPTH_LIMIT, DecoderConfig
from dtepack.core.models import Node, Value
from dtepack.decode import (
    BadMagicError,
    BlobCompatibilityWarning,
    BlockOverflowError,
    DecodeError,
    DepthLimitError,
    FormatError,
    MalformedStructureError,
    OffsetOutOfRangeError,
    SizeMismatchError,
    TooSmallError,
    UnsupportedVersionError,
    decode_blob,
    detect_byte_order,
    infer_blob_value,
    parse_blob_header,
)
from dtepack.diff import diff_trees

from conftest import sample_builder


def _shape(node: Node) -> tuple:
    return (
        node.name,
        tuple((prop.name, prop.value) for prop in node.properties),
        tuple(_shape(child) for child in node.children),
    )


def test_decode_sample_blob_structure(sample_blob: bytes) -> None:
    tree = decode_blob(sample_blob, source_identifier="board.dtb")

    assert tree.format == "blob"
    assert tree.source_identifier == "board.dtb"
    assert tree.root.name == "/"
    assert tree.root.parent is None
    assert tree.root.get_property("compatible").value == Value.string("acme,devboard")
    assert tree.root.get_property("#address-cells").value == Value.raw(b"\x00\x00\x00\x01")

    uart = tree.find_by_path("/soc/uart@1000")
    assert uart is not None
    assert uart.full_path() == "/soc/uart@1000"
    assert uart.get_property("status").value == Value.string("okay")
    assert uart.get_property("reg").value == Value.raw(struct.pack(">2I", 0x1000, 0x10))

    chosen = tree.find_by_path("/chosen")
    assert chosen.get_property("empty").value == Value.string("")
    assert [child.name for child in tree.root.children] == ["soc", "chosen"]
    assert tree.diagnostics == []


def test_decode_exposes_header(sample_blob: bytes) -> None:
    tree = decode_blob(sample_blob)

    assert tree.header is not None
    assert tree.header.byte_order == "big"
    assert tree.header.version == 17
    assert tree.header.total_size == len(sample_blob)
    assert tree.header.to_dict()["magic"] == "0xd00dfeed"


def test_little_endian_blob_decodes_identically() -> None:
    big = decode_blob(sample_builder().build(byte_order="big"))
    little = decode_blob(sample_builder().build(byte_order="little"))

    assert little.header.byte_order == "little"
    assert _shape(little.root) == _shape(big.root)


def test_detect_byte_order() -> None:
    assert detect_byte_order(b"\xd0\x0d\xfe\xed") == "big"
    assert detect_byte_order(b"\xed\xfe\x0d\xd0") == "little"
    assert detect_byte_order(b"\x00\x00\x00\x00") is None
    assert detect_byte_order(b"\xd0") is None


def test_too_small_buffer_is_rejected() -> None:
    with pytest.raises(TooSmallError) as excinfo:
        decode_blob(b"\xd0\x0d\xfe\xed" + bytes(8))
    assert excinfo.value.code == "TooSmall"


def test_bad_magic_is_rejected(sample_blob: bytes) -> None:
    corrupted = b"\xde\xad\xbe\xef" + sample_blob[4:]

    with pytest.raises(BadMagicError) as excinfo:
        decode_blob(corrupted)
    assert "0xdeadbeef" in str(excinfo.value)


def test_size_mismatch_is_rejected(sample_blob: bytes) -> None:
    with pytest.raises(SizeMismatchError) as excinfo:
        decode_blob(sample_blob + bytes(4))
    assert excinfo.value.code == "SizeMismatch"


def test_declared_size_differs_from_buffer() -> None:
    data = sample_builder().build(total_size=9999)

    with pytest.raises(SizeMismatchError):
        decode_blob(data)


@pytest.mark.parametrize("field", ["off_dt_struct", "off_dt_strings", "off_mem_rsvmap"])
def test_offset_out_of_range_is_rejected(field: str) -> None:
    base = sample_builder().build()
    data = sample_builder().build(**{field: len(base)})

    with pytest.raises(OffsetOutOfRangeError) as excinfo:
        parse_blob_header(data)
    assert excinfo.value.code == "OffsetOutOfRange"


def test_block_overflow_is_rejected() -> None:
    data = sample_builder().build(size_dt_strings=4096)

    with pytest.raises(BlockOverflowError):
        decode_blob(data)


def test_old_version_is_rejected() -> None:
    with pytest.raises(UnsupportedVersionError):
        decode_blob(sample_builder().build(version=15))


def test_newer_version_warns_but_decodes() -> None:
    data = sample_builder().build(version=18)

    with pytest.warns(BlobCompatibilityWarning):
        tree = decode_blob(data)

    assert tree.find_by_path("/soc/uart@1000") is not None
    assert [diagnostic.code for diagnostic in tree.diagnostics] == ["BlobVersion"]


def test_format_errors_share_base_class() -> None:
    assert issubclass(SizeMismatchError, FormatError)
    assert issubclass(FormatError, DecodeError)
    assert issubclass(DepthLimitError, DecodeError)


def test_struct_must_start_with_begin_node(blob_builder) -> None:
    data = blob_builder().prop("x", "y").end().build()

    with pytest.raises(MalformedStructureError):
        decode_blob(data)


def test_unknown_tokens_are_skipped(blob_builder) -> None:
    data = (
        blob_builder()
        .begin_node("")
        .word(0x4)
        .prop("compatible", "acme,board")
        .word(0x7)
        .end_node()
        .end()
        .build()
    )

    tree = decode_blob(data)
    assert tree.root.get_property("compatible").value == Value.string("acme,board")


def test_end_token_stops_walk_early(blob_builder) -> None:
    data = (
        blob_builder()
        .begin_node("")
        .begin_node("cpus")
        .end()
        .prop("ignored", "x")
        .build()
    )

    tree = decode_blob(data)
    assert [child.name for child in tree.root.children] == ["cpus"]
    assert tree.root.get_property("ignored") is None


def test_unterminated_node_is_rejected(blob_builder) -> None:
    data = blob_builder().begin_node("").prop("compatible", "acme").build()

    with pytest.raises(MalformedStructureError):
        decode_blob(data)


def test_property_name_offset_out_of_range(blob_builder) -> None:
    data = (
        blob_builder()
        .begin_node("")
        .prop("compatible", "acme")
        .prop_at(0x2000000, b"\x01")
        .end_node()
        .end()
        .build()
    )

    with pytest.raises(MalformedStructureError, match="out of range"):
        decode_blob(data)


def test_empty_property_name_is_rejected(blob_builder) -> None:
    builder = blob_builder().begin_node("").prop("a", "x")
    # Offset 1 points at the NUL that terminates "a".
    data = builder.prop_at(1, b"\x01").end_node().end().build()

    with pytest.raises(MalformedStructureError, match="empty property name"):
        decode_blob(data)


def test_truncated_property_payload_is_rejected(blob_builder) -> None:
    builder = blob_builder().begin_node("").prop("reg", b"\x00\x01\x02\x03")
    data = bytearray(builder.end_node().end().build())
    header = parse_blob_header(bytes(data))
    # Length word of the only property record.
    length_offset = header.off_dt_struct + 8 + 4
    struct.pack_into(">I", data, length_offset, 0x1000)

    with pytest.raises(MalformedStructureError, match="runs past"):
        decode_blob(bytes(data))


def test_depth_limit_is_enforced(blob_builder) -> None:
    builder = blob_builder()
    for idx in range(6):
        builder.begin_node(f"n{idx}" if idx else "")
    for _ in range(6):
        builder.end_node()
    data = builder.end().build()

    assert decode_blob(data, config=DecoderConfig(max_depth=6)).find_by_path("/n1/n2/n3/n4/n5")

    with pytest.raises(DepthLimitError):
        decode_blob(data, config=DecoderConfig(max_depth=5))


def test_infer_blob_value_rules() -> None:
    assert infer_blob_value(b"") == Value.string("")
    assert infer_blob_value(b"okay\0") == Value.string("okay")
    assert infer_blob_value(b"\0") == Value.string("")
    assert infer_blob_value(b"a\tb\0") == Value.raw(b"a\tb\0")
    assert infer_blob_value(b"abc") == Value.raw(b"abc")
    assert infer_blob_value(b"\x00\x00\x10\x00") == Value.raw(b"\x00\x00\x10\x00")


def _nested_blob(builder, depth: int) -> bytes:
    for idx in range(depth):
        builder.begin_node(f"n{idx}" if idx else "")
    for _ in range(depth):
        builder.end_node()
    return builder.end().build()


def test_nesting_at_depth_ceiling_decodes_and_diffs(blob_builder) -> None:
    data = _nested_blob(blob_builder(), MAX_DEPTH_LIMIT)

    tree = decode_blob(data, config=DecoderConfig(max_depth=MAX_DEPTH_LIMIT))

    assert tree.node_count() == MAX_DEPTH_LIMIT
    assert diff_trees(tree, tree).entries == ()


def test_very_deep_nesting_raises_depth_limit_error(blob_builder) -> None:
    data = _nested_blob(blob_builder(), 3000)

    with pytest.raises(DepthLimitError):
        decode_blob(data, config=DecoderConfig(max_depth=MAX_DEPTH_LIMIT))
    with pytest.raises(DepthLimitError):
        decode_blob(data)


def test_empty_child_node_name_is_rejected(blob_builder) -> None:
    data = blob_builder().begin_node("").begin_node("").end_node().end_node().end().build()

    with pytest.raises(MalformedStructureError, match="empty node name"):
        decode_blob(data)
