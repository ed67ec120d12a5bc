from __future__ import annotations

from ExtensionCopilot.ManifestAnalysis.yaml_structure import (
    BlockRange,
    block_range,
    enclosing_item_span,
    list_item_index_at,
    list_item_ranges,
    parent_blocks_of,
)

MANIFEST = """\
name: custom:demo
snmp:
  - group: g
    metrics:
      - key: a
        value: oid:1.2.3
      - key: b
        value: oid:1.2.4
    subgroups:
      - subgroup: s
        table: true
        metrics:
          - key: c
            value: oid:1.2.5.1
"""


def _offset_of(needle: str, text: str = MANIFEST) -> int:
    return text.index(needle)


def test_parent_blocks_outermost_first() -> None:
    assert parent_blocks_of(5, MANIFEST) == ["snmp", "metrics"]
    assert parent_blocks_of(13, MANIFEST) == ["snmp", "subgroups", "metrics"]


def test_parent_blocks_exclude_own_key() -> None:
    assert parent_blocks_of(0, MANIFEST) == []
    assert parent_blocks_of(1, MANIFEST) == []
    assert parent_blocks_of(3, MANIFEST) == ["snmp"]


def test_parent_blocks_out_of_range() -> None:
    assert parent_blocks_of(-1, MANIFEST) == []
    assert parent_blocks_of(500, MANIFEST) == []


def test_parent_blocks_skip_comments_and_blank_lines() -> None:
    text = "snmp:\n\n  # leading comment\n  - group: g\n\n    metrics:\n      - key: a\n"
    assert parent_blocks_of(6, text) == ["snmp", "metrics"]


def test_list_item_index_counts_siblings_only() -> None:
    assert list_item_index_at("metrics", 5, MANIFEST) == 0
    assert list_item_index_at("metrics", 7, MANIFEST) == 1
    assert list_item_index_at("metrics", 13, MANIFEST) == 0
    assert list_item_index_at("snmp", 13, MANIFEST) == 0
    assert list_item_index_at("subgroups", 13, MANIFEST) == 0


def test_list_item_index_none_outside_list() -> None:
    assert list_item_index_at("subgroups", 5, MANIFEST) is None
    assert list_item_index_at("screens", 5, MANIFEST) is None


def test_list_item_index_of_second_group() -> None:
    text = MANIFEST + "  - group: h\n    metrics:\n      - key: d\n        value: oid:1.2.6\n"
    last = len(text.rstrip("\n").split("\n")) - 1

    assert list_item_index_at("snmp", last, text) == 1
    assert list_item_index_at("metrics", last, text) == 0


def test_block_range_runs_to_document_end() -> None:
    assert block_range("snmp", MANIFEST) == BlockRange(len("name: custom:demo\n"), len(MANIFEST))


def test_block_range_stops_at_sibling_key() -> None:
    found = block_range("metrics", MANIFEST)

    assert found is not None
    assert found.start_index == _offset_of("    metrics:")
    assert found.end_index == _offset_of("    subgroups:")


def test_block_range_stops_at_less_indented_line() -> None:
    text = (
        "snmp:\n"
        "  - group: g\n"
        "    metrics:\n"
        "      - key: a\n"
        "  - group: h\n"
        "    metrics:\n"
        "      - key: b\n"
    )

    found = block_range("metrics", text)

    assert found == BlockRange(text.index("    metrics:"), text.index("  - group: h"))
    assert text[found.start_index : found.end_index] == "    metrics:\n      - key: a\n"


def test_block_range_missing_key() -> None:
    assert block_range("screens", MANIFEST) is None


def test_list_item_ranges() -> None:
    items = list_item_ranges("metrics", MANIFEST)

    assert [item.index for item in items] == [0, 1]
    assert MANIFEST[items[0].start : items[0].end] == "      - key: a\n        value: oid:1.2.3"
    assert MANIFEST[items[1].start : items[1].end] == "      - key: b\n        value: oid:1.2.4"


def test_list_item_ranges_of_non_list_is_empty() -> None:
    assert list_item_ranges("name", MANIFEST) == []
    assert list_item_ranges("screens", MANIFEST) == []


def test_enclosing_item_span_starts_at_marker() -> None:
    span = enclosing_item_span(_offset_of("oid:1.2.3"), MANIFEST)

    assert span is not None
    assert MANIFEST[span[0] : span[1]] == "- key: a\n        value: oid:1.2.3"


def test_enclosing_item_span_of_nested_item() -> None:
    span = enclosing_item_span(_offset_of("oid:1.2.5.1"), MANIFEST)

    assert span is not None
    assert MANIFEST[span[0] : span[1]] == "- key: c\n            value: oid:1.2.5.1\n"


def test_enclosing_item_span_none_at_top_level() -> None:
    assert enclosing_item_span(_offset_of("snmp:"), MANIFEST) is None
    assert enclosing_item_span(len(MANIFEST) + 10, MANIFEST) is None
