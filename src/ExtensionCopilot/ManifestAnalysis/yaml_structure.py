# === NAVMAP v1 ===
# {
#   "module": "ExtensionCopilot.ManifestAnalysis.yaml_structure",
#   "purpose": "Indentation-based structural queries over raw manifest text",
#   "sections": [
#     {"id": "lines", "name": "Line classification", "anchor": "LIN", "kind": "helpers"},
#     {"id": "parents", "name": "Parent blocks and list indexes", "anchor": "PAR", "kind": "api"},
#     {"id": "ranges", "name": "Block and list item ranges", "anchor": "RNG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Structural queries over raw YAML text.

These helpers never consult the parsed manifest: they classify each line by
indentation and list markers, so they keep working while the document is
momentarily invalid and the published model is stale. Lines are zero-based and
offsets are character offsets into ``content``.

Examples:
    >>> text = "snmp:\\n  - group: g\\n    metrics:\\n      - key: a\\n        value: oid:1.2.3\\n"
    >>> parent_blocks_of(4, text)
    ['snmp', 'metrics']
    >>> list_item_index_at("metrics", 4, text)
    0
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

__all__ = [
    "BlockRange",
    "ItemRange",
    "parent_blocks_of",
    "list_item_index_at",
    "block_range",
    "list_item_ranges",
    "enclosing_item_span",
]

_MAPPING_ENTRY = re.compile(
    r"""^(?P<key>"[^"]*"|'[^']*'|[^\s#'"][^#]*?)\s*:(?:[ \t]+(?P<value>.*))?$"""
)


@dataclass(frozen=True, slots=True)
class BlockRange:
    """Character span of a block; ``end_index`` is exclusive."""

    start_index: int
    end_index: int


@dataclass(frozen=True, slots=True)
class ItemRange:
    index: int
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class _Line:
    indent: int
    dash: Optional[int]
    key: Optional[str]
    key_indent: int
    opens_block: bool


def _classify(line: str) -> Optional[_Line]:
    """Describe one raw line; ``None`` for blank and comment-only lines."""

    stripped = line.rstrip("\r")
    body = stripped.lstrip(" ")
    if not body or body.startswith("#"):
        return None
    indent = len(stripped) - len(body)
    dash: Optional[int] = None
    key_indent = indent
    if body == "-" or body.startswith("- "):
        dash = indent
        rest = body[1:].lstrip(" ")
        key_indent = indent + (len(body) - len(rest))
        body = rest
    match = _MAPPING_ENTRY.match(body)
    if match is None:
        return _Line(indent, dash, None, key_indent, False)
    key = match.group("key").strip()
    if len(key) >= 2 and key[0] == key[-1] and key[0] in "\"'":
        key = key[1:-1]
    value = (match.group("value") or "").strip()
    opens_block = not value or value.startswith("#")
    return _Line(indent, dash, key, key_indent, opens_block)


def _line_starts(lines: Sequence[str]) -> List[int]:
    starts = []
    offset = 0
    for line in lines:
        starts.append(offset)
        offset += len(line) + 1
    return starts


def _ancestors(lines: Sequence[str], line_number: int) -> List[Tuple[int, _Line]]:
    """Return ``(line_index, line)`` of every enclosing block opener, outermost first."""

    if line_number < 0 or line_number >= len(lines):
        return []
    target = _classify(lines[line_number])
    if target is None:
        raw = lines[line_number]
        threshold = len(raw) - len(raw.lstrip(" "))
    else:
        threshold = target.key_indent

    found: List[Tuple[int, _Line]] = []
    for index in range(line_number - 1, -1, -1):
        if threshold <= 0:
            break
        current = _classify(lines[index])
        if current is None:
            continue
        if current.key_indent < threshold:
            if current.key is not None and current.opens_block:
                found.append((index, current))
            threshold = current.key_indent
        # a list marker left of the threshold closes the element we are in
        if current.dash is not None and current.dash < threshold:
            threshold = current.dash + 1
    found.reverse()
    return found


# --- Parent blocks and list indexes -------------------------------------------------


def parent_blocks_of(line: int, content: str) -> List[str]:
    """Return the keys of the blocks enclosing ``line``, outermost to innermost.

    The key declared on ``line`` itself is not included, so a top-level line
    has no parents. List items are transparent: a line inside the second
    element of ``metrics`` reports ``metrics`` as its closest parent.

    Args:
        line: Zero-based line number.
        content: Full manifest text.

    Returns:
        Enclosing block keys; empty when ``line`` is out of range.
    """

    return [entry.key for _, entry in _ancestors(content.split("\n"), line) if entry.key]


def list_item_index_at(list_key: str, line: int, content: str) -> Optional[int]:
    """Return the zero-based index of the ``list_key`` element containing ``line``.

    The nearest enclosing block named ``list_key`` is used, so nested lists
    sharing a name resolve to the innermost one. Items are counted by list
    markers at the indentation of the first element.

    Returns:
        The item index, or ``None`` when ``line`` is not inside such a list.
    """

    lines = content.split("\n")
    declaration: Optional[int] = None
    for index, entry in reversed(_ancestors(lines, line)):
        if entry.key == list_key:
            declaration = index
            break
    if declaration is None:
        return None

    item_indent: Optional[int] = None
    count = 0
    for index in range(declaration + 1, line + 1):
        current = _classify(lines[index])
        if current is None:
            continue
        if item_indent is None:
            if current.dash is None:
                return None
            item_indent = current.dash
        if current.dash == item_indent:
            count += 1
    return count - 1 if count else None


# --- Block and list item ranges -----------------------------------------------------


def _find_declaration(key: str, lines: Sequence[str]) -> Optional[Tuple[int, _Line]]:
    for index, line in enumerate(lines):
        current = _classify(line)
        if current is not None and current.key == key and current.dash is None:
            return index, current
    return None


def block_range(block_key: str, content: str) -> Optional[BlockRange]:
    """Return the character span of the first block declared as ``block_key:``.

    The block ends at the first non-blank line indented less than the
    declaration, or at the same indentation without a list marker; when no
    such line exists it runs to the end of the document.

    Examples:
        >>> block_range("b", "a: 1\\nb:\\n  c: 2\\nd: 3\\n")
        BlockRange(start_index=5, end_index=15)
        >>> block_range("d", "a: 1\\nd:\\n  - x\\n")
        BlockRange(start_index=5, end_index=14)
    """

    lines = content.split("\n")
    found = _find_declaration(block_key, lines)
    if found is None:
        return None
    declaration, entry = found
    starts = _line_starts(lines)
    for index in range(declaration + 1, len(lines)):
        current = _classify(lines[index])
        if current is None:
            continue
        if current.indent < entry.indent or (
            current.indent == entry.indent and current.dash is None
        ):
            return BlockRange(starts[declaration], starts[index])
    return BlockRange(starts[declaration], len(content))


def list_item_ranges(list_key: str, content: str) -> List[ItemRange]:
    """Return the span of every element of the first list declared as ``list_key:``.

    Each span starts at the beginning of the element's marker line and ends
    at the newline preceding the next element or the end of the list.
    """

    lines = content.split("\n")
    found = _find_declaration(list_key, lines)
    if found is None:
        return []
    declaration, entry = found
    starts = _line_starts(lines)

    items: List[ItemRange] = []
    item_indent: Optional[int] = None
    open_start: Optional[int] = None
    end_of_list = len(content)
    for index in range(declaration + 1, len(lines)):
        current = _classify(lines[index])
        if current is None:
            continue
        if item_indent is None:
            if current.dash is None or current.dash < entry.indent:
                return []
            item_indent = current.dash
        if current.indent < item_indent or (
            current.indent == item_indent and current.dash is None
        ):
            end_of_list = starts[index] - 1
            break
        if current.dash == item_indent:
            if open_start is not None:
                items.append(ItemRange(len(items), open_start, starts[index] - 1))
            open_start = starts[index]
    if open_start is not None:
        items.append(ItemRange(len(items), open_start, end_of_list))
    return items


def enclosing_item_span(offset: int, content: str) -> Optional[Tuple[int, int]]:
    """Return the span of the innermost list element containing ``offset``.

    The span starts at the element's ``-`` marker and ends at the newline
    preceding the next line indented at or left of that marker (a sibling
    element or the end of the enclosing block), or at the document end.

    Returns:
        ``(start, end)`` offsets, or ``None`` when ``offset`` is not inside a
        list element.
    """

    if offset < 0 or offset > len(content):
        return None
    lines = content.split("\n")
    starts = _line_starts(lines)
    line_number = content.count("\n", 0, offset)

    marker_line: Optional[int] = None
    marker_col = 0
    current = _classify(lines[line_number])
    threshold = current.key_indent if current is not None else offset - starts[line_number]
    if current is not None and current.dash is not None:
        marker_line, marker_col = line_number, current.dash
    else:
        for index in range(line_number - 1, -1, -1):
            candidate = _classify(lines[index])
            if candidate is None:
                continue
            if candidate.dash is not None and candidate.dash < threshold:
                marker_line, marker_col = index, candidate.dash
                break
            if candidate.indent < threshold:
                if candidate.indent == 0:
                    return None
                threshold = candidate.indent
    if marker_line is None:
        return None

    start = starts[marker_line] + marker_col
    for index in range(marker_line + 1, len(lines)):
        candidate = _classify(lines[index])
        if candidate is not None and candidate.indent <= marker_col:
            return start, starts[index] - 1
    return start, len(content)
