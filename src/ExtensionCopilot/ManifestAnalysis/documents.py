"""Text documents as delivered by the editing host, with offset/position mapping."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import List, Tuple

__all__ = ["Position", "Range", "TextDocument"]


@dataclass(frozen=True, slots=True)
class Position:
    """Zero-based line and character coordinates."""

    line: int
    character: int


@dataclass(frozen=True, slots=True)
class Range:
    start: Position
    end: Position


@dataclass(frozen=True, slots=True)
class TextDocument:
    """Immutable snapshot of a document's text keyed by its URI.

    Examples:
        >>> doc = TextDocument("file:///extension.yaml", "name: a\\nversion: 1\\n")
        >>> doc.position_at(9)
        Position(line=1, character=1)
        >>> doc.offset_at(Position(1, 1))
        9
    """

    uri: str
    text: str
    _line_starts: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        starts = [0]
        for index, char in enumerate(self.text):
            if char == "\n":
                starts.append(index + 1)
        object.__setattr__(self, "_line_starts", tuple(starts))

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def lines(self) -> List[str]:
        """Return the document lines without line terminators."""
        return self.text.split("\n")

    def line_at(self, line: int) -> str:
        """Return the text of ``line`` without its terminator (``""`` when out of range)."""

        if line < 0 or line >= len(self._line_starts):
            return ""
        start = self._line_starts[line]
        end = self.text.find("\n", start)
        if end == -1:
            end = len(self.text)
        return self.text[start:end].rstrip("\r")

    def position_at(self, offset: int) -> Position:
        """Map a character offset to a position, clamping to the document bounds."""

        offset = max(0, min(offset, len(self.text)))
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line, offset - self._line_starts[line])

    def offset_at(self, position: Position) -> int:
        """Map a position to a character offset, clamping to the document bounds."""

        if position.line < 0:
            return 0
        if position.line >= len(self._line_starts):
            return len(self.text)
        start = self._line_starts[position.line]
        next_start = (
            self._line_starts[position.line + 1]
            if position.line + 1 < len(self._line_starts)
            else len(self.text)
        )
        return max(start, min(start + position.character, next_start))

    def range_of(self, start_offset: int, end_offset: int) -> Range:
        return Range(self.position_at(start_offset), self.position_at(end_offset))
