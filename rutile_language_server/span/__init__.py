"""
Span utilities for tracking positions and ranges in Rutile source text.

Positions are zero-indexed (line, column) pairs where the column counts
characters of the Python string. Spans additionally carry character offsets
into the source so that containment checks do not depend on line layout.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

# Type parameter for indexing system
IndexType = TypeVar('IndexType')


class ZeroIndexed:
    """Marker class for zero-based indexing."""
    pass


class OneIndexed:
    """Marker class for one-based indexing (used for human-facing output)."""
    pass


@dataclass(frozen=True, order=True)
class Position(Generic[IndexType]):
    """A position in a text document."""
    line: int
    column: int

    def __post_init__(self):
        if self.line < 0 or self.column < 0:
            raise ValueError(f"Invalid position: line={self.line}, column={self.column}")

    def to_one_indexed(self) -> 'Position[OneIndexed]':
        """Convert a zero-indexed position to a one-indexed one."""
        return Position[OneIndexed](line=self.line + 1, column=self.column + 1)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Range(Generic[IndexType]):
    """A range in a text document."""
    start: Position[IndexType]
    end: Position[IndexType]

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Invalid range: start={self.start} > end={self.end}")

    def contains_position(self, position: Position[IndexType]) -> bool:
        """Check if this range contains the given position (end inclusive)."""
        return self.start <= position <= self.end

    @property
    def is_multiline(self) -> bool:
        return self.end.line > self.start.line

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class Span(Generic[IndexType]):
    """A location in source text: file, line/column range and character offsets."""
    file_path: Optional[str]
    range: Range[IndexType]
    start_offset: int
    end_offset: int

    def __post_init__(self):
        if self.start_offset < 0 or self.end_offset < self.start_offset:
            raise ValueError(
                f"Invalid offsets: start={self.start_offset}, end={self.end_offset}"
            )

    @property
    def start(self) -> Position[IndexType]:
        """Get the start position of this span."""
        return self.range.start

    @property
    def end(self) -> Position[IndexType]:
        """Get the end position of this span."""
        return self.range.end

    def __len__(self) -> int:
        return self.end_offset - self.start_offset

    def contains(self, other: 'Span[IndexType]') -> bool:
        """Check if another span lies entirely within this one."""
        return (self.start_offset <= other.start_offset
                and other.end_offset <= self.end_offset)

    def contains_position(self, position: Position[IndexType]) -> bool:
        """Check if this span contains the given position."""
        return self.range.contains_position(position)

    def __str__(self) -> str:
        file_part = f"{self.file_path}:" if self.file_path else ""
        return f"{file_part}{self.range}"


class SpanBuilder:
    """Helper class for building spans from text content."""

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path
        self._content: Optional[str] = None
        self._line_starts: List[int] = [0]

    def set_content(self, content: str) -> None:
        """Set the content to build spans from."""
        self._content = content
        self._line_starts = [0]
        for index, char in enumerate(content):
            if char == '\n':
                self._line_starts.append(index + 1)

    def position_from_offset(self, offset: int) -> Position[ZeroIndexed]:
        """Convert a character offset to a zero-indexed position."""
        if self._content is None:
            raise ValueError("Content not set")

        offset = max(0, min(offset, len(self._content)))
        line = bisect_right(self._line_starts, offset) - 1
        return Position[ZeroIndexed](line, offset - self._line_starts[line])

    def offset_from_position(self, position: Position[ZeroIndexed]) -> int:
        """Convert a zero-indexed position to a character offset."""
        if self._content is None:
            raise ValueError("Content not set")

        if position.line >= len(self._line_starts):
            return len(self._content)

        line_start = self._line_starts[position.line]
        if position.line + 1 < len(self._line_starts):
            line_end = self._line_starts[position.line + 1] - 1
        else:
            line_end = len(self._content)
        return min(line_start + position.column, line_end)

    def span_from_offsets(self, start_offset: int, end_offset: int) -> Span[ZeroIndexed]:
        """Create a span from character offsets."""
        range_obj = Range[ZeroIndexed](
            self.position_from_offset(start_offset),
            self.position_from_offset(end_offset)
        )
        return Span[ZeroIndexed](self.file_path, range_obj, start_offset, end_offset)


# Convenience type aliases
ZeroSpan = Span[ZeroIndexed]
ZeroPosition = Position[ZeroIndexed]
ZeroRange = Range[ZeroIndexed]

# Export all public types
__all__ = [
    "Position",
    "Range",
    "Span",
    "SpanBuilder",
    "ZeroIndexed",
    "OneIndexed",
    "ZeroSpan",
    "ZeroPosition",
    "ZeroRange",
]
