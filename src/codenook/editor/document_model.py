"""Dataclasses describing the editor state handed to the completion core."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(slots=True, frozen=True)
class CursorPosition:
    """A 1-based line/column location, matching the editor widget's coordinates."""

    line: int
    column: int

    def __post_init__(self) -> None:
        if self.line < 1 or self.column < 1:
            raise ValueError(f"Cursor positions are 1-based; got line={self.line} column={self.column}")

    def to_dict(self) -> dict[str, int]:
        return {"line": self.line, "column": self.column}


@dataclass(slots=True, frozen=True)
class DocumentSnapshot:
    """Immutable copy of the document captured when a completion is triggered.

    The completion core only ever reads this snapshot; it never goes back to
    the live editor, so a result is always anchored to ``position`` even if
    the user kept typing.
    """

    text: str
    position: CursorPosition
    language: str = "plaintext"
    path: Optional[Path] = None

    def offset_of(self, position: CursorPosition | None = None) -> int:
        """Return the character offset of ``position`` (clamped to the document)."""

        target = position or self.position
        lines = self.text.split("\n")
        if target.line > len(lines):
            return len(self.text)
        line_index = target.line - 1
        offset = sum(len(line) + 1 for line in lines[:line_index])
        return offset + min(target.column - 1, len(lines[line_index]))

    @property
    def text_before_cursor(self) -> str:
        return self.text[: self.offset_of()]

    @property
    def text_after_cursor(self) -> str:
        return self.text[self.offset_of() :]
