"""Tests for the editor-side document helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from codenook.editor import CursorPosition, DocumentSnapshot, detect_language


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("main.py", "python"),
        ("App.TSX", "typescript"),
        (Path("src/lib.rs"), "rust"),
        ("Makefile", "plaintext"),
        ("notes.unknown", "plaintext"),
        (None, "plaintext"),
    ],
)
def test_detect_language(name, expected: str) -> None:
    assert detect_language(name) == expected


def test_cursor_position_rejects_zero_based_values() -> None:
    with pytest.raises(ValueError):
        CursorPosition(0, 1)
    with pytest.raises(ValueError):
        CursorPosition(1, 0)


def test_snapshot_splits_text_at_cursor() -> None:
    snapshot = DocumentSnapshot("abc\ndef\n", CursorPosition(2, 2))

    assert snapshot.offset_of() == 5
    assert snapshot.text_before_cursor == "abc\nd"
    assert snapshot.text_after_cursor == "ef\n"


def test_snapshot_clamps_positions_past_the_document() -> None:
    snapshot = DocumentSnapshot("abc\ndef", CursorPosition(1, 1))

    assert snapshot.offset_of(CursorPosition(1, 99)) == 3
    assert snapshot.offset_of(CursorPosition(9, 1)) == len(snapshot.text)
