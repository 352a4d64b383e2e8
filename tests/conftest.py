"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Callable

import pytest

from codenook.editor.document_model import CursorPosition, DocumentSnapshot


@pytest.fixture
def make_snapshot() -> Callable[..., DocumentSnapshot]:
    def _factory(
        text: str = "def main():\n    print(\n",
        line: int = 2,
        column: int = 11,
        language: str = "python",
    ) -> DocumentSnapshot:
        return DocumentSnapshot(text=text, position=CursorPosition(line, column), language=language)

    return _factory
