"""Tests for file and logging utilities."""

from __future__ import annotations

import codecs
import logging
import logging.handlers
from pathlib import Path

import pytest

from codenook.utils import file_io
from codenook.utils import logging as logging_utils


def test_read_text_normalizes_newlines(tmp_path: Path) -> None:
    target = tmp_path / "crlf.txt"
    target.write_bytes(b"one\r\ntwo\rthree\n")

    assert file_io.read_text(target) == "one\ntwo\nthree\n"
    assert file_io.read_text(target, normalize_newlines=False) == "one\r\ntwo\rthree\n"


@pytest.mark.parametrize(
    ("bom", "encoding"),
    [
        (codecs.BOM_UTF8, "utf-8"),
        (codecs.BOM_UTF16_LE, "utf-16-le"),
        (codecs.BOM_UTF32_LE, "utf-32-le"),
    ],
)
def test_read_text_detects_bom(tmp_path: Path, bom: bytes, encoding: str) -> None:
    target = tmp_path / "bom.txt"
    target.write_bytes(bom + "héllo".encode(encoding))

    assert file_io.read_text(target) == "héllo"


def test_read_text_falls_back_to_latin1(tmp_path: Path) -> None:
    target = tmp_path / "legacy.txt"
    target.write_bytes("café".encode("latin-1"))

    assert file_io.read_text(target) == "café"


def test_setup_logging_writes_to_rotating_file(tmp_path: Path) -> None:
    log_path = logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=False)
    logging.getLogger("codenook.test").info("hello from test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / "codenook.log"
    assert logging_utils.current_log_path() == log_path
    assert "hello from test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_replaces_previous_handlers(tmp_path: Path) -> None:
    logging_utils.setup_logging(logging.INFO, log_dir=tmp_path / "first", console=False)
    second = logging_utils.setup_logging(logging.INFO, log_dir=tmp_path / "second", console=False)

    file_handlers = [
        handler
        for handler in logging.getLogger().handlers
        if isinstance(handler, logging.handlers.RotatingFileHandler)
    ]

    assert [Path(handler.baseFilename) for handler in file_handlers] == [second]
    assert logging_utils.current_log_path() == second


def test_log_dir_falls_back_to_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CODENOOK_LOG_DIR", str(tmp_path))

    assert logging_utils.resolve_log_dir() == tmp_path
    assert logging_utils.resolve_log_dir(tmp_path / "explicit") == tmp_path / "explicit"
