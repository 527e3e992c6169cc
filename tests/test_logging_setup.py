# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

from retro_tasker.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_levels() -> None:
    f = _ConsoleNoiseFilter()
    assert f.filter(_record("retro_tasker.organizer.store", logging.DEBUG))
    assert not f.filter(_record("retro_tasker.organizer.blob_store", logging.INFO))
    assert f.filter(_record("retro_tasker.organizer.blob_store", logging.WARNING))
    assert not f.filter(_record("retro_tasker.organizer.persistence", logging.INFO))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("urllib3", logging.WARNING))
    assert f.filter(_record("urllib3", logging.ERROR))


def test_setup_logging_writes_log_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level

    log_file = setup_logging(log_dir=tmp_path / "logs", console_level="warning")
    try:
        assert log_file == tmp_path / "logs" / "retro_tasker.log"
        console = next(h for h in root.handlers if not isinstance(h, logging.FileHandler))
        assert console.level == logging.WARNING

        logging.getLogger("retro_tasker.test").debug("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in log_file.read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            if h not in saved_handlers:
                h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)


def test_unknown_level_name_falls_back_to_info(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level

    setup_logging(log_dir=tmp_path, console_level="chatty")
    try:
        console = next(h for h in root.handlers if not isinstance(h, logging.FileHandler))
        assert console.level == logging.INFO
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            if h not in saved_handlers:
                h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
