# tests/test_app_logging.py
import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from types import SimpleNamespace

import pytest

from subplay import app_logging


@pytest.fixture
def root_logger(monkeypatch):
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(sys, "unraisablehook", sys.unraisablehook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)
    # Leave the test runner's own fault handler in place.
    monkeypatch.setattr(app_logging, "_FAULT_FILE", object())
    yield root
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.captureWarnings(False)


def _file_handlers(root):
    return [h for h in root.handlers if isinstance(h, RotatingFileHandler)]


def test_setup_writes_rotating_log(root_logger, tmp_path):
    log_path = app_logging.setup_app_logging(tmp_path / "logs" / "subplay.log", logging.DEBUG)
    assert log_path.exists()
    assert root_logger.level == logging.DEBUG
    assert "Logging to" in log_path.read_text(encoding="utf-8")

    handler = _file_handlers(root_logger)[-1]
    assert handler.maxBytes == 1_000_000
    assert handler.backupCount == 3


def test_setup_is_idempotent(root_logger, tmp_path):
    path = tmp_path / "subplay.log"
    app_logging.setup_app_logging(path)
    count = len(_file_handlers(root_logger))
    app_logging.setup_app_logging(path)
    assert len(_file_handlers(root_logger)) == count


def test_default_path_is_in_data_dir(root_logger, data_dir):
    assert app_logging.setup_app_logging() == data_dir / "logs.txt"


def test_hooks_log_uncaught_errors(root_logger, tmp_path):
    log_path = app_logging.setup_app_logging(tmp_path / "subplay.log")
    error = ValueError("boom")
    sys.excepthook(ValueError, error, None)
    threading.excepthook(
        SimpleNamespace(
            thread=SimpleNamespace(name="mpv-events"),
            exc_type=RuntimeError,
            exc_value=RuntimeError("thread boom"),
            exc_traceback=None,
        )
    )
    sys.unraisablehook(
        SimpleNamespace(err_msg="in finalizer", exc_value=OSError("gone"), exc_traceback=None)
    )

    text = log_path.read_text(encoding="utf-8")
    assert "CRITICAL root: Unhandled exception" in text
    assert "ValueError: boom" in text
    assert "Unhandled exception in thread mpv-events" in text
    assert "Unraisable exception: in finalizer" in text


def test_fault_handler_failure_is_logged(monkeypatch, tmp_path, caplog):
    monkeypatch.setattr(app_logging, "_FAULT_FILE", None)

    def _refuse(file):
        raise RuntimeError("no fault handler")

    monkeypatch.setattr(app_logging.faulthandler, "enable", _refuse)
    with caplog.at_level(logging.WARNING):
        app_logging._enable_fault_handler(tmp_path / "fault.log")
    assert app_logging._FAULT_FILE is None
    assert "Fault handler unavailable" in caplog.text
