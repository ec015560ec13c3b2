import faulthandler
import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .utils import get_user_data_path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_MAX_BYTES = 1_000_000
LOG_BACKUPS = 3

_FAULT_FILE = None


def default_log_path() -> Path:
    return Path(get_user_data_path("logs.txt"))


def _existing_handler(root: logging.Logger, log_path: Path):
    target = log_path.resolve()
    for handler in root.handlers:
        name = getattr(handler, "baseFilename", "")
        if isinstance(handler, RotatingFileHandler) and name and Path(name).resolve() == target:
            return handler
    return None


def setup_app_logging(log_path=None, level: int = logging.INFO) -> Path:
    """Route all logging into a rotating file and log anything uncaught.

    Safe to call more than once for the same path.
    """
    log_path = Path(log_path) if log_path else default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    if _existing_handler(root, log_path) is not None:
        return log_path

    handler = RotatingFileHandler(
        log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    logging.captureWarnings(True)
    _enable_fault_handler(log_path)
    sys.excepthook = _log_uncaught
    sys.unraisablehook = _log_unraisable
    threading.excepthook = _log_thread_exception
    logging.info("Logging to %s (Python %s)", log_path, sys.version.split()[0])
    return log_path


def _enable_fault_handler(log_path: Path) -> None:
    global _FAULT_FILE
    if _FAULT_FILE is not None:
        return
    try:
        fault_file = open(log_path, "a", encoding="utf-8")
    except OSError as exc:
        logging.warning("Fault handler unavailable: %s", exc)
        return
    try:
        faulthandler.enable(fault_file)
    except (OSError, ValueError, RuntimeError) as exc:
        fault_file.close()
        logging.warning("Fault handler unavailable: %s", exc)
        return
    _FAULT_FILE = fault_file


def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
    logging.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))


def _log_unraisable(unraisable) -> None:
    exc_value = unraisable.exc_value
    logging.critical(
        "Unraisable exception: %s",
        getattr(unraisable, "err_msg", ""),
        exc_info=(type(exc_value), exc_value, unraisable.exc_traceback),
    )


def _log_thread_exception(args) -> None:
    logging.critical(
        "Unhandled exception in thread %s",
        getattr(args.thread, "name", "unknown"),
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )
