"""Diagnostics for the United Colors CLI.

Everything lands under ``~/.united-colors``:
1. logs/: JSON log lines, tagged with the tracked session's intensity and state
2. logs/united_colors_fault.log: native tracebacks from inside OpenCV / highgui
3. crash_reports/: one scrubbed JSON file per unexpected exception, carrying a
   snapshot of the session the user was editing when it happened
"""

import datetime
import faulthandler
import json
import logging
import logging.handlers
import os
import sys
import traceback
from pathlib import Path

from security import strip_pii

logger = logging.getLogger(__name__)

APP_DIR = "~/.united-colors"
LOG_FILE_NAME = "united_colors.log"
FAULT_FILE_NAME = "united_colors_fault.log"

MAX_CRASH_REPORTS = 5
MAX_LOG_BYTES = 2_000_000
LOG_BACKUPS = 3

_active_session = None


def track_session(session) -> None:
    """Attach ``session`` to log lines and crash reports until untracked."""
    global _active_session
    _active_session = session


def untrack_session() -> None:
    global _active_session
    _active_session = None


def session_snapshot(session=None) -> dict | None:
    """Describe the editing state of ``session`` (default: the tracked one)."""
    session = session if session is not None else _active_session
    if session is None:
        return None
    source = getattr(session, "source", None)
    return {
        "input": Path(source).name if source else None,
        "shape": list(session.original.shape),
        "channels": session.channels,
        "intensity": session.intensity,
        "overflow": session.overflow,
        "state": session.state.value,
    }


def _log_dir() -> str:
    """UNITED_COLORS_LOG_DIR if it stays inside APP_DIR, else APP_DIR/logs."""
    default = os.path.expanduser(f"{APP_DIR}/logs")
    override = os.environ.get("UNITED_COLORS_LOG_DIR", "")
    if not override:
        return default
    resolved = os.path.realpath(override)
    allowed = os.path.realpath(os.path.expanduser(APP_DIR))
    if resolved != allowed and not resolved.startswith(allowed + os.sep):
        logger.warning("UNITED_COLORS_LOG_DIR outside %s, using default", APP_DIR)
        return default
    return resolved


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the slider position when a session is live."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.datetime.fromtimestamp(
                record.created, tz=datetime.timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if _active_session is not None:
            entry["intensity"] = _active_session.intensity
            entry["state"] = _active_session.state.value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry)


def setup_logging(log_dir: str | None = None) -> str:
    """Attach the rotating JSON handler to the root logger. Returns the log dir."""
    log_dir = log_dir or _log_dir()
    os.makedirs(log_dir, mode=0o700, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE_NAME),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
    )
    handler.setFormatter(JSONFormatter())

    level = os.environ.get("UNITED_COLORS_LOG_LEVEL", "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.addHandler(handler)
    return log_dir


def setup_faulthandler(log_dir: str):
    # separate file: rotation would invalidate faulthandler's fd
    fault_path = os.path.join(log_dir, FAULT_FILE_NAME)
    try:
        fault_file = open(fault_path, "a", buffering=1)  # noqa: SIM115
        os.chmod(fault_path, 0o600)
        faulthandler.enable(file=fault_file, all_threads=True)
    except OSError as e:
        logger.warning("Could not enable faulthandler: %s", e)


def _crash_dir() -> str:
    return os.path.expanduser(f"{APP_DIR}/crash_reports")


def _prune_crash_reports(crash_dir: str):
    """Keep only the newest MAX_CRASH_REPORTS reports."""
    try:
        reports = sorted(
            Path(crash_dir).glob("crash_*.json"),
            key=lambda f: f.stat().st_mtime,
            reverse=True,
        )
        for old in reports[MAX_CRASH_REPORTS:]:
            old.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Crash report pruning skipped: %s", e)


def write_crash_report(exc_type, exc_value, exc_tb) -> str:
    """Write a scrubbed JSON crash report (mode 0600). Returns its path.

    The report carries the tracked session snapshot: input file name,
    channel count, slider intensity, overflow mode and lifecycle state.
    Home directories and user names are replaced by ``strip_pii``.
    """
    crash_dir = _crash_dir()
    os.makedirs(crash_dir, mode=0o700, exist_ok=True)

    timestamp = datetime.datetime.now(tz=datetime.timezone.utc).strftime(
        "%Y%m%dT%H%M%SZ"
    )
    report = {
        "timestamp": timestamp,
        "exception_type": exc_type.__name__ if exc_type else "Unknown",
        "exception_message": str(exc_value),
        "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
        "session": session_snapshot(),
        "python_version": sys.version,
        "platform": sys.platform,
    }
    report = strip_pii({"extra": report}, {})["extra"]

    crash_path = os.path.join(crash_dir, f"crash_{timestamp}.json")
    old_umask = os.umask(0o077)
    try:
        with open(crash_path, "w") as f:
            json.dump(report, f, indent=2)
    finally:
        os.umask(old_umask)

    _prune_crash_reports(crash_dir)
    return crash_path


def setup_excepthook():
    """Route uncaught exceptions through write_crash_report, then the default hook."""

    def _crash_excepthook(exc_type, exc_value, exc_tb):
        try:
            write_crash_report(exc_type, exc_value, exc_tb)
        except Exception as e:
            logger.debug("Crash report not written: %s", e)
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = _crash_excepthook


def init_diagnostics() -> str:
    """Set up logging, faulthandler and the crash hook. Returns the log dir."""
    log_dir = setup_logging()
    setup_faulthandler(log_dir)
    setup_excepthook()
    logger.info("Diagnostics initialized: logging=%s", log_dir)
    return log_dir
