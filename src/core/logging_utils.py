"""
Logging helpers.

The grapher writes its log to a per-user state directory so a frozen or
misbehaving session can be diagnosed after the window is gone. Undefined
samples (division by zero, domain errors) are normal while graphing and never
reach the log one by one; an unexpected evaluation error is logged once per
expression with its traceback.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import os
import sys
import threading
import time
from pathlib import Path
from typing import Hashable, Iterator, Optional

ENV_LOG_LEVEL = "SURFACEGRAPHER_LOG_LEVEL"
DEFAULT_LOG_FILENAME = "surfacegrapher.log"

_LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [%(name)s] %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOG_ONCE_KEYS: set[Hashable] = set()
_LOG_ONCE_LOCK = threading.Lock()


def default_log_dir() -> Path:
    """Per-user log directory (LOCALAPPDATA on Windows, XDG state dir elsewhere)."""
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or str(Path.home())
        return Path(base) / "SurfaceGrapher" / "logs"

    xdg_state_home = os.environ.get("XDG_STATE_HOME")
    if xdg_state_home:
        return Path(xdg_state_home) / "surfacegrapher" / "logs"

    return Path.home() / ".local" / "state" / "surfacegrapher" / "logs"


def _parse_log_level(level: str | int) -> int:
    if isinstance(level, int):
        return int(level)
    value = str(level).strip().upper()
    if not value:
        return logging.INFO
    resolved = getattr(logging, value, logging.INFO)
    return resolved if isinstance(resolved, int) else logging.INFO


def _has_console_handler(root: logging.Logger) -> bool:
    return any(
        type(h) is logging.StreamHandler and getattr(h, "stream", None) is sys.stderr
        for h in root.handlers
    )


def setup_logging(
    *,
    log_level: str | int = "INFO",
    log_dir: Optional[str | Path] = None,
    filename: str = DEFAULT_LOG_FILENAME,
    console_level: Optional[int] = None,
) -> Optional[Path]:
    """
    Attach the grapher's log file (and optionally a stderr handler) to the root logger.

    Args:
        log_level: file level; SURFACEGRAPHER_LOG_LEVEL overrides it
        log_dir: directory for the log file (default: `default_log_dir()`)
        filename: log file name
        console_level: when set, also echo records at this level to stderr
            (the CLI uses WARNING so failed renders are visible in the terminal)

    Returns:
        path of the log file, or None when it could not be opened. Calling this
        again returns the already attached file instead of adding handlers.
    """
    root = logging.getLogger()

    if console_level is not None and not _has_console_handler(root):
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(int(console_level))
        console.setFormatter(logging.Formatter(fmt=_CONSOLE_FORMAT))
        root.addHandler(console)

    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)

    level = _parse_log_level(os.environ.get(ENV_LOG_LEVEL) or log_level)
    root.setLevel(min(level, int(console_level)) if console_level is not None else level)

    resolved_dir = Path(log_dir) if log_dir is not None else default_log_dir()
    try:
        resolved_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(resolved_dir / filename), encoding="utf-8")
    except OSError:
        return None
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    log_path = Path(file_handler.baseFilename)
    root.info("SurfaceGrapher logging to %s (level=%s)", log_path, logging.getLevelName(level))
    return log_path


def format_exception_message(prefix: str, message: str, *, log_path: Optional[Path]) -> str:
    """Message box text, pointing at the log file when there is one."""
    if log_path is None:
        return f"{prefix}\n\n{message}"
    return f"{prefix}\n\n{message}\n\n(Log file: {log_path})"


def log_once(
    logger: logging.Logger,
    key: Hashable,
    level: int,
    msg: str,
    *args,
    exc_info: bool | BaseException | None = None,
) -> bool:
    """
    Log at most once per process for `key`.

    Keys are usually tuples such as ("evaluate", expression_text), so a formula
    that misbehaves on every grid sample produces a single record per formula.

    Returns:
        True if the record was emitted
    """
    with _LOG_ONCE_LOCK:
        if key in _LOG_ONCE_KEYS:
            return False
        _LOG_ONCE_KEYS.add(key)

    logger.log(level, msg, *args, exc_info=exc_info)
    return True


@contextmanager
def log_duration(
    logger: logging.Logger,
    msg: str,
    *args,
    level: int = logging.DEBUG,
) -> Iterator[None]:
    """Log `msg % args` followed by the elapsed wall time of the block."""
    started = time.perf_counter()
    try:
        yield
    finally:
        if logger.isEnabledFor(level):
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            logger.log(level, f"{msg} (%.1f ms)", *args, elapsed_ms)
