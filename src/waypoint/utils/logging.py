"""Logging setup for hosts that embed the chapter tracker.

Tracker modules only call ``logging.getLogger(__name__)``. Hosts that want
the tracker's output in its own file call :func:`setup_logging`, which
attaches a rotating ``waypoint.log`` handler (plus an optional console
handler) to the ``waypoint`` package logger and leaves the root logger of
the host application alone.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging", "get_logger", "get_log_path", "resolve_level", "PACKAGE_LOGGER"]

PACKAGE_LOGGER = "waypoint"

_DEFAULT_LOG_DIR = Path.home() / ".waypoint" / "logs"
_LOG_DIR_ENV = "WAYPOINT_LOG_DIR"
_LOG_LEVEL_ENV = "WAYPOINT_LOG_LEVEL"
_LOG_FILENAME = "waypoint.log"
# Both log every publish/emit at debug level.
_CHATTY_LOGGERS: tuple[str, ...] = ("waypoint.events", "waypoint.telemetry")

_installed_handlers: list[logging.Handler] = []
_log_path: Path | None = None


def setup_logging(
    level: int | str | None = None,
    *,
    log_dir: Path | str | None = None,
    console: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    verbose_events: bool = False,
    force: bool = False,
) -> Path:
    """Route ``waypoint.*`` records to a rotating file and optionally stderr.

    ``level`` falls back to ``WAYPOINT_LOG_LEVEL`` and then ``INFO``. Unless
    ``verbose_events`` is set, the event bus and telemetry loggers stay at
    ``INFO`` or above even when the package runs at ``DEBUG``. Calling again
    without ``force`` returns the existing log path untouched.
    """

    global _log_path
    if _log_path is not None and not force:
        return _log_path

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    _remove_installed_handlers(package_logger)

    resolved_level = resolve_level(level)
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILENAME

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    _installed_handlers.append(file_handler)
    if console:
        _installed_handlers.append(logging.StreamHandler())

    for handler in _installed_handlers:
        handler.setLevel(resolved_level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.setLevel(resolved_level)
    package_logger.propagate = False

    chatty_level = resolved_level if verbose_events else max(resolved_level, logging.INFO)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)

    _log_path = log_path
    package_logger.debug("Logging to %s at %s", log_path, logging.getLevelName(resolved_level))
    return log_path


def resolve_level(level: int | str | None = None) -> int:
    """Turn an int, a level name or ``WAYPOINT_LOG_LEVEL`` into a logging level."""

    candidate: int | str | None = level if level is not None else os.environ.get(_LOG_LEVEL_ENV)
    if candidate is None or candidate == "":
        return logging.INFO
    if isinstance(candidate, int):
        return candidate
    text = str(candidate).strip()
    if text.isdigit():
        return int(text)
    named = logging.getLevelName(text.upper())
    if isinstance(named, int):
        return named
    logging.getLogger(__name__).warning("Unknown log level %r; using INFO", candidate)
    return logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package logger for *name*."""

    if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def get_log_path() -> Path | None:
    """Return the file configured by :func:`setup_logging`, if any."""

    return _log_path


def _remove_installed_handlers(package_logger: logging.Logger) -> None:
    while _installed_handlers:
        handler = _installed_handlers.pop()
        package_logger.removeHandler(handler)
        handler.close()


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get(_LOG_DIR_ENV)
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()
