"""Logging setup shared by the CLI and the HTTP service."""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "promptforge"
CONSOLE_FORMAT = "[promptforge] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_PREFIX = "promptforge."


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``promptforge.<name>``, or the package logger when ``name`` is empty."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def resolve_level(verbose: bool = False, level: str | int | None = None) -> int:
    """``verbose`` forces DEBUG; otherwise a level name or number, defaulting to INFO."""
    if verbose:
        return logging.DEBUG
    if isinstance(level, int):
        return level
    if level is None or not level.strip():
        return logging.INFO
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | str | None = None,
    level: str | int | None = None,
) -> logging.Logger:
    """Install the console handler and, when ``log_file`` is set, a timestamped file sink.

    Calling this again replaces the handlers it installed earlier and leaves
    any other handler on the package logger alone.
    """
    resolved = resolve_level(verbose, level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(resolved)
    logger.propagate = False

    for handler in list(logger.handlers):
        if (handler.get_name() or "").startswith(_HANDLER_PREFIX):
            logger.removeHandler(handler)
            handler.close()

    logger.addHandler(_prepare(logging.StreamHandler(), "console", resolved, CONSOLE_FORMAT))
    if log_file is not None:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(path, encoding="utf-8")
        logger.addHandler(_prepare(sink, "file", resolved, FILE_FORMAT))
    return logger


def _prepare(handler: logging.Handler, role: str, level: int, fmt: str) -> logging.Handler:
    handler.set_name(f"{_HANDLER_PREFIX}{role}")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


__all__ = ["configure_logging", "get_logger", "resolve_level"]
