"""Logging setup shared by imgconv commands.

Every command logs JSON lines to a rotating file inside the workspace
``logs/`` directory. ``--verbose`` adds a plain-text mirror on stderr.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

__all__ = [
    "CONSOLE_FORMAT",
    "JsonLogFormatter",
    "configure_logger",
]

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-5.5s | %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Handlers installed here carry one of these attributes; anything else a
# caller attached to the logger is left untouched.
_FILE_MARKER = "_imgconv_file"
_CONSOLE_MARKER = "_imgconv_console"

_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class JsonLogFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Values passed through ``extra=`` are nested under ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload = dict(_header(record))
        extras = dict(_extras(record))
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=True)


def _header(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
    yield "timestamp", stamp.isoformat()
    yield "level", record.levelname
    yield "logger", record.name
    yield "thread", record.threadName
    yield "message", record.getMessage()


def _extras(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key in _RECORD_FIELDS or key.startswith("_"):
            continue
        yield key, _jsonable(value)


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    # Enums collapse to their value.
    inner = getattr(value, "value", None)
    if isinstance(inner, (str, int)):
        return inner
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return repr(value)


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Point ``name`` at a rotating JSON log and return it with the file path.

    The file defaults to ``<last dotted segment of name>.log``. When
    ``log_dir`` cannot be written the file is opened under the temp
    directory instead, so callers should report the returned path rather
    than assume ``log_dir``. Calling this again for the same logger reuses
    its handlers.
    """

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    file_handler = _ensure_file_handler(
        logger,
        filename or name.rpartition(".")[2] + ".log",
        log_dir,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    file_handler.setLevel(logging.DEBUG if verbose else _coerce_level(level))

    if verbose:
        _attach_console(logger)
    else:
        _detach_console(logger)
    return logger, Path(file_handler.baseFilename)


def _coerce_level(level: str) -> int:
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _ensure_file_handler(
    logger: logging.Logger,
    filename: str,
    log_dir: Path,
    *,
    max_bytes: int,
    backup_count: int,
) -> RotatingFileHandler:
    accepted = {
        os.path.abspath(directory / filename)
        for directory in (log_dir, _fallback_log_dir())
    }
    for handler in _marked(logger, _FILE_MARKER):
        if handler.baseFilename in accepted:
            return handler
        logger.removeHandler(handler)
        handler.close()

    rotation = {"maxBytes": max_bytes, "backupCount": backup_count}
    try:
        handler = _open_rotating(log_dir / filename, rotation)
    except PermissionError:
        handler = _open_rotating(_fallback_log_dir() / filename, rotation)
    handler.setFormatter(JsonLogFormatter())
    setattr(handler, _FILE_MARKER, True)
    logger.addHandler(handler)
    return handler


def _open_rotating(path: Path, rotation: dict[str, int]) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(mode=0o600, exist_ok=True)
    return RotatingFileHandler(path, encoding="utf-8", **rotation)


def _attach_console(logger: logging.Logger) -> None:
    if _marked(logger, _CONSOLE_MARKER):
        return
    console = logging.StreamHandler(stream=sys.stderr)
    console.setLevel(logging.DEBUG)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATEFMT))
    setattr(console, _CONSOLE_MARKER, True)
    logger.addHandler(console)


def _detach_console(logger: logging.Logger) -> None:
    for handler in _marked(logger, _CONSOLE_MARKER):
        logger.removeHandler(handler)
        handler.close()


def _marked(logger: logging.Logger, marker: str) -> list[Any]:
    return [h for h in logger.handlers if getattr(h, marker, False)]


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "image-converter-logs"
