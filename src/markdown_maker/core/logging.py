"""Logging setup: JSON-lines file output plus a console handler."""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
    "format_task",
]

LOGGER_NAME = "markdown_maker"


class JsonLogFormatter(logging.Formatter):
    """Emit log records as structured JSON lines."""

    _RESERVED = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "markup",
    }

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = {
            key: _coerce_value(value)
            for key, value in record.__dict__.items()
            if key not in self._RESERVED
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logger(
    name: str = LOGGER_NAME,
    *,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    debug: bool = False,
    discrete: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: Optional[Console] = None,
) -> tuple[logging.Logger, Optional[Path]]:
    """Configure the namespaced logger used by every maker program.

    The console handler is always present: a :class:`RichHandler` by
    default, a plain stream handler when ``discrete`` is set. A rotating JSON
    file handler is added when ``log_dir`` is given.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    console_level = logging.DEBUG if debug else _coerce_level(level)
    _replace_console_handler(logger, console_level, discrete, console)

    file_path: Optional[Path] = None
    if log_dir is not None:
        target_dir = _prepare_log_dir(log_dir)
        file_path = target_dir / f"{name.rsplit('.', 1)[-1]}.log"
        _ensure_file_handler(logger, file_path, max_bytes, backup_count)

    return logger, file_path


def format_task(
    project: Optional[str],
    format_name: Optional[str],
    file: Optional[str],
    text: str,
) -> str:
    """Prefix ``text`` with a ``project/format/file`` tag."""

    tags = [part for part in (project, format_name, file) if part]
    if not tags:
        return text
    return f"{'/'.join(tags)}: {text}"


def _coerce_level(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def _replace_console_handler(
    logger: logging.Logger,
    level: int,
    discrete: bool,
    console: Optional[Console],
) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, "_maker_console", False):
            logger.removeHandler(handler)
            handler.close()

    handler: logging.Handler
    if discrete:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    handler._maker_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)


def _ensure_file_handler(
    logger: logging.Logger,
    path: Path,
    max_bytes: int,
    backup_count: int,
) -> RotatingFileHandler:
    for handler in logger.handlers:
        if getattr(handler, "_maker_file", False):
            if Path(handler.baseFilename) == path:  # type: ignore[attr-defined]
                return handler  # type: ignore[return-value]
            logger.removeHandler(handler)
            handler.close()
            break
    managed = RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    managed.setLevel(logging.DEBUG)
    managed.setFormatter(JsonLogFormatter())
    managed._maker_file = True  # type: ignore[attr-defined]
    logger.addHandler(managed)
    return managed


def _coerce_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _coerce_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_coerce_value(item) for item in value]
    return repr(value)


def _prepare_log_dir(log_dir: Path) -> Path:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir
    except PermissionError:
        fallback = Path(tempfile.gettempdir()) / "markdown-maker-logs"
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback
