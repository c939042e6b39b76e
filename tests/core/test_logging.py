from __future__ import annotations

import io
import json
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from markdown_maker.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "markdown_maker.test_json",
        log_dir=log_dir,
        level="INFO",
        console=Console(file=io.StringIO()),
    )

    logger.info("hello world", extra={"event": "unit", "value": 3})

    class _Helper:
        def __repr__(self):  # noqa: D401
            return "helper"

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={
                "value": {"items": [Path(log_dir), 1], "mapping": {"k": "v"}},
                "obj": _Helper(),
            },
        )
    for handler in logger.handlers:
        handler.flush()

    assert log_path == log_dir / "test_json.log"
    contents = log_path.read_text(encoding="utf-8").strip().splitlines()
    first = json.loads(contents[0])
    assert first["message"] == "hello world"
    assert first["extra"]["event"] == "unit"
    assert first["extra"]["value"] == 3

    payload = json.loads(contents[-1])
    assert payload["exception"]
    assert payload["extra"]["obj"] == "helper"
    assert payload["extra"]["value"]["items"][0] == str(log_dir)
    _close(logger)


def test_configure_logger_console_levels(tmp_path):
    logger, path = core_logging.configure_logger(
        "markdown_maker.test_console",
        level="WARNING",
        console=Console(file=io.StringIO()),
    )

    consoles = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_maker_console", False)
    ]
    assert path is None
    assert len(consoles) == 1
    assert isinstance(consoles[0], RichHandler)
    assert consoles[0].level == logging.WARNING

    logger, _ = core_logging.configure_logger(
        "markdown_maker.test_console", debug=True, discrete=True
    )
    consoles = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_maker_console", False)
    ]
    assert len(consoles) == 1
    assert not isinstance(consoles[0], RichHandler)
    assert consoles[0].level == logging.DEBUG
    _close(logger)


def test_configure_logger_reuses_file_handler(tmp_path):
    log_dir = tmp_path / "logs"
    for _ in range(2):
        logger, _ = core_logging.configure_logger(
            "markdown_maker.test_reuse",
            log_dir=log_dir,
            console=Console(file=io.StringIO()),
        )

    files = [
        handler
        for handler in logger.handlers
        if getattr(handler, "_maker_file", False)
    ]
    assert len(files) == 1
    _close(logger)


def test_unknown_level_falls_back_to_info():
    logger, _ = core_logging.configure_logger(
        "markdown_maker.test_level",
        level="chatty",
        console=Console(file=io.StringIO()),
    )

    (handler,) = logger.handlers
    assert handler.level == logging.INFO
    _close(logger)


def test_format_task_joins_present_parts():
    assert (
        core_logging.format_task("guide", "book", "intro.md", "Using")
        == "guide/book/intro.md: Using"
    )
    assert core_logging.format_task("guide", None, None, "x") == "guide: x"
    assert core_logging.format_task(None, None, None, "bare") == "bare"
