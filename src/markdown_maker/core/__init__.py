"""Core shared helpers for markdown_maker programs."""

from __future__ import annotations

from .concurrency import call_hook, settle
from .config import TomlConfigError, load_toml, merge_defaults
from .files import (
    copy_file_async,
    iter_files,
    matches_any,
    read_text_async,
    read_text_file,
    unique,
    write_text_async,
)
from .logging import JsonLogFormatter, configure_logger, format_task

__all__ = [
    "TomlConfigError",
    "call_hook",
    "settle",
    "load_toml",
    "merge_defaults",
    "copy_file_async",
    "iter_files",
    "matches_any",
    "read_text_async",
    "read_text_file",
    "unique",
    "write_text_async",
    "JsonLogFormatter",
    "configure_logger",
    "format_task",
]
