"""File discovery and I/O helpers shared by the build and export tasks."""

from __future__ import annotations

import asyncio
import fnmatch
import shutil
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

__all__ = [
    "matches_any",
    "iter_files",
    "read_text_file",
    "read_text_async",
    "write_text_async",
    "copy_file_async",
    "unique",
]


def matches_any(name: str, patterns: Sequence[str]) -> bool:
    """Return True when ``name`` matches one of the glob ``patterns``."""

    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def iter_files(
    root: Path,
    patterns: Sequence[str],
    *,
    skip_private: bool = False,
) -> Iterator[tuple[str, Path]]:
    """Yield ``(relative_posix_path, path)`` pairs for matching files.

    ``skip_private`` drops anything below a directory whose name starts with
    an underscore.
    """

    if not root.is_dir():
        return
    for candidate in sorted(root.rglob("*"), key=lambda p: str(p).lower()):
        if not candidate.is_file():
            continue
        rel = candidate.relative_to(root)
        if skip_private and _in_private_dir(rel):
            continue
        if matches_any(candidate.name, patterns):
            yield rel.as_posix(), candidate


def _in_private_dir(rel: Path) -> bool:
    return any(part.startswith("_") for part in rel.parts[:-1])


def read_text_file(path: Path) -> str:
    """Read a text file as UTF-8 with replacement for decode errors."""
    with Path(path).open("r", encoding="utf-8", errors="replace") as fh:
        return fh.read()


async def read_text_async(path: Path) -> str:
    return await asyncio.to_thread(read_text_file, path)


async def write_text_async(path: Path, text: str) -> Path:
    def _write() -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return await asyncio.to_thread(_write)


async def copy_file_async(source: Path, target: Path) -> Path:
    def _copy() -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        return target

    return await asyncio.to_thread(_copy)


def unique(values: Optional[Iterable[str]]) -> Optional[tuple[str, ...]]:
    """De-duplicate ``values`` preserving first-seen order."""

    if values is None:
        return None
    return tuple(dict.fromkeys(values))
