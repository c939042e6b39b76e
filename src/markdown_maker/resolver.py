"""Cascading lookup of files and override hooks.

Files are searched in three tiers, most specific first::

    <project.src>/formats/<format.name>/<path>
    <project.src>/<path>
    <format.src>/<path>

Hooks mirror the same precedence: the project's hook table, then the
format's, then the built-in default. The first tier that answers wins; tiers
are never merged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

from .core.files import iter_files, read_text_async, read_text_file
from .resources.models import Format, Project

__all__ = [
    "candidate_roots",
    "candidate_paths",
    "find_file",
    "resolve",
    "resolve_async",
    "resolve_hook",
    "resolve_renderer",
    "collect_sources",
]

F = TypeVar("F", bound=Callable[..., Any])


def candidate_roots(project: Project, fmt: Format) -> tuple[Path, Path, Path]:
    """Return the three search roots in precedence order."""

    return (
        project.src / "formats" / fmt.name,
        project.src,
        fmt.src,
    )


def candidate_paths(
    project: Project, fmt: Format, relative: str | Path
) -> tuple[Path, ...]:
    return tuple(root / relative for root in candidate_roots(project, fmt))


def find_file(
    project: Project, fmt: Format, relative: str | Path
) -> Optional[Path]:
    """Return the most specific existing file for ``relative``, if any."""

    for candidate in candidate_paths(project, fmt, relative):
        if candidate.is_file():
            return candidate
    return None


def resolve(
    project: Project, fmt: Format, relative: str | Path
) -> Optional[str]:
    """Return the content of the most specific match, or ``None``."""

    path = find_file(project, fmt, relative)
    if path is None:
        return None
    return read_text_file(path)


async def resolve_async(
    project: Project, fmt: Format, relative: str | Path
) -> Optional[str]:
    path = find_file(project, fmt, relative)
    if path is None:
        return None
    return await read_text_async(path)


def resolve_hook(
    name: str,
    project: Optional[Project],
    fmt: Format,
    default: Optional[F] = None,
) -> Optional[F]:
    """Pick the override for hook ``name`` from project, format, or default."""

    if project is not None:
        hook = project.hooks.get(name)
        if hook is not None:
            return hook  # type: ignore[return-value]
    hook = fmt.hooks.get(name)
    if hook is not None:
        return hook  # type: ignore[return-value]
    return default


def resolve_renderer(name: str, fmt: Format) -> Optional[Callable[..., str]]:
    """Block renderers are format capabilities only."""

    return fmt.renderers.get(name)


def collect_sources(
    project: Project,
    fmt: Format,
    folder: str,
    patterns: Sequence[str],
) -> dict[str, Path]:
    """Collect ``folder`` files from every tier keyed by relative path.

    A more specific tier replaces a less specific file at the same relative
    path. Project files below ``_``-prefixed directories are skipped.
    """

    project_format, project_root, format_root = candidate_roots(project, fmt)
    sources: dict[str, Path] = {}
    for root, skip_private in (
        (format_root, False),
        (project_root, True),
        (project_format, False),
    ):
        for rel, path in iter_files(
            root / folder, patterns, skip_private=skip_private
        ):
            sources[rel] = path
    return dict(sorted(sources.items()))
