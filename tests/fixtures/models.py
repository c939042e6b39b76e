"""Direct constructors for resource descriptors, skipping module loading."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence

from markdown_maker.resources.models import (
    BLOCK_RENDERER_NAMES,
    HOOK_NAMES,
    Format,
    HookTable,
    Project,
    RequiredFormat,
)


def make_format(
    src: Path,
    name: str = "book",
    *,
    version: str = "1.0.0",
    export: Optional[Mapping[str, Mapping[str, Any]]] = None,
    hooks: Optional[Mapping[str, Callable[..., Any]]] = None,
    renderers: Optional[Mapping[str, Callable[..., Any]]] = None,
    json_renderers: Optional[Mapping[str, Callable[..., Any]]] = None,
    blueprints: Optional[Mapping[str, Callable[..., Any]]] = None,
) -> Format:
    return Format(
        name=name,
        version=version,
        requires=">=1.0",
        src=src,
        export_profiles=MappingProxyType(dict(export or {})),
        hooks=HookTable.build(hooks, allowed=HOOK_NAMES, kind="hook"),
        renderers=HookTable.build(
            renderers, allowed=BLOCK_RENDERER_NAMES, kind="renderer"
        ),
        json_renderers=MappingProxyType(dict(json_renderers or {})),
        blueprints=MappingProxyType(dict(blueprints or {})),
    )


def make_project(
    src: Path,
    formats: Sequence[Format],
    name: str = "guide",
    *,
    version: str = "1.2.0",
    languages: Sequence[str] = ("en",),
    hooks: Optional[Mapping[str, Callable[..., Any]]] = None,
) -> Project:
    return Project(
        name=name,
        version=version,
        src=src,
        formats=tuple(
            RequiredFormat(
                name=fmt.name,
                version_range=">=1.0",
                languages=tuple(languages),
            )
            for fmt in formats
        ),
        hooks=HookTable.build(hooks, allowed=HOOK_NAMES, kind="hook"),
    )
