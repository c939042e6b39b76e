"""Immutable descriptors for formats, projects, and their hook tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from markdown_maker.errors import ConfigurationError

__all__ = [
    "BUILD_HOOKS",
    "EXPORT_HOOKS",
    "RENDER_HOOKS",
    "DOM_HOOKS",
    "HOOK_NAMES",
    "HOOK_ALIASES",
    "BLOCK_TYPES",
    "BLOCK_RENDERER_NAMES",
    "EXPORT_KINDS",
    "HookTable",
    "RequiredFormat",
    "Format",
    "Project",
    "ResourceModel",
]

BUILD_HOOKS: tuple[str, ...] = (
    "buildHtml",
    "buildHtmlFragments",
    "buildHtmlCollections",
    "buildScripts",
    "buildStylesheets",
    "buildImages",
    "buildFonts",
    "buildVendors",
)
EXPORT_HOOKS: tuple[str, ...] = (
    "exportPdf",
    "exportPngs",
    "exportJpgs",
    "exportZip",
)
RENDER_HOOKS: tuple[str, ...] = (
    "renderHtmlFragmentWrapper",
    "renderHtmlCollectionWrapper",
    "renderCollectionJson",
    "saveHtmlFragment",
    "saveHtmlCollection",
    "validateCollectionJson",
)
DOM_HOOKS: tuple[str, ...] = (
    "processDomFragment",
    "processDomCollection",
)
HOOK_NAMES: frozenset[str] = frozenset(
    BUILD_HOOKS + EXPORT_HOOKS + RENDER_HOOKS + DOM_HOOKS
)

# Older descriptor spellings accepted at load time.
HOOK_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "saveFragment": "saveHtmlFragment",
        "saveCollection": "saveHtmlCollection",
        "processHtml": "processDomFragment",
    }
)

BLOCK_TYPES: tuple[str, ...] = (
    "layout",
    "page",
    "content",
    "section",
    "panel",
    "example",
    "figure",
    "card",
    "table",
    "colbreak",
)
BLOCK_RENDERER_NAMES: frozenset[str] = frozenset(BLOCK_TYPES + ("heading",))

EXPORT_KINDS: tuple[str, ...] = ("pdf", "png", "jpg", "zip")


@dataclass(frozen=True)
class HookTable:
    """Named optional strategies; a name is either present or absent."""

    entries: Mapping[str, Callable[..., Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def build(
        cls,
        raw: Optional[Mapping[str, Any]],
        *,
        allowed: frozenset[str],
        kind: str,
        aliases: Mapping[str, str] = MappingProxyType({}),
    ) -> "HookTable":
        """Validate ``raw`` and return a table of the callables it defines.

        ``None`` values mark a hook as explicitly absent and are dropped.
        """

        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                f"{kind} table must be a mapping, got {type(raw).__name__}."
            )
        entries: dict[str, Callable[..., Any]] = {}
        for key, value in raw.items():
            name = aliases.get(key, key)
            if name not in allowed:
                raise ConfigurationError(f"Unknown {kind} '{key}'.")
            if value is None:
                continue
            if not callable(value):
                raise ConfigurationError(
                    f"{kind} '{key}' must be callable, got "
                    f"{type(value).__name__}."
                )
            if name in entries:
                raise ConfigurationError(
                    f"{kind} '{name}' is declared more than once."
                )
            entries[name] = value
        return cls(MappingProxyType(entries))

    def get(self, name: str) -> Optional[Callable[..., Any]]:
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self.entries))


@dataclass(frozen=True)
class RequiredFormat:
    """A project's requirement on a loaded format."""

    name: str
    version_range: str
    languages: tuple[str, ...]


@dataclass(frozen=True)
class Format:
    """A versioned presentation package."""

    name: str
    version: str
    requires: str
    src: Path
    export_profiles: Mapping[str, Mapping[str, Any]]
    hooks: HookTable = field(default_factory=HookTable)
    renderers: HookTable = field(default_factory=HookTable)
    json_renderers: Mapping[str, Callable[..., Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    blueprints: Mapping[str, Callable[..., Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    author: Optional[str] = None
    description: Optional[str] = None
    module_path: Optional[Path] = None

    def supports_export(self, kind: str) -> bool:
        return kind in self.export_profiles

    def export_options(self, kind: str) -> dict[str, Any]:
        return dict(self.export_profiles.get(kind) or {})


@dataclass(frozen=True)
class Project:
    """A versioned content set and the formats it can be built with."""

    name: str
    version: str
    src: Path
    formats: tuple[RequiredFormat, ...]
    hooks: HookTable = field(default_factory=HookTable)
    author: Optional[str] = None
    description: Optional[str] = None
    module_path: Optional[Path] = None

    def required_format(self, name: str) -> Optional[RequiredFormat]:
        for required in self.formats:
            if required.name == name:
                return required
        return None

    def format_names(self) -> tuple[str, ...]:
        return tuple(required.name for required in self.formats)


@dataclass(frozen=True)
class ResourceModel:
    """Every format and project loaded for the current run."""

    formats: tuple[Format, ...] = ()
    projects: tuple[Project, ...] = ()

    def format_named(self, name: str) -> Optional[Format]:
        for fmt in self.formats:
            if fmt.name == name:
                return fmt
        return None

    def project_named(self, name: str) -> Optional[Project]:
        for project in self.projects:
            if project.name == name:
                return project
        return None
