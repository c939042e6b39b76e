"""Load format and project descriptor modules into a :class:`ResourceModel`.

Each descriptor is loaded independently. Failures are collected and raised
together as one :class:`~markdown_maker.errors.ResourceLoadError` once every
entry has been attempted, so a single run reports every broken descriptor.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
from pathlib import Path
from types import MappingProxyType, ModuleType
from typing import Any, Callable, Mapping, Optional, Sequence

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from markdown_maker.errors import ConfigurationError, ResourceLoadError

from .models import (
    BLOCK_RENDERER_NAMES,
    EXPORT_KINDS,
    HOOK_ALIASES,
    HOOK_NAMES,
    Format,
    HookTable,
    Project,
    RequiredFormat,
    ResourceModel,
)

__all__ = [
    "load_resources",
    "load_format",
    "load_project",
    "version_satisfies",
]

FORMAT_ATTRIBUTE = "FORMAT"
PROJECT_ATTRIBUTE = "PROJECT"

logger = logging.getLogger("markdown_maker.resources")


def load_resources(
    format_paths: Sequence[Path],
    project_paths: Sequence[Path],
    *,
    host_version: str,
) -> ResourceModel:
    """Load every descriptor, raising one aggregate error on any failure."""

    errors: list[ConfigurationError] = []
    formats: list[Format] = []
    for path in format_paths:
        try:
            fmt = load_format(path, host_version=host_version)
        except ConfigurationError as exc:
            errors.append(exc)
            continue
        if any(existing.name == fmt.name for existing in formats):
            errors.append(
                ConfigurationError(
                    f'Format "{fmt.name}" is already loaded.', source=path
                )
            )
            continue
        formats.append(fmt)

    projects: list[Project] = []
    for path in project_paths:
        try:
            project = load_project(path, formats=formats)
        except ConfigurationError as exc:
            errors.append(exc)
            continue
        if any(existing.name == project.name for existing in projects):
            errors.append(
                ConfigurationError(
                    f'Project "{project.name}" is already loaded.', source=path
                )
            )
            continue
        projects.append(project)

    if errors:
        raise ResourceLoadError(errors)

    logger.debug(
        "Loaded resources",
        extra={
            "formats": [f"{fmt.name} v{fmt.version}" for fmt in formats],
            "projects": [f"{p.name} v{p.version}" for p in projects],
        },
    )
    return ResourceModel(formats=tuple(formats), projects=tuple(projects))


def load_format(path: Path, *, host_version: str) -> Format:
    """Load and validate a single format descriptor module."""

    path = Path(path)
    try:
        data = _descriptor_from_module(path, FORMAT_ATTRIBUTE)
        return _build_format(data, path, host_version)
    except ConfigurationError as exc:
        raise _with_source(exc, path) from exc


def load_project(path: Path, *, formats: Sequence[Format]) -> Project:
    """Load and validate a single project descriptor module."""

    path = Path(path)
    try:
        data = _descriptor_from_module(path, PROJECT_ATTRIBUTE)
        return _build_project(data, path, formats)
    except ConfigurationError as exc:
        raise _with_source(exc, path) from exc


def version_satisfies(version: str, version_range: str) -> bool:
    """Return True when ``version`` lies inside ``version_range``."""

    try:
        specifier = SpecifierSet(version_range, prereleases=True)
    except InvalidSpecifier as exc:
        raise ConfigurationError(
            f"Invalid version range '{version_range}'."
        ) from exc
    return _parse_version(version) in specifier


def _with_source(exc: ConfigurationError, path: Path) -> ConfigurationError:
    if exc.source is not None:
        return exc
    return ConfigurationError(exc.reason, source=path)


def _descriptor_from_module(path: Path, attribute: str) -> Mapping[str, Any]:
    module = _import_descriptor(path)
    data = getattr(module, attribute, None)
    if data is None:
        raise ConfigurationError(
            f"Descriptor module does not define '{attribute}'."
        )
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            f"'{attribute}' must be a mapping, got {type(data).__name__}."
        )
    return data


def _import_descriptor(path: Path) -> ModuleType:
    resolved = path.expanduser().resolve()
    if not resolved.is_file():
        raise ConfigurationError(f"Descriptor module not found: {resolved}")
    digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:10]
    module_name = f"markdown_maker_descriptor_{resolved.stem}_{digest}"
    spec = importlib.util.spec_from_file_location(module_name, resolved)
    if spec is None or spec.loader is None:
        raise ConfigurationError(f"Cannot import descriptor module {resolved}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ConfigurationError(
            f"Descriptor module raised {type(exc).__name__}: {exc}"
        ) from exc
    return module


def _build_format(
    data: Mapping[str, Any], path: Path, host_version: str
) -> Format:
    name = _require_string(data, "name", "Format is missing a name.")
    version = _require_string(data, "version", "Format is missing a version.")
    _parse_version(version)
    requires = _require_string(
        data,
        "requires",
        "Format is missing a MarkdownMaker compatibility range.",
    )
    if not version_satisfies(host_version, requires):
        raise ConfigurationError(
            f"Format isn't compatible with MarkdownMaker v{host_version} "
            f"(requires {requires})."
        )
    export_profiles = _export_profiles(data.get("export"))

    return Format(
        name=name,
        version=version,
        requires=requires,
        src=_source_root(data, path),
        export_profiles=export_profiles,
        hooks=HookTable.build(
            data.get("hooks"),
            allowed=HOOK_NAMES,
            kind="hook",
            aliases=HOOK_ALIASES,
        ),
        renderers=HookTable.build(
            data.get("markdown"),
            allowed=BLOCK_RENDERER_NAMES,
            kind="markdown renderer",
        ),
        json_renderers=_callable_table(data.get("json"), "json renderer"),
        blueprints=_callable_table(data.get("blueprints"), "blueprint"),
        author=data.get("author"),
        description=data.get("description"),
        module_path=path,
    )


def _build_project(
    data: Mapping[str, Any], path: Path, formats: Sequence[Format]
) -> Project:
    name = _require_string(data, "name", "Project is missing a name.")
    version = _require_string(data, "version", "Project is missing a version.")
    raw_formats = data.get("formats")
    if not isinstance(raw_formats, (list, tuple)):
        raise ConfigurationError(
            "Project is missing a list of MarkdownMaker formats."
        )
    if not raw_formats:
        raise ConfigurationError("Project has zero MarkdownMaker formats.")

    loaded = {fmt.name: fmt for fmt in formats}
    required = tuple(
        _required_format(index, entry, loaded)
        for index, entry in enumerate(raw_formats)
    )
    return Project(
        name=name,
        version=version,
        src=_source_root(data, path),
        formats=required,
        hooks=HookTable.build(
            data.get("hooks"),
            allowed=HOOK_NAMES,
            kind="hook",
            aliases=HOOK_ALIASES,
        ),
        author=data.get("author"),
        description=data.get("description"),
        module_path=path,
    )


def _required_format(
    index: int, entry: Any, loaded: Mapping[str, Format]
) -> RequiredFormat:
    prefix = f"Project format[{index}]"
    if not isinstance(entry, Mapping):
        raise ConfigurationError(f"{prefix} must be a mapping.")
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"{prefix} is missing a name.")
    version_range = entry.get("version")
    if not isinstance(version_range, str) or not version_range:
        raise ConfigurationError(f"{prefix} is missing a version.")
    languages = entry.get("languages")
    if not isinstance(languages, (list, tuple)) or not all(
        isinstance(language, str) for language in languages
    ):
        raise ConfigurationError(f"{prefix} is missing a list of languages.")

    fmt = loaded.get(name)
    if fmt is None:
        raise ConfigurationError(
            f'{prefix} "{name}" hasn\'t been loaded into MarkdownMaker.'
        )
    if not version_satisfies(fmt.version, version_range):
        raise ConfigurationError(
            f'{prefix} "{name}" isn\'t compatible with loaded format '
            f"v{fmt.version} (requires {version_range})."
        )
    return RequiredFormat(
        name=name,
        version_range=version_range,
        languages=tuple(dict.fromkeys(languages)),
    )


def _require_string(data: Mapping[str, Any], key: str, message: str) -> str:
    value = data.get(key)
    if value is None:
        raise ConfigurationError(message)
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"'{key}' must be a non-empty string.")
    return value.strip()


def _parse_version(value: str) -> Version:
    try:
        return Version(value)
    except InvalidVersion as exc:
        raise ConfigurationError(f"Invalid version '{value}'.") from exc


def _export_profiles(raw: Any) -> Mapping[str, Mapping[str, Any]]:
    if raw is None:
        raise ConfigurationError(
            "Format is missing a list of MarkdownMaker export options."
        )
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Format 'export' must be a mapping.")
    profiles: dict[str, Mapping[str, Any]] = {}
    for kind, options in raw.items():
        if kind not in EXPORT_KINDS:
            raise ConfigurationError(
                f"Unknown export kind '{kind}'. Expected one of: "
                f"{', '.join(EXPORT_KINDS)}."
            )
        # ``None`` leaves the export kind unsupported.
        if options is None:
            continue
        if not isinstance(options, Mapping):
            raise ConfigurationError(
                f"Export options for '{kind}' must be a mapping."
            )
        profiles[kind] = MappingProxyType(dict(options))
    return MappingProxyType(profiles)


def _callable_table(
    raw: Any, kind: str
) -> Mapping[str, Callable[..., Any]]:
    if raw is None:
        return MappingProxyType({})
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{kind} table must be a mapping.")
    table: dict[str, Callable[..., Any]] = {}
    for key, value in raw.items():
        if not callable(value):
            raise ConfigurationError(f"{kind} '{key}' must be callable.")
        table[str(key)] = value
    return MappingProxyType(table)


def _source_root(data: Mapping[str, Any], path: Path) -> Path:
    base = path.expanduser().resolve().parent
    raw: Optional[str] = data.get("src")
    if not raw:
        return base
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate.resolve()
