"""Configuration loader for the ``maker.toml`` file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from .core import config as core_config
from .jobs import OutputRoots

__all__ = [
    "CONFIG_FILENAME",
    "CONFIG_ENV",
    "ENV_PREFIX",
    "MakerConfigError",
    "MakerConfig",
    "ConfigOverrides",
    "load_config",
]

CONFIG_FILENAME = "maker.toml"
CONFIG_ENV = "MAKER_CONFIG"
ENV_PREFIX = "MAKER_"

_DEFAULT_LOG_LEVEL = "INFO"


class MakerConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class MakerConfig:
    """Fully resolved configuration for one maker run."""

    build_dir: Path
    export_dir: Path
    format_paths: tuple[Path, ...]
    project_paths: tuple[Path, ...]
    log_level: str
    log_dir: Optional[Path]
    config_path: Optional[Path]

    @property
    def roots(self) -> OutputRoots:
        return OutputRoots(build=self.build_dir, export=self.export_dir)


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    build_dir: Optional[Path] = None
    export_dir: Optional[Path] = None
    log_level: Optional[str] = None
    log_dir: Optional[Path] = None


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> MakerConfig:
    """Load configuration applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = env if env is not None else os.environ
    base_dir = (cwd or Path.cwd()).resolve()

    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=base_dir / CONFIG_FILENAME,
        base_dir=base_dir,
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        loaded_path = requested_path
        try:
            parsed = core_config.load_toml(requested_path)
            core_config.merge_defaults(table, parsed)
        except core_config.TomlConfigError as exc:
            raise MakerConfigError(str(exc)) from exc
        config_dir = requested_path.parent
    else:
        if config_path is not None or _parse_env_string(env_map, "CONFIG"):
            raise MakerConfigError(f"Config file not found: {requested_path}")
        config_dir = base_dir

    build_dir = _resolve_dir(
        _pick_first(
            _override_path(overrides.build_dir, base_dir),
            _parse_env_path(env_map, "BUILD_DIR"),
            _coerce_optional_path(table["output"]["build"], "output.build"),
        ),
        config_dir,
        "output.build",
    )
    export_dir = _resolve_dir(
        _pick_first(
            _override_path(overrides.export_dir, base_dir),
            _parse_env_path(env_map, "EXPORT_DIR"),
            _coerce_optional_path(table["output"]["export"], "output.export"),
        ),
        config_dir,
        "output.export",
    )
    if build_dir == export_dir:
        raise MakerConfigError(
            "output.build and output.export must be different folders."
        )

    log_dir_value = _pick_first(
        _override_path(overrides.log_dir, base_dir),
        _parse_env_path(env_map, "LOG_DIR"),
        _coerce_optional_path(table["logging"]["dir"], "logging.dir"),
    )
    log_dir = (
        _absolute(log_dir_value, config_dir)
        if isinstance(log_dir_value, Path)
        else None
    )

    return MakerConfig(
        build_dir=build_dir,
        export_dir=export_dir,
        format_paths=_resolve_paths(
            table["resources"]["formats"], config_dir, "resources.formats"
        ),
        project_paths=_resolve_paths(
            table["resources"]["projects"], config_dir, "resources.projects"
        ),
        log_level=_resolve_log_level(
            overrides.log_level,
            _parse_env_string(env_map, "LOG_LEVEL"),
            table["logging"]["level"],
        ),
        log_dir=log_dir,
        config_path=loaded_path,
    )


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return {
        "output": {"build": "build", "export": "export"},
        "resources": {"formats": [], "projects": []},
        "logging": {"level": _DEFAULT_LOG_LEVEL, "dir": None},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
    base_dir: Path,
) -> Path:
    if config_path is not None:
        return _absolute(config_path, base_dir)
    env_candidate = _parse_env_string(env_map, "CONFIG")
    if env_candidate:
        return _absolute(Path(env_candidate), base_dir)
    return default_path


def _absolute(path: Path, base_dir: Path) -> Path:
    candidate = path.expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return candidate.resolve()


def _override_path(value: Optional[Path], base_dir: Path) -> Optional[Path]:
    # CLI paths are relative to the working directory, not the config file.
    if value is None:
        return None
    return _absolute(value, base_dir)


def _coerce_optional_path(value: object, key: str) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        return Path(raw)
    raise MakerConfigError(f"{key} must be a string when provided.")


def _resolve_dir(candidate: object, base_dir: Path, key: str) -> Path:
    if not isinstance(candidate, Path):
        raise MakerConfigError(f"{key} must be provided.")
    return _absolute(candidate, base_dir)


def _resolve_paths(
    value: object, base_dir: Path, key: str
) -> tuple[Path, ...]:
    if not isinstance(value, Sequence) or isinstance(value, str):
        raise MakerConfigError(f"{key} must be a list of paths.")
    paths: list[Path] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise MakerConfigError(f"{key} entries must be non-empty strings.")
        path = _absolute(Path(item.strip()), base_dir)
        if path not in paths:
            paths.append(path)
    return tuple(paths)


def _resolve_log_level(
    override: Optional[str],
    env_value: Optional[str],
    file_value: object,
) -> str:
    candidate = _pick_first(override, env_value, file_value)
    if not isinstance(candidate, str) or not candidate.strip():
        raise MakerConfigError("logging.level must be a non-empty string.")
    return candidate.strip().upper()


def _parse_env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    return Path(raw).expanduser()


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
