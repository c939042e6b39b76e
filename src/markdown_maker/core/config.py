"""TOML helpers backing the maker configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, MutableMapping

try:  # Python >= 3.11 ships ``tomllib`` in the stdlib.
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - interpreter guard
    raise RuntimeError("Python 3.11+ is required for tomllib support.") from exc

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML document cannot be read or merged."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Load a TOML document from ``path``.

    Errors are surfaced as :class:`TomlConfigError` so the settings layer can
    translate them into :class:`~markdown_maker.settings.MakerConfigError`.
    """

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse {path.name}: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Recursively merge ``override`` into ``base`` rejecting unknown keys."""

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        base_value = base[key]
        if isinstance(base_value, MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted,
                        type(value).__name__,
                    )
                )
            merge_defaults(base_value, value, path=f"{dotted}.")
            continue
        base[key] = value
