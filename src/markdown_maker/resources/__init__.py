"""Format/project descriptors and their loader."""

from __future__ import annotations

from .loader import (
    load_format,
    load_project,
    load_resources,
    version_satisfies,
)
from .models import (
    BLOCK_RENDERER_NAMES,
    BLOCK_TYPES,
    BUILD_HOOKS,
    DOM_HOOKS,
    EXPORT_HOOKS,
    EXPORT_KINDS,
    HOOK_ALIASES,
    HOOK_NAMES,
    RENDER_HOOKS,
    Format,
    HookTable,
    Project,
    RequiredFormat,
    ResourceModel,
)

__all__ = [
    "load_format",
    "load_project",
    "load_resources",
    "version_satisfies",
    "BLOCK_RENDERER_NAMES",
    "BLOCK_TYPES",
    "BUILD_HOOKS",
    "DOM_HOOKS",
    "EXPORT_HOOKS",
    "EXPORT_KINDS",
    "HOOK_ALIASES",
    "HOOK_NAMES",
    "RENDER_HOOKS",
    "Format",
    "HookTable",
    "Project",
    "RequiredFormat",
    "ResourceModel",
]
