"""Shared testing fixtures for the markdown_maker test suite."""

from .export_backends import FakePlaywright, FakeWeasyHTML  # noqa: F401
from .models import make_format, make_project  # noqa: F401
from .workspace import (  # noqa: F401
    WorkspaceBuilder,
    build_tree,
    format_source,
    project_source,
)

__all__ = [
    "FakePlaywright",
    "FakeWeasyHTML",
    "make_format",
    "make_project",
    "WorkspaceBuilder",
    "build_tree",
    "format_source",
    "project_source",
]
