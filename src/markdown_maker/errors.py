"""Exception hierarchy shared across markdown_maker modules."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence

__all__ = [
    "MakerError",
    "ConfigurationError",
    "ResourceLoadError",
    "MarkdownSyntaxError",
    "BuildError",
    "AggregateBuildError",
    "flatten_failures",
]


class MakerError(RuntimeError):
    """Base class for every error raised by markdown_maker."""


class ConfigurationError(MakerError):
    """Raised when a format or project descriptor is invalid."""

    def __init__(self, reason: str, *, source: Optional[Path] = None) -> None:
        self.reason = reason
        self.source = source
        if source is not None:
            message = f"[Loading {source}] {reason}"
        else:
            message = reason
        super().__init__(message)


class ResourceLoadError(MakerError):
    """Every descriptor that failed to load during one pass."""

    def __init__(self, errors: Sequence[ConfigurationError]) -> None:
        self.errors = tuple(errors)
        lines = [f"{len(self.errors)} resource(s) failed to load:"]
        lines.extend(f"  - {error}" for error in self.errors)
        super().__init__("\n".join(lines))


class MarkdownSyntaxError(MakerError):
    """Raised when a custom block cannot be tokenized."""

    def __init__(self, block_type: str, line: int, message: str) -> None:
        self.block_type = block_type
        self.line = line
        super().__init__(f"{message} (block '{block_type}', line {line + 1})")


class BuildError(MakerError):
    """A single failed document or task, prefixed with its context."""

    def __init__(self, context: str, cause: BaseException) -> None:
        self.context = context
        self.cause = cause
        super().__init__(f"[{context}] {cause}")


class AggregateBuildError(MakerError):
    """All failures collected from a fan-out, in completion order."""

    def __init__(self, failures: Sequence[BaseException]) -> None:
        self.failures = tuple(flatten_failures(failures))
        super().__init__(f"{len(self.failures)} failure(s)")


def flatten_failures(failures: Iterable[BaseException]) -> list[BaseException]:
    """Expand nested :class:`AggregateBuildError` instances into leaves."""

    flat: list[BaseException] = []
    for failure in failures:
        if isinstance(failure, AggregateBuildError):
            flat.extend(failure.failures)
        else:
            flat.append(failure)
    return flat
