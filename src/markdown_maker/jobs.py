"""Expand a selection of projects, formats, and tasks into jobs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence

from .core.files import unique
from .resources.models import EXPORT_KINDS, Format, Project, ResourceModel

__all__ = [
    "BUILD_TASKS",
    "LANGUAGE_TASKS",
    "OutputRoots",
    "JobOutput",
    "Job",
    "Selection",
    "JobPlan",
    "create_build_jobs",
    "create_clean_jobs",
    "create_export_jobs",
    "parse_page_range",
]

logger = logging.getLogger("markdown_maker.jobs")

BUILD_TASKS: tuple[str, ...] = (
    "fonts",
    "html",
    "images",
    "scripts",
    "stylesheets",
    "vendors",
)
LANGUAGE_TASKS: frozenset[str] = frozenset({"html"})

_PAGE_SEGMENT_RE = re.compile(r"^(\d*)-?(\d*)$")


@dataclass(frozen=True)
class OutputRoots:
    """Top-level build and export directories from the configuration."""

    build: Path
    export: Path


@dataclass(frozen=True)
class JobOutput:
    """Per-job output folders: ``<root>/<project>/<format>``."""

    build: Path
    export: Path

    @classmethod
    def for_pair(
        cls, roots: OutputRoots, project: Project, fmt: Format
    ) -> "JobOutput":
        return cls(
            build=roots.build / project.name / fmt.name,
            export=roots.export / project.name / fmt.name,
        )


@dataclass(frozen=True)
class Job:
    """One unit of build, clean, or export work."""

    project: Project
    format: Format
    output: JobOutput
    task: Optional[str] = None
    language: Optional[str] = None
    files: Optional[tuple[str, ...]] = None
    fragments: bool = True
    collections: bool = True
    export_kind: Optional[str] = None
    pages: Optional[tuple[int, ...]] = None
    debug: bool = False
    discrete: bool = False

    @property
    def label(self) -> str:
        parts = [self.project.name, self.format.name]
        if self.task:
            parts.append(self.task)
        if self.language:
            parts.append(self.language)
        return "/".join(parts)


@dataclass(frozen=True)
class Selection:
    """User filters; ``None`` means everything available."""

    projects: Optional[Sequence[str]] = None
    formats: Optional[Sequence[str]] = None
    tasks: Optional[Sequence[str]] = None
    languages: Optional[Sequence[str]] = None
    files: Optional[Sequence[str]] = None
    fragments_only: bool = False
    collections_only: bool = False
    export_kind: Optional[str] = None
    pages: Optional[str] = None
    debug: bool = False
    discrete: bool = False


@dataclass(frozen=True)
class JobPlan:
    """Jobs to run plus the non-fatal warnings raised while planning."""

    jobs: tuple[Job, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.jobs)

    def __iter__(self) -> Iterator[Job]:
        return iter(self.jobs)


Expander = Callable[[Project, Format, list[str]], list[Job]]


def create_build_jobs(
    model: ResourceModel, selection: Selection, roots: OutputRoots
) -> JobPlan:
    """One job per language for html, one job per pair for other tasks."""

    requested = unique(selection.tasks) or BUILD_TASKS
    task_warnings = [
        f'Unknown build task "{task}": skipping...'
        for task in requested
        if task not in BUILD_TASKS
    ]
    tasks = [task for task in requested if task in BUILD_TASKS]
    fragments, collections = _document_kinds(selection)

    def expand(
        project: Project, fmt: Format, warnings: list[str]
    ) -> list[Job]:
        base = _base_job(project, fmt, selection, roots)
        jobs: list[Job] = []
        for task in tasks:
            if task not in LANGUAGE_TASKS:
                jobs.append(replace(base, task=task))
                continue
            languages = unique(selection.languages)
            if languages is None:
                required = project.required_format(fmt.name)
                languages = required.languages if required else ()
            if not languages:
                warnings.append(
                    "No valid output languages specified for "
                    f'"{project.name}/{fmt.name}": skipping...'
                )
                continue
            for language in languages:
                jobs.append(
                    replace(
                        base,
                        task=task,
                        language=language,
                        fragments=fragments,
                        collections=collections,
                    )
                )
        return jobs

    return _create_jobs(model, selection, expand, task_warnings=task_warnings)


def create_clean_jobs(
    model: ResourceModel, selection: Selection, roots: OutputRoots
) -> JobPlan:
    """One job per selected project/format pair."""

    def expand(
        project: Project, fmt: Format, warnings: list[str]
    ) -> list[Job]:
        return [_base_job(project, fmt, selection, roots)]

    return _create_jobs(model, selection, expand)


def create_export_jobs(
    model: ResourceModel, selection: Selection, roots: OutputRoots
) -> JobPlan:
    """One job per pair whose format declares the requested export kind."""

    kind = selection.export_kind
    if kind not in EXPORT_KINDS:
        warning = (
            f'"{kind}" is not a valid export option: expected one of '
            f"[{', '.join(EXPORT_KINDS)}]"
        )
        logger.warning(warning)
        return JobPlan(warnings=(warning,))
    pages = parse_page_range(selection.pages) if selection.pages else None

    def expand(
        project: Project, fmt: Format, warnings: list[str]
    ) -> list[Job]:
        if not fmt.supports_export(kind):
            warnings.append(
                f'"{project.name}/{fmt.name}" doesn\'t support export option '
                f'"{kind}": skipping...'
            )
            return []
        base = _base_job(project, fmt, selection, roots)
        return [replace(base, export_kind=kind, pages=pages)]

    return _create_jobs(model, selection, expand)


def parse_page_range(text: str) -> tuple[int, ...]:
    """Parse ``"1-3,5"`` style ranges into sorted unique page numbers."""

    pages: set[int] = set()
    for segment in text.split(","):
        segment = segment.strip()
        if not segment:
            continue
        match = _PAGE_SEGMENT_RE.match(segment)
        if match is None or not (match.group(1) or match.group(2)):
            raise ValueError(f"Invalid page range segment '{segment}'.")
        start, end = match.group(1), match.group(2)
        if start and end:
            first, last = int(start), int(end)
            if last < first:
                raise ValueError(f"Invalid page range segment '{segment}'.")
            pages.update(range(first, last + 1))
        else:
            pages.add(int(start or end))
    if any(page < 1 for page in pages):
        raise ValueError("Page numbers start at 1.")
    return tuple(sorted(pages))


def _create_jobs(
    model: ResourceModel,
    selection: Selection,
    expand: Expander,
    *,
    task_warnings: Sequence[str] = (),
) -> JobPlan:
    jobs: list[Job] = []
    warnings: list[str] = list(task_warnings)
    project_names = unique(selection.projects) or tuple(
        project.name for project in model.projects
    )
    for project_name in project_names:
        project = model.project_named(project_name)
        if project is None:
            warnings.append(f'Unknown project "{project_name}": skipping...')
            continue
        format_names = unique(selection.formats) or project.format_names()
        for format_name in format_names:
            fmt = model.format_named(format_name)
            if fmt is None:
                warnings.append(f'Unknown format "{format_name}": skipping...')
                continue
            if project.required_format(fmt.name) is None:
                warnings.append(
                    f'Project "{project.name}" doesn\'t support format '
                    f'"{fmt.name}": skipping...'
                )
                continue
            jobs.extend(expand(project, fmt, warnings))
    for warning in warnings:
        logger.warning(warning)
    return JobPlan(jobs=tuple(jobs), warnings=tuple(warnings))


def _base_job(
    project: Project, fmt: Format, selection: Selection, roots: OutputRoots
) -> Job:
    return Job(
        project=project,
        format=fmt,
        output=JobOutput.for_pair(roots, project, fmt),
        files=unique(selection.files),
        debug=selection.debug,
        discrete=selection.discrete,
    )


def _document_kinds(selection: Selection) -> tuple[bool, bool]:
    if selection.fragments_only and not selection.collections_only:
        return True, False
    if selection.collections_only and not selection.fragments_only:
        return False, True
    return True, True
