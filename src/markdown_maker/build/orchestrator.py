"""Run build jobs: task groups and jobs concurrently, failures collected."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping, Optional, Sequence

from markdown_maker.core.concurrency import call_hook, settle
from markdown_maker.core.logging import format_task
from markdown_maker.errors import AggregateBuildError, BuildError, MakerError
from markdown_maker.jobs import BUILD_TASKS, Job
from markdown_maker.resolver import resolve_hook
from markdown_maker.translation import TranslationCache

from .assets import deploy_assets
from .html import build_html

__all__ = [
    "TASK_HOOKS",
    "BuildOutcome",
    "run_build",
    "run_job",
]

logger = logging.getLogger("markdown_maker.build")

TASK_HOOKS: Mapping[str, str] = {
    "fonts": "buildFonts",
    "html": "buildHtml",
    "images": "buildImages",
    "scripts": "buildScripts",
    "stylesheets": "buildStylesheets",
    "vendors": "buildVendors",
}

_TASK_LABELS: Mapping[str, tuple[str, str]] = {
    "fonts": ("Deploying fonts...", "Deployed fonts"),
    "html": ("Building HTML...", "Built HTML"),
    "images": ("Deploying images...", "Deployed images"),
    "scripts": ("Deploying scripts...", "Deployed scripts"),
    "stylesheets": ("Building stylesheets...", "Deployed stylesheets"),
    "vendors": ("Deploying vendors...", "Deployed vendors"),
}


@dataclass(frozen=True)
class BuildOutcome:
    """Aggregated result of a build or export run."""

    job_count: int
    failures: tuple[BaseException, ...] = ()

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0


async def run_build(
    jobs: Sequence[Job],
    *,
    translations: Optional[TranslationCache] = None,
) -> BuildOutcome:
    """Run every job to completion and collect each failure.

    Task groups run concurrently and jobs inside a group run concurrently.
    A failing job never cancels its siblings.
    """

    if translations is None:
        translations = TranslationCache()
    groups = [
        [job for job in jobs if job.task == task] for task in BUILD_TASKS
    ]
    # run_job reports these as failures instead of dropping them.
    groups.append([job for job in jobs if job.task not in BUILD_TASKS])
    failures = await settle(
        _run_group(group, translations) for group in groups if group
    )
    for failure in failures:
        logger.error(str(failure))
    return BuildOutcome(job_count=len(jobs), failures=tuple(failures))


async def run_job(job: Job, translations: TranslationCache) -> None:
    """Run one job through its override hook or the default task."""

    task = job.task or ""
    if task not in TASK_HOOKS:
        raise BuildError(
            job.label, ValueError(f"Unknown build task '{task}'")
        )
    starting, finished = _TASK_LABELS[task]
    logger.debug(
        format_task(job.project.name, job.format.name, None, starting)
    )

    hook = resolve_hook(TASK_HOOKS[task], job.project, job.format)
    pending: Awaitable[Any]
    if hook is not None:
        pending = call_hook(hook, job)
    elif task == "html":
        pending = build_html(job, translations)
    else:
        pending = deploy_assets(job, task)

    try:
        await pending
    except MakerError:
        raise
    except Exception as exc:
        raise BuildError(f"Building {job.label}", exc) from exc
    logger.info(
        format_task(job.project.name, job.format.name, None, finished)
    )


async def _run_group(
    jobs: Sequence[Job], translations: TranslationCache
) -> None:
    failures = await settle(run_job(job, translations) for job in jobs)
    if failures:
        raise AggregateBuildError(failures)
