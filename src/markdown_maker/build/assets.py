"""Default asset tasks: copy files from every tier into the build folder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from markdown_maker.core.concurrency import settle
from markdown_maker.core.files import copy_file_async
from markdown_maker.core.logging import format_task
from markdown_maker.errors import AggregateBuildError, BuildError
from markdown_maker.jobs import Job
from markdown_maker.resolver import collect_sources

__all__ = ["ASSET_PATTERNS", "deploy_assets"]

logger = logging.getLogger("markdown_maker.build")

# Stylesheets are copied as plain CSS; a format compiles SCSS through its
# buildStylesheets hook.
ASSET_PATTERNS: Mapping[str, tuple[str, ...]] = {
    "fonts": ("*",),
    "images": ("*.jpg", "*.jpeg", "*.gif", "*.png", "*.svg"),
    "scripts": ("*.js",),
    "stylesheets": ("*.css",),
    "vendors": ("*",),
}


async def deploy_assets(job: Job, task: str) -> int:
    """Copy the ``task`` folder of every tier to ``<build>/<task>``."""

    sources = collect_sources(
        job.project,
        job.format,
        task,
        job.files or ASSET_PATTERNS[task],
    )
    target_root = job.output.build / task
    failures = await settle(
        _copy(job, task, rel, path, target_root / rel)
        for rel, path in sources.items()
    )
    if failures:
        raise AggregateBuildError(failures)
    return len(sources)


async def _copy(
    job: Job, task: str, rel: str, source: Path, target: Path
) -> Path:
    if job.debug:
        logger.debug(
            format_task(job.project.name, job.format.name, rel, "Using")
        )
    try:
        return await copy_file_async(source, target)
    except OSError as exc:
        raise BuildError(
            f"Deploying {job.project.name}/{task}/{rel}", exc
        ) from exc
