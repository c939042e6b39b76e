"""Delete build and export folders for a selection of jobs."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Sequence

from .jobs import Job

__all__ = ["clean_targets", "run_clean"]

logger = logging.getLogger("markdown_maker.clean")


def clean_targets(jobs: Sequence[Job]) -> tuple[Path, ...]:
    """Build and export folders of ``jobs``, de-duplicated, in job order."""

    targets: dict[Path, None] = {}
    for job in jobs:
        targets.setdefault(job.output.build, None)
        targets.setdefault(job.output.export, None)
    return tuple(targets)


def run_clean(jobs: Sequence[Job]) -> tuple[Path, ...]:
    """Remove every existing target folder; return the ones deleted."""

    targets = clean_targets(jobs)
    if targets:
        logger.info("Deleting [%s]", ", ".join(str(path) for path in targets))
    removed: list[Path] = []
    for target in targets:
        if not target.exists():
            continue
        shutil.rmtree(target)
        removed.append(target)
        logger.debug("Deleted %s", target)
    return tuple(removed)
