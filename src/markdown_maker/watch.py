"""Poll source folders and rebuild the affected jobs on change."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from .build.orchestrator import BuildOutcome, run_build
from .jobs import Job
from .resolver import candidate_roots
from .translation import TranslationCache

__all__ = [
    "WATCH_FOLDERS",
    "Snapshot",
    "Watcher",
    "snapshot",
    "watched_roots",
]

logger = logging.getLogger("markdown_maker.watch")

WATCH_FOLDERS: Mapping[str, tuple[str, ...]] = {
    "fonts": ("fonts",),
    "html": ("fragments", "collections", "translations"),
    "images": ("images",),
    "scripts": ("scripts",),
    "stylesheets": ("stylesheets",),
    "vendors": ("vendors",),
}

Snapshot = dict[Path, tuple[int, int]]
Rebuild = Callable[..., Awaitable[BuildOutcome]]


def watched_roots(job: Job) -> tuple[Path, ...]:
    """Every tier's source folder for the job's task."""

    folders = WATCH_FOLDERS.get(job.task or "", ())
    return tuple(
        root / folder
        for root in candidate_roots(job.project, job.format)
        for folder in folders
    )


def snapshot(roots: Sequence[Path]) -> Snapshot:
    """Map every file below ``roots`` to its ``(mtime_ns, size)``."""

    state: Snapshot = {}
    for root in roots:
        if not root.is_dir():
            continue
        for path in root.rglob("*"):
            if path.is_file():
                stat = path.stat()
                state[path] = (stat.st_mtime_ns, stat.st_size)
    return state


class Watcher:
    """Rebuild jobs whose watched folders changed since the last poll.

    The translation cache is cleared before every rebuild so edited
    translation files take effect.
    """

    def __init__(
        self,
        jobs: Sequence[Job],
        *,
        translations: Optional[TranslationCache] = None,
        interval: float = 1.0,
        rebuild: Rebuild = run_build,
    ) -> None:
        self.jobs = tuple(jobs)
        self.translations = (
            translations if translations is not None else TranslationCache()
        )
        self.interval = interval
        self._rebuild = rebuild
        self._roots = [watched_roots(job) for job in self.jobs]
        self._state = [snapshot(roots) for roots in self._roots]

    def changed_jobs(self) -> list[Job]:
        changed: list[Job] = []
        for index, job in enumerate(self.jobs):
            current = snapshot(self._roots[index])
            if current != self._state[index]:
                self._state[index] = current
                changed.append(job)
        return changed

    async def poll_once(self) -> Optional[BuildOutcome]:
        """Rebuild the changed jobs, if any, and return the outcome."""

        changed = self.changed_jobs()
        if not changed:
            return None
        logger.info(
            "Change detected: rebuilding [%s]",
            ", ".join(job.label for job in changed),
        )
        self.translations.clear()
        return await self._rebuild(changed, translations=self.translations)

    async def run(
        self,
        *,
        stop: Optional[asyncio.Event] = None,
        max_polls: Optional[int] = None,
    ) -> None:
        """Poll until ``stop`` is set or ``max_polls`` is reached."""

        tasks = sorted({job.task or "" for job in self.jobs})
        logger.info("Watching [%s] for changes", ", ".join(tasks))
        polls = 0
        while not (stop is not None and stop.is_set()):
            if max_polls is not None and polls >= max_polls:
                break
            await asyncio.sleep(self.interval)
            await self.poll_once()
            polls += 1
