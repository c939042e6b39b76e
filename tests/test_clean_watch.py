from __future__ import annotations

import asyncio

from fixtures import make_format, make_project
from markdown_maker import clean, watch
from markdown_maker.build.orchestrator import BuildOutcome
from markdown_maker.jobs import (
    OutputRoots,
    Selection,
    create_build_jobs,
    create_clean_jobs,
)
from markdown_maker.resources.models import ResourceModel
from markdown_maker.translation import TranslationCache


def _model(workspace):
    book = make_format(workspace.root / "format", "book")
    slides = make_format(workspace.root / "slides", "slides")
    project = make_project(workspace.root / "project", [book, slides])
    return ResourceModel(formats=(book, slides), projects=(project,))


def _roots(workspace):
    return OutputRoots(
        build=workspace.root / "build", export=workspace.root / "export"
    )


def test_clean_removes_selected_outputs(workspace):
    workspace.write("build/guide/book/html/a.html", "a")
    workspace.write("export/guide/book/pdfs/a.pdf", "a")
    workspace.write("build/guide/slides/html/b.html", "b")
    plan = create_clean_jobs(
        _model(workspace), Selection(formats=["book"]), _roots(workspace)
    )

    removed = clean.run_clean(plan.jobs)

    root = workspace.root
    assert removed == (
        root / "build" / "guide" / "book",
        root / "export" / "guide" / "book",
    )
    assert not (root / "build" / "guide" / "book").exists()
    assert (root / "build" / "guide" / "slides" / "html" / "b.html").exists()


def test_clean_targets_dedupe(workspace):
    plan = create_clean_jobs(
        _model(workspace), Selection(), _roots(workspace)
    )
    jobs = list(plan.jobs) + list(plan.jobs)

    assert len(clean.clean_targets(jobs)) == 4
    assert clean.run_clean(jobs) == ()


def test_watched_roots_follow_task(workspace):
    plan = create_build_jobs(
        _model(workspace),
        Selection(formats=["book"], tasks=["html", "fonts"]),
        _roots(workspace),
    )
    html_job, fonts_job = plan.jobs

    html_roots = watch.watched_roots(html_job)
    assert workspace.root / "project" / "fragments" in html_roots
    assert workspace.root / "format" / "translations" in html_roots
    assert len(html_roots) == 9
    assert watch.watched_roots(fonts_job) == (
        workspace.root / "project" / "formats" / "book" / "fonts",
        workspace.root / "project" / "fonts",
        workspace.root / "format" / "fonts",
    )


def test_watcher_rebuilds_changed_jobs_and_clears_translations(workspace):
    workspace.write("project/fragments/intro.md", "# One\n")
    workspace.write("project/scripts/app.js", "x")
    plan = create_build_jobs(
        _model(workspace),
        Selection(formats=["book"], tasks=["html", "scripts"]),
        _roots(workspace),
    )
    rebuilt = []

    async def rebuild(jobs, *, translations):
        rebuilt.append([job.label for job in jobs])
        return BuildOutcome(job_count=len(jobs))

    translations = TranslationCache()
    html_job = plan.jobs[0]
    translations.messages(html_job.project, html_job.format, "en")
    watcher = watch.Watcher(
        plan.jobs, translations=translations, interval=0, rebuild=rebuild
    )

    assert asyncio.run(watcher.poll_once()) is None

    fragment = workspace.root / "project" / "fragments" / "intro.md"
    fragment.write_text("# Two, longer\n", encoding="utf-8")

    outcome = asyncio.run(watcher.poll_once())

    assert outcome.job_count == 1
    assert rebuilt == [["guide/book/html/en"]]
    assert len(translations) == 0
    assert asyncio.run(watcher.poll_once()) is None


def test_watcher_run_stops_after_max_polls(workspace):
    plan = create_build_jobs(
        _model(workspace),
        Selection(formats=["book"], tasks=["scripts"]),
        _roots(workspace),
    )
    calls = []

    async def rebuild(jobs, *, translations):
        calls.append(jobs)
        return BuildOutcome(job_count=len(jobs))

    watcher = watch.Watcher(plan.jobs, interval=0, rebuild=rebuild)

    async def run():
        workspace.write("project/scripts/new.js", "x")
        await watcher.run(max_polls=2)

    asyncio.run(run())

    assert len(calls) == 1


def test_watcher_run_honours_stop_event(workspace):
    plan = create_build_jobs(
        _model(workspace),
        Selection(formats=["book"], tasks=["scripts"]),
        _roots(workspace),
    )
    watcher = watch.Watcher(plan.jobs, interval=0)

    async def run():
        stop = asyncio.Event()
        stop.set()
        await watcher.run(stop=stop)

    asyncio.run(run())
