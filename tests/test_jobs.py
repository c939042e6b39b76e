from __future__ import annotations

from pathlib import Path

import pytest

from fixtures import make_format, make_project
from markdown_maker import jobs as job_module
from markdown_maker.resources.models import ResourceModel


@pytest.fixture(name="roots")
def _roots_fixture(tmp_path: Path) -> job_module.OutputRoots:
    return job_module.OutputRoots(
        build=tmp_path / "build", export=tmp_path / "export"
    )


def _model(tmp_path: Path) -> ResourceModel:
    book = make_format(tmp_path / "book", "book", export={"pdf": {}})
    slides = make_format(
        tmp_path / "slides", "slides", export={"png": {"selector": ".page"}}
    )
    guide = make_project(
        tmp_path / "guide", [book, slides], "guide", languages=("en", "fr")
    )
    notes = make_project(tmp_path / "notes", [book], "notes")
    return ResourceModel(formats=(book, slides), projects=(guide, notes))


def test_build_jobs_expand_languages_for_html(tmp_path, roots):
    plan = job_module.create_build_jobs(
        _model(tmp_path), job_module.Selection(), roots
    )

    labels = [job.label for job in plan]
    # guide: 2 formats * (5 asset tasks + 2 languages); notes: 5 + 1
    assert len(plan) == 2 * (5 + 2) + (5 + 1)
    assert "guide/book/html/en" in labels
    assert "guide/slides/html/fr" in labels
    assert "notes/book/html/en" in labels
    assert "notes/book/fonts" in labels
    assert plan.warnings == ()


def test_build_jobs_respect_filters(tmp_path, roots):
    selection = job_module.Selection(
        projects=["guide"],
        formats=["book"],
        tasks=["html", "scripts"],
        languages=["fr", "fr"],
        files=["intro.md"],
    )

    plan = job_module.create_build_jobs(_model(tmp_path), selection, roots)

    assert [job.label for job in plan] == [
        "guide/book/html/fr",
        "guide/book/scripts",
    ]
    html_job = plan.jobs[0]
    assert html_job.files == ("intro.md",)
    assert html_job.output.build == roots.build / "guide" / "book"
    assert html_job.output.export == roots.export / "guide" / "book"


def test_build_jobs_fragments_only(tmp_path, roots):
    selection = job_module.Selection(tasks=["html"], fragments_only=True)

    plan = job_module.create_build_jobs(_model(tmp_path), selection, roots)

    assert plan.jobs
    assert all(job.fragments and not job.collections for job in plan)


def test_build_jobs_warn_for_unsupported_pair(tmp_path, roots, caplog):
    caplog.set_level("WARNING", logger="markdown_maker.jobs")
    selection = job_module.Selection(
        projects=["notes", "ghost"], formats=["slides", "book"], tasks=["html"]
    )

    plan = job_module.create_build_jobs(_model(tmp_path), selection, roots)

    assert [job.label for job in plan] == ["notes/book/html/en"]
    assert plan.warnings == (
        'Project "notes" doesn\'t support format "slides": skipping...',
        'Unknown project "ghost": skipping...',
    )
    assert "doesn't support format" in caplog.text


def test_build_jobs_warn_for_unknown_format_and_task(tmp_path, roots):
    selection = job_module.Selection(
        projects=["notes"], formats=["zine", "book"], tasks=["bundle"]
    )

    plan = job_module.create_build_jobs(_model(tmp_path), selection, roots)

    assert len(plan) == 0
    assert 'Unknown format "zine": skipping...' in plan.warnings
    assert 'Unknown build task "bundle": skipping...' in plan.warnings


def test_unknown_task_warns_once(tmp_path, roots, caplog):
    caplog.set_level("WARNING", logger="markdown_maker.jobs")
    selection = job_module.Selection(tasks=["bundle", "fonts"])

    plan = job_module.create_build_jobs(_model(tmp_path), selection, roots)

    assert [job.label for job in plan] == [
        "guide/book/fonts",
        "guide/slides/fonts",
        "notes/book/fonts",
    ]
    assert plan.warnings == ('Unknown build task "bundle": skipping...',)
    assert caplog.text.count("Unknown build task") == 1


def test_clean_jobs_one_per_pair(tmp_path, roots):
    plan = job_module.create_clean_jobs(
        _model(tmp_path), job_module.Selection(), roots
    )

    assert [job.label for job in plan] == [
        "guide/book",
        "guide/slides",
        "notes/book",
    ]


def test_export_jobs_skip_formats_without_kind(tmp_path, roots):
    selection = job_module.Selection(export_kind="png", pages="1-2")

    plan = job_module.create_export_jobs(_model(tmp_path), selection, roots)

    assert [job.label for job in plan] == ["guide/slides"]
    assert plan.jobs[0].export_kind == "png"
    assert plan.jobs[0].pages == (1, 2)
    assert len(plan.warnings) == 2
    assert all("export option \"png\"" in text for text in plan.warnings)


def test_export_jobs_invalid_kind_is_a_warning(tmp_path, roots):
    selection = job_module.Selection(export_kind="gif")

    plan = job_module.create_export_jobs(_model(tmp_path), selection, roots)

    assert len(plan) == 0
    assert plan.warnings[0].startswith('"gif" is not a valid export option')


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1-3,5,8-9", (1, 2, 3, 5, 8, 9)),
        ("5,1-3", (1, 2, 3, 5)),
        ("2,2,1-2", (1, 2)),
        ("5-", (5,)),
        ("-5", (5,)),
        (" 4 , 6 ", (4, 6)),
    ],
)
def test_parse_page_range(text, expected):
    assert job_module.parse_page_range(text) == expected


@pytest.mark.parametrize("text", ["3-1", "a", "1-2-3", "0", "-"])
def test_parse_page_range_rejects_bad_segments(text):
    with pytest.raises(ValueError):
        job_module.parse_page_range(text)
