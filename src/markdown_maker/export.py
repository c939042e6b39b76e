"""Export built HTML as PDF, PNG, or JPG files, or bundle it as a ZIP."""

from __future__ import annotations

import asyncio
import logging
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from .build.orchestrator import BuildOutcome
from .core.concurrency import call_hook, settle
from .core.files import iter_files
from .core.logging import format_task
from .errors import AggregateBuildError, BuildError, MakerError
from .jobs import Job
from .resolver import resolve_hook

__all__ = [
    "EXPORT_FOLDERS",
    "EXPORT_HOOKS_FOR",
    "ZIP_FOLDERS",
    "run_export",
    "export_job",
    "list_html_files",
    "export_pdf",
    "export_pngs",
    "export_jpgs",
    "export_zip",
]

logger = logging.getLogger("markdown_maker.export")

EXPORT_FOLDERS: Mapping[str, str] = {
    "pdf": "pdfs",
    "png": "pngs",
    "jpg": "jpgs",
    "zip": "zips",
}
EXPORT_HOOKS_FOR: Mapping[str, str] = {
    "pdf": "exportPdf",
    "png": "exportPngs",
    "jpg": "exportJpgs",
    "zip": "exportZip",
}
ZIP_FOLDERS: tuple[str, ...] = (
    "fonts",
    "scripts",
    "stylesheets",
    "vendors",
    "html",
    "images",
)
BROWSER_ARGS: tuple[str, ...] = ("--font-render-hinting=none",)


async def run_export(jobs: Sequence[Job]) -> BuildOutcome:
    """Export every job, collecting each failed file or archive."""

    failures = await settle(export_job(job) for job in jobs)
    for failure in failures:
        logger.error(str(failure))
    return BuildOutcome(job_count=len(jobs), failures=tuple(failures))


async def export_job(job: Job) -> None:
    kind = job.export_kind
    if kind not in EXPORT_FOLDERS:
        raise BuildError(
            f"Exporting {job.project.name}/{job.format.name}",
            ValueError(f"{kind} is not a valid export format"),
        )
    if kind == "zip":
        await _export_archive(job)
        return

    files = list_html_files(job)
    if not files:
        logger.debug(
            format_task(
                job.project.name, job.format.name, None, "No HTML to export"
            )
        )
        return
    logger.debug(
        format_task(
            job.project.name,
            job.format.name,
            None,
            f"Exporting {kind.upper()}s for {len(files)} file(s)...",
        )
    )
    options = job.format.export_options(kind)
    options["pageRanges"] = list(job.pages) if job.pages else None
    default = _DEFAULT_EXPORTERS[kind]
    exporter = resolve_hook(
        EXPORT_HOOKS_FOR[kind], job.project, job.format, default=default
    )
    failures = await settle(
        _export_file(job, exporter, path, dict(options)) for path in files
    )
    if failures:
        raise AggregateBuildError(failures)
    logger.info(
        format_task(
            job.project.name,
            job.format.name,
            None,
            f"Exported {kind.upper()}s",
        )
    )


def list_html_files(job: Job) -> list[Path]:
    """Return the built HTML files selected by the job's file filter."""

    root = job.output.build / "html"
    patterns = job.files or ("*.html",)
    return [path for _, path in iter_files(root, patterns)]


async def export_pdf(
    job: Job, file: Path, options: Mapping[str, Any]
) -> list[Path]:
    """Render ``file`` to ``<export>/pdfs/<stem>.pdf`` with WeasyPrint."""

    target = job.output.export / EXPORT_FOLDERS["pdf"] / f"{file.stem}.pdf"
    await asyncio.to_thread(
        _write_pdf, file, target, options.get("pageRanges")
    )
    logger.info(
        format_task(
            job.project.name, job.format.name, file.name, "Exported new PDF"
        )
    )
    return [target]


async def export_pngs(
    job: Job, file: Path, options: Mapping[str, Any]
) -> list[Path]:
    return await _capture_pages(job, file, options, image_type="png")


async def export_jpgs(
    job: Job, file: Path, options: Mapping[str, Any]
) -> list[Path]:
    return await _capture_pages(job, file, options, image_type="jpg")


async def export_zip(job: Job) -> Path:
    """Bundle the job's build folders into ``<project>_<timestamp>.zip``."""

    target = (
        job.output.export
        / EXPORT_FOLDERS["zip"]
        / f"{job.project.name}_{_timestamp()}.zip"
    )
    return await asyncio.to_thread(_write_zip, job, target)


async def _export_file(
    job: Job,
    exporter: Callable[..., Any],
    file: Path,
    options: Mapping[str, Any],
) -> None:
    try:
        await call_hook(exporter, job, file, options)
    except Exception as exc:
        raise BuildError(
            f"Exporting {job.project.name}/{job.format.name}/{file.name}", exc
        ) from exc


async def _export_archive(job: Job) -> None:
    logger.debug(
        format_task(
            job.project.name, job.format.name, None, "Exporting ZIP..."
        )
    )
    exporter = resolve_hook(
        "exportZip", job.project, job.format, default=export_zip
    )
    try:
        result = await call_hook(exporter, job)
    except Exception as exc:
        raise BuildError(
            f"Exporting {job.project.name}/{job.format.name}", exc
        ) from exc
    if isinstance(result, Path):
        message = f"Created {result.name}"
    else:
        message = "Exported ZIP"
    logger.info(format_task(job.project.name, job.format.name, None, message))


def _write_pdf(
    source: Path, target: Path, pages: Sequence[int] | None
) -> Path:
    html_cls = _load_weasyprint()
    document = html_cls(
        filename=str(source), base_url=str(source.parent)
    ).render()
    if pages:
        selected = [
            document.pages[number - 1]
            for number in pages
            if number <= len(document.pages)
        ]
        document = document.copy(selected)
    target.parent.mkdir(parents=True, exist_ok=True)
    document.write_pdf(target=str(target))
    return target


async def _capture_pages(
    job: Job,
    file: Path,
    options: Mapping[str, Any],
    *,
    image_type: str,
) -> list[Path]:
    """Screenshot every element matching ``selector`` as one page each."""

    async_playwright = _load_playwright()
    folder = job.output.export / EXPORT_FOLDERS[image_type]
    pages = options.get("pageRanges")
    selector = options.get("selector") or "body"
    scale = options.get("deviceScaleFactor") or 1
    screenshot_type = "jpeg" if image_type == "jpg" else image_type

    written: list[Path] = []
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(
            headless=True, args=list(BROWSER_ARGS)
        )
        try:
            page = await browser.new_page(device_scale_factor=scale)
            logger.debug(
                format_task(
                    job.project.name,
                    job.format.name,
                    file.name,
                    "Opening file",
                )
            )
            await page.goto(file.resolve().as_uri(), wait_until="networkidle")
            await page.emulate_media(media="print")
            elements = await page.query_selector_all(selector)
            folder.mkdir(parents=True, exist_ok=True)
            for number, element in enumerate(elements, start=1):
                if pages and number not in pages:
                    continue
                target = folder / f"{file.stem}_p{number}.{image_type}"
                await element.screenshot(
                    path=str(target), type=screenshot_type
                )
                written.append(target)
                logger.info(
                    format_task(
                        job.project.name,
                        job.format.name,
                        file.name,
                        f"Exported page {number}",
                    )
                )
        finally:
            await browser.close()
    return written


def _write_zip(job: Job, target: Path) -> Path:
    target.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(
        target, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as archive:
        for folder in ZIP_FOLDERS:
            root = job.output.build / folder
            if not root.is_dir():
                logger.warning(
                    format_task(
                        job.project.name,
                        job.format.name,
                        None,
                        f"Skipping missing folder {folder}",
                    )
                )
                continue
            for path in sorted(root.rglob("*")):
                if path.is_file():
                    arcname = Path(folder) / path.relative_to(root)
                    archive.write(path, arcname=arcname.as_posix())
    return target


def _timestamp() -> str:
    return datetime.now().strftime("%Y%m%dT%H%M%S")


def _load_weasyprint() -> Any:
    try:
        from weasyprint import HTML
    except (ImportError, OSError) as exc:
        raise MakerError(
            "WeasyPrint is required for PDF export. Install system libraries "
            "(Cairo, Pango) and the 'weasyprint' package."
        ) from exc
    return HTML


def _load_playwright() -> Any:
    try:
        from playwright.async_api import async_playwright
    except ImportError as exc:
        raise MakerError(
            "Playwright is required for PNG/JPG export. Install the "
            "'playwright' package and run `playwright install chromium`."
        ) from exc
    return async_playwright


_DEFAULT_EXPORTERS: Mapping[str, Callable[..., Any]] = {
    "pdf": export_pdf,
    "png": export_pngs,
    "jpg": export_jpgs,
}
