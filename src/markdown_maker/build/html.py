"""HTML fragments and collections: the per-document build pipeline.

Each document runs strictly in order: read source, render markdown, wrap,
post-process the DOM, translate, serialize, and save. Documents of one job
are built concurrently and every document runs to completion even when a
sibling fails; the failures are raised together afterwards.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath
from typing import Any, Mapping, Optional

from jinja2 import Environment

from markdown_maker.core.concurrency import call_hook, settle
from markdown_maker.core.files import read_text_async, write_text_async
from markdown_maker.core.logging import format_task
from markdown_maker.errors import AggregateBuildError, BuildError
from markdown_maker.jobs import Job
from markdown_maker.markdown import render_markdown
from markdown_maker.resolver import collect_sources, find_file, resolve_hook
from markdown_maker.translation import TranslationCache, Translator

from .dom import parse_document, process_dom, serialize_document

__all__ = [
    "FRAGMENT_PATTERNS",
    "COLLECTION_PATTERNS",
    "build_html",
    "build_fragments",
    "build_collections",
    "validate_collection",
    "collection_output_name",
    "fragment_output_name",
]

logger = logging.getLogger("markdown_maker.build")

FRAGMENT_PATTERNS: tuple[str, ...] = ("*.md",)
COLLECTION_PATTERNS: tuple[str, ...] = ("*.json",)

_WRAPPER = Environment(autoescape=False).from_string(
    '<html{% if language %} lang="{{ language }}"{% endif %}>'
    "<head></head><body>{{ body }}</body></html>"
)


async def build_html(job: Job, translations: TranslationCache) -> None:
    """Default ``html`` task: fragments and/or collections for one language."""

    steps = []
    if job.fragments:
        hook = resolve_hook("buildHtmlFragments", job.project, job.format)
        steps.append(
            call_hook(hook, job, job.language)
            if hook is not None
            else build_fragments(job, translations)
        )
    if job.collections:
        hook = resolve_hook("buildHtmlCollections", job.project, job.format)
        steps.append(
            call_hook(hook, job, job.language)
            if hook is not None
            else build_collections(job, translations)
        )
    failures = await settle(steps)
    if failures:
        raise AggregateBuildError(failures)


async def build_fragments(job: Job, translations: TranslationCache) -> int:
    """Render every selected ``fragments/*.md`` file."""

    sources = collect_sources(
        job.project, job.format, "fragments", job.files or FRAGMENT_PATTERNS
    )
    translator = translations.translator(job.project, job.format, job.language)
    failures = await settle(
        _build_fragment(job, translator, rel, path)
        for rel, path in sources.items()
    )
    if failures:
        raise AggregateBuildError(failures)
    return len(sources)


async def build_collections(job: Job, translations: TranslationCache) -> int:
    """Render every selected ``collections/*.json`` manifest."""

    sources = collect_sources(
        job.project,
        job.format,
        "collections",
        job.files or COLLECTION_PATTERNS,
    )
    translator = translations.translator(job.project, job.format, job.language)
    failures = await settle(
        _build_collection(job, translator, rel, path)
        for rel, path in sources.items()
    )
    if failures:
        raise AggregateBuildError(failures)
    return len(sources)


def validate_collection(manifest: Any) -> Mapping[str, Any]:
    if not isinstance(manifest, Mapping):
        raise TypeError("Collection must be a JSON object.")
    if "filename" not in manifest:
        raise KeyError("Collection is missing an output name.")
    contents = manifest.get("contents")
    if not isinstance(contents, list):
        raise TypeError("Collection is missing a list of contents.")
    if not contents:
        raise ValueError("Collection has zero listed contents.")
    return manifest


def fragment_output_name(rel: str, language: Optional[str]) -> str:
    path = PurePosixPath(rel)
    suffix = f"_{language}" if language else ""
    return str(path.with_name(f"{path.stem}{suffix}.html"))


def collection_output_name(
    filename: str, version: str, language: Optional[str]
) -> str:
    suffix = f"_{language}" if language else ""
    return f"{filename}_v{version.replace('.', '-')}{suffix}.html"


async def _build_fragment(
    job: Job, translator: Translator, rel: str, path: Path
) -> Path:
    name = PurePosixPath(rel).name
    context = f"Building {job.project.name}/fragments/{name}"
    try:
        if job.debug:
            logger.debug(
                format_task(job.project.name, job.format.name, rel, "Using")
            )
        text = await read_text_async(path)
        html = render_markdown(
            text,
            renderers=job.format.renderers,
            job=job,
            filename=name,
        )
        html = await _wrap(job, "renderHtmlFragmentWrapper", name, html)
        soup = await process_dom(job, parse_document(html), kind="fragment")
        output = serialize_document(soup, translator)
        target = (
            job.output.build
            / "html"
            / fragment_output_name(rel, job.language)
        )
        await _save(job, "saveHtmlFragment", target, output)
    except Exception as exc:
        raise BuildError(context, exc) from exc
    logger.info(
        format_task(
            job.project.name,
            job.format.name,
            target.name,
            "Built HTML fragment",
        )
    )
    return target


async def _build_collection(
    job: Job, translator: Translator, rel: str, path: Path
) -> Path:
    name = PurePosixPath(rel).name
    context = f"Building {job.project.name}/collections/{name}"
    try:
        manifest = json.loads(await read_text_async(path))
        validator = resolve_hook(
            "validateCollectionJson",
            job.project,
            job.format,
            default=validate_collection,
        )
        manifest = await call_hook(validator, manifest)

        renderer = resolve_hook(
            "renderCollectionJson", job.project, job.format
        )
        if renderer is not None:
            markdown = await call_hook(renderer, job, manifest)
        else:
            markdown = await _join_fragments(job, manifest["contents"])

        html = render_markdown(
            markdown,
            renderers=job.format.renderers,
            job=job,
            filename=name,
        )
        html = await _wrap(job, "renderHtmlCollectionWrapper", name, html)
        soup = await process_dom(
            job, parse_document(html), kind="collection", collection=manifest
        )
        output = serialize_document(soup, translator)
        target = (
            job.output.build
            / "html"
            / collection_output_name(
                str(manifest["filename"]), job.project.version, job.language
            )
        )
        await _save(job, "saveHtmlCollection", target, output)
    except Exception as exc:
        raise BuildError(context, exc) from exc
    logger.info(
        format_task(
            job.project.name,
            job.format.name,
            target.name,
            "Built HTML collection",
        )
    )
    return target


async def _join_fragments(job: Job, names: list[Any]) -> str:
    parts: list[str] = []
    for entry in names:
        path = find_file(job.project, job.format, f"fragments/{entry}.md")
        if path is None:
            raise FileNotFoundError(
                f'Fragment file "{entry}.md" does not exist.'
            )
        parts.append(await read_text_async(path))
    return "\n".join(parts)


async def _wrap(job: Job, hook_name: str, name: str, html: str) -> str:
    hook = resolve_hook(hook_name, job.project, job.format)
    if hook is not None:
        return await call_hook(hook, job, name, html)
    return _WRAPPER.render(language=job.language, body=html)


async def _save(job: Job, hook_name: str, target: Path, html: str) -> None:
    hook = resolve_hook(hook_name, job.project, job.format)
    if hook is not None:
        await call_hook(hook, job, job.language, target, html)
        return
    await write_text_async(target, html)
