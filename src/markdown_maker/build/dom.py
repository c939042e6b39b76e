"""DOM post-processing applied to every rendered document."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

import yaml
from bs4 import BeautifulSoup, Tag

from markdown_maker.core.concurrency import call_hook
from markdown_maker.jobs import Job
from markdown_maker.resolver import resolve, resolve_hook
from markdown_maker.translation import Translator

__all__ = [
    "DOM_HOOK_FOR",
    "parse_document",
    "process_dom",
    "render_json_blocks",
    "render_blueprints",
    "serialize_document",
]

logger = logging.getLogger("markdown_maker.build")

DOM_HOOK_FOR: Mapping[str, str] = {
    "fragment": "processDomFragment",
    "collection": "processDomCollection",
}


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


async def process_dom(
    job: Job,
    soup: BeautifulSoup,
    *,
    kind: str,
    collection: Optional[Mapping[str, Any]] = None,
) -> BeautifulSoup:
    """Run the DOM hook, then JSON renderers, then blueprints."""

    hook = resolve_hook(DOM_HOOK_FOR[kind], job.project, job.format)
    if hook is not None:
        result = await call_hook(hook, job, soup)
        if isinstance(result, BeautifulSoup):
            soup = result
    render_json_blocks(job, soup)
    render_blueprints(job, soup, collection)
    return soup


def render_json_blocks(job: Job, soup: BeautifulSoup) -> int:
    """Replace ``.json`` elements whose ``data-type`` has a renderer."""

    count = 0
    for element in soup.select(".json[data-type]"):
        renderer = job.format.json_renderers.get(str(element["data-type"]))
        if renderer is None:
            continue
        config = json.loads(element.get_text())
        _replace_with_markup(element, renderer(config, soup))
        count += 1
    return count


def render_blueprints(
    job: Job,
    soup: BeautifulSoup,
    collection: Optional[Mapping[str, Any]] = None,
) -> int:
    """Replace ``[data-blueprint]`` elements with their blueprint's output."""

    count = 0
    for element in soup.select("[data-blueprint]"):
        name = str(element["data-blueprint"])
        blueprint = job.format.blueprints.get(name)
        if blueprint is None:
            raise LookupError(f"Blueprint type [{name}] is missing a function")
        config = _parse_config(
            _blueprint_data(job, element), element.get("data-language")
        )
        raw_options = element.get("data-options")
        options = json.loads(str(raw_options)) if raw_options else {}
        markup = blueprint(job, config, options, soup, element, collection)
        _replace_with_markup(element, markup)
        count += 1
    return count


def serialize_document(soup: BeautifulSoup, translator: Translator) -> str:
    """Apply message substitution and return the document's HTML.

    Whitespace is written exactly as parsed; re-indenting would put inline
    elements on their own lines and change the visible text.
    """

    return translator.replace_messages(str(soup))


def _blueprint_data(job: Job, element: Tag) -> str:
    source = element.get("data-src")
    if not source:
        return element.get_text()
    data = resolve(job.project, job.format, str(source))
    if data is None:
        raise FileNotFoundError(f"Couldn't find blueprint src file [{source}]")
    return data


def _parse_config(data: str, language: Any) -> Any:
    if language == "json":
        return json.loads(data)
    if language == "plain":
        return data
    return yaml.safe_load(data)


def _replace_with_markup(element: Tag, markup: Any) -> None:
    fragment = BeautifulSoup(str(markup or ""), "html.parser")
    element.replace_with(*list(fragment.contents))
