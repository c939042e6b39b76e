"""Built-in markup for custom blocks and headings.

Formats replace any of these per block type through their ``markdown``
renderer table; everything without an override falls back to the templates
below.
"""

from __future__ import annotations

from html import escape
from typing import Mapping

from jinja2 import DictLoader, Environment, Template

from .tags import Tags

__all__ = ["render_default_block", "render_default_heading"]

# ``common`` carries the id/class/data-attribute prefix every block shares.
_BLOCK_TEMPLATES: Mapping[str, str] = {
    "layout": (
        '<div{{ common.id }} class="layout{{ common.css }}"{{ common.data }}>\n'
        "{{ body }}</div>\n"
    ),
    "page": (
        '<div{{ common.id }} class="page{{ common.css }}"{{ common.data }}>\n'
        "{{ body }}</div>\n"
    ),
    "content": (
        '<section{{ common.id }} class="content{{ common.css }}"'
        "{{ common.data }}>\n{{ body }}</section>\n"
    ),
    "section": (
        '<section{{ common.id }} class="section{{ common.css }}"'
        "{{ common.data }}>\n{{ body }}</section>\n"
    ),
    "panel": (
        '<div{{ common.id }} class="panel'
        "{% if tags.panelType %} panel--{{ tags.panelType | e }}{% endif %}"
        '{{ common.css }}"{{ common.data }}>\n'
        "{% if tags.title %}"
        '<header class="panel__header">'
        '<h4 class="panel__title">{{ tags.title }}</h4></header>\n'
        "{% endif %}"
        '<section class="panel__body">\n{{ body }}</section>\n</div>\n'
    ),
    "example": (
        '<div{{ common.id }} class="example{{ common.css }}"'
        "{{ common.data }}>\n"
        '<section class="example__body">\n{{ body }}</section>\n</div>\n'
    ),
    "figure": (
        '<figure{{ common.id }} class="figure{{ common.css }}"'
        "{{ common.data }}>\n{{ body }}"
        "{% if tags.caption %}"
        "<figcaption>{{ tags.caption }}</figcaption>\n"
        "{% endif %}</figure>\n"
    ),
    "card": (
        '<div{{ common.id }} class="card{{ common.css }}"{{ common.data }}>\n'
        "{% if tags.img %}"
        '<img class="card__image" src="{{ tags.img | e }}">\n'
        "{% endif %}"
        '<div class="card__body">\n{{ body }}</div>\n</div>\n'
    ),
    "table": (
        '<div{{ common.id }} class="table{{ common.css }}"{{ common.data }}>\n'
        "{% if tags.title %}"
        '<header class="table__header">'
        '<h4 class="table__title">{{ tags.title }}</h4></header>\n'
        "{% endif %}"
        '<section class="table__body">\n{{ body }}</section>\n</div>\n'
    ),
    "colbreak": "<colbreak></colbreak>\n",
    "heading": (
        "<h{{ level }}{{ common.id }}"
        '{% if common.css %} class="{{ common.css | trim }}"{% endif %}'
        "{{ common.data }}>"
        "{% if tags.icon %}"
        '<i class="icon {{ tags.icon | e }}"></i>'
        "{% endif %}"
        "{% if tags.index %}"
        '<span class="index">{{ tags.index }}</span>'
        "{% endif %}"
        "{{ title }}</h{{ level }}>\n"
    ),
}

_ENVIRONMENT = Environment(
    loader=DictLoader(dict(_BLOCK_TEMPLATES)),
    autoescape=False,
    keep_trailing_newline=True,
)


def _template(name: str) -> Template:
    return _ENVIRONMENT.get_template(name)


def _common(tags: Tags, element_id: str | None = None) -> dict[str, str]:
    ident = element_id if element_id is not None else tags.get("id")
    css = tags.get("class")
    return {
        "id": f' id="{escape(str(ident), quote=True)}"' if ident else "",
        "css": f" {escape(str(css), quote=True)}" if css else "",
        "data": f" {tags.data}" if tags.data else "",
    }


def render_default_block(block_type: str, tags: Tags, body: str) -> str:
    """Render the default markup for ``block_type`` around ``body``."""

    return _template(block_type).render(
        common=_common(tags),
        tags=tags.values,
        body=body,
    )


def render_default_heading(
    level: int, title: str, tags: Tags, element_id: str
) -> str:
    return _template("heading").render(
        common=_common(tags, element_id),
        tags=tags.values,
        level=level,
        title=title,
    )
