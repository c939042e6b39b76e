"""Inline attribute tags: the ``{"key": "value"}`` object after a marker."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from html import escape
from types import MappingProxyType
from typing import Any, Mapping, Optional

__all__ = ["Tags", "parse_tags", "render_data_attributes"]

logger = logging.getLogger("markdown_maker.markdown")

DATA_PREFIX = "data-"


@dataclass(frozen=True)
class Tags:
    """Parsed attribute tags plus the data-attribute string derived once."""

    values: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    data: str = ""

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __bool__(self) -> bool:
        return bool(self.values)


EMPTY_TAGS = Tags()


def parse_tags(raw: Optional[str], *, context: str = "") -> Tags:
    """Parse a JSON-like tag object.

    Malformed input is logged as a warning and yields empty tags so the rest
    of the document still renders.
    """

    if raw is None or not raw.strip():
        return EMPTY_TAGS
    try:
        values = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning(
            "Couldn't parse json [%s]%s: %s",
            raw,
            f" in {context}" if context else "",
            exc.msg,
        )
        return EMPTY_TAGS
    if not isinstance(values, dict):
        logger.warning(
            "Ignoring tags [%s]%s: expected a JSON object",
            raw,
            f" in {context}" if context else "",
        )
        return EMPTY_TAGS
    return Tags(
        values=MappingProxyType(values),
        data=render_data_attributes(values),
    )


def render_data_attributes(values: Mapping[str, Any]) -> str:
    """Render every ``data-*`` key as an HTML attribute string."""

    parts = [
        f'{key}="{escape(_attribute_value(value), quote=True)}"'
        for key, value in values.items()
        if key.startswith(DATA_PREFIX)
    ]
    return " ".join(parts)


def _attribute_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_attribute_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    if value is None:
        return ""
    return str(value)
