"""Message lookup for ``{{msg:key}}`` placeholders.

Translation files live at ``translations/<language>.txt`` and are resolved
through the usual project/format cascade. Each line is ``key=value``; blank
lines and lines starting with ``#`` are ignored.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional, Sequence

from .resolver import find_file
from .core.files import read_text_file
from .resources.models import Format, Project

__all__ = [
    "TranslationCache",
    "Translator",
    "parse_messages",
]

logger = logging.getLogger("markdown_maker.translation")

PLACEHOLDER_RE = re.compile(r"\{\{msg:(.*?)\}\}")

CacheKey = tuple[str, str, str]


def parse_messages(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines; later duplicates do not replace earlier."""

    messages: dict[str, str] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        messages.setdefault(key.strip(), value.strip())
    return messages


class TranslationCache:
    """Message tables keyed by ``(project, format, language)``.

    Tables are loaded on first use and kept until :meth:`clear`. A watch
    session clears the cache before every rebuild so edited translation
    files are picked up.
    """

    def __init__(self) -> None:
        self._tables: dict[CacheKey, Mapping[str, str]] = {}

    def __len__(self) -> int:
        return len(self._tables)

    def messages(
        self, project: Project, fmt: Format, language: str
    ) -> Mapping[str, str]:
        key = (project.name, fmt.name, language)
        table = self._tables.get(key)
        if table is None:
            table = self._load(project, fmt, language)
            self._tables[key] = table
        return table

    def translator(
        self, project: Project, fmt: Format, language: Optional[str]
    ) -> "Translator":
        if not language:
            return Translator({})
        return Translator(self.messages(project, fmt, language))

    def clear(self) -> None:
        self._tables.clear()

    @staticmethod
    def _load(
        project: Project, fmt: Format, language: str
    ) -> Mapping[str, str]:
        path = find_file(project, fmt, f"translations/{language}.txt")
        if path is None:
            logger.debug(
                "No translations for %s/%s/%s",
                project.name,
                fmt.name,
                language,
            )
            return {}
        return parse_messages(read_text_file(path))


class Translator:
    """Looks up messages for one language."""

    def __init__(self, messages: Mapping[str, str]) -> None:
        self._messages = messages

    def get_message(
        self, key: str, variables: Optional[Sequence[object]] = None
    ) -> str:
        """Return the message for ``key`` with ``{N}`` variables filled.

        Unknown keys are returned unchanged.
        """

        message = self._messages.get(key)
        if message is None:
            return key
        for index, value in enumerate(variables or ()):
            message = message.replace(f"{{{index}}}", str(value))
        return message

    def has_key(self, key: str) -> bool:
        return key in self._messages

    def replace_messages(self, text: str) -> str:
        """Substitute every known ``{{msg:key}}`` placeholder."""

        def _replace(match: re.Match[str]) -> str:
            return self._messages.get(match.group(1), match.group(0))

        return PLACEHOLDER_RE.sub(_replace, text)
