"""Custom block syntax on top of markdown-it-py.

Authors delimit blocks with ``\\<type>Begin`` and ``\\<type>End`` lines; an
optional JSON object of attribute tags may follow the begin marker::

    \\panelBegin {"title": "Rules", "panelType": "note"}
    Body *markdown*, which may itself contain blocks.
    \\panelEnd

The parser is configured once per process (:func:`get_engine`). Everything
that varies per document, such as the format's renderer overrides, the job,
and the file name, travels in the markdown-it ``env`` of each call via
:class:`RenderContext`, so concurrent renders never share parser state.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Mapping, MutableMapping, Optional, Sequence

from markdown_it import MarkdownIt
from markdown_it.renderer import RendererHTML
from markdown_it.rules_block import StateBlock
from markdown_it.rules_core import StateCore
from markdown_it.token import Token

from markdown_maker.errors import ConfigurationError, MarkdownSyntaxError
from markdown_maker.resources.models import BLOCK_TYPES, HookTable

from .defaults import render_default_block, render_default_heading
from .tags import EMPTY_TAGS, Tags, parse_tags

__all__ = [
    "BlockToken",
    "RenderContext",
    "MAX_BLOCK_DEPTH",
    "get_engine",
    "parse_markdown",
    "render_markdown",
    "slugify",
    "fold_tokens",
]

MAX_BLOCK_DEPTH = 32

ENV_KEY = "markdown_maker"
_DEPTH_KEY = "markdown_maker_depth"

# Block types delimited by Begin/End markers. ``colbreak`` is the single-line
# ``\columnbreak`` marker and is handled separately.
DELIMITED_TYPES: tuple[str, ...] = tuple(
    name for name in BLOCK_TYPES if name != "colbreak"
)
COLUMN_BREAK_MARKER = "\\columnbreak"

_BEGIN_RE = re.compile(
    r"^\\(?P<name>[A-Za-z]+)Begin(?![A-Za-z0-9])(?P<rest>.*)$"
)
_HEADING_TAGS_RE = re.compile(
    r"^(?P<title>.*?)\s*(?P<tags>\{\s*(?:\"[^{}]*)?\})\s*$", re.S
)
_FENCE_RE = re.compile(r"^(?P<marker>`{3,}|~{3,})(?P<info>.*)$")
_ICON_OPEN_RE = re.compile(r"^<(span|i)\b", re.I)
_ICON_CLOSE_RE = re.compile(r"^</(span|i)>", re.I)
_WHITESPACE_RE = re.compile(r"\s+")

BlockRenderer = Callable[[Any, Optional[str], "BlockToken", str], str]
HeadingRenderer = Callable[[int, str, Tags], str]


@dataclass
class BlockToken:
    """A custom block: its type, source text, tags, and child tokens."""

    type: str
    raw: str
    tags: Tags
    line: int
    children: list[Token] = field(default_factory=list)

    @property
    def data(self) -> str:
        return self.tags.data


@dataclass(frozen=True)
class RenderContext:
    """Per-call render options threaded through markdown-it's ``env``."""

    renderers: HookTable = field(default_factory=HookTable)
    job: Any = None
    filename: Optional[str] = None


def _check_grammar(names: Sequence[str]) -> None:
    if len(set(names)) != len(names):
        raise ConfigurationError("Custom block names must be unique.")
    for name in names:
        if not re.fullmatch(r"[A-Za-z]+", name):
            raise ConfigurationError(f"Invalid custom block name '{name}'.")


@lru_cache(maxsize=1)
def get_engine() -> MarkdownIt:
    """Return the process-wide parser with every custom block registered."""

    _check_grammar(DELIMITED_TYPES)
    md = MarkdownIt(
        "commonmark",
        options_update={"html": True, "maxNesting": 4 * MAX_BLOCK_DEPTH},
    )
    md.enable("table")
    md.block.ruler.before(
        "fence",
        "maker_block",
        _block_rule,
        {"alt": ["paragraph", "reference", "blockquote", "list"]},
    )
    md.core.ruler.before("inline", "maker_heading_tags", _heading_tags_rule)
    # Folding runs last so text_join has merged escaped text first.
    md.core.ruler.push("maker_fold", _fold_rule)
    md.add_render_rule("maker_block", _render_block)
    md.add_render_rule("maker_heading", _render_heading)
    return md


def parse_markdown(
    text: str,
    *,
    context: Optional[RenderContext] = None,
) -> list[Token]:
    """Tokenize ``text`` into a tree of block tokens."""

    return get_engine().parse(text, _env(context))


def render_markdown(
    text: str,
    *,
    renderers: Optional[HookTable] = None,
    job: Any = None,
    filename: Optional[str] = None,
) -> str:
    """Render ``text`` to HTML using ``renderers`` as block overrides."""

    context = RenderContext(
        renderers=renderers or HookTable(),
        job=job,
        filename=filename,
    )
    md = get_engine()
    env = _env(context)
    tokens = md.parse(text, env)
    return md.renderer.render(tokens, md.options, env)


def slugify(text: str) -> str:
    """Lowercase ``text`` and join its words with hyphens."""

    return _WHITESPACE_RE.sub("-", text.strip()).lower()


def _env(context: Optional[RenderContext]) -> MutableMapping[str, Any]:
    return {ENV_KEY: context or RenderContext(), _DEPTH_KEY: 0}


def _context(env: Mapping[str, Any]) -> RenderContext:
    context = env.get(ENV_KEY)
    if isinstance(context, RenderContext):
        return context
    return RenderContext()


# ------------- Tokenizing -------------


def _line_text(state: StateBlock, line: int) -> str:
    start = state.bMarks[line] + state.tShift[line]
    return state.src[start : state.eMarks[line]]


def _block_rule(
    state: StateBlock, start_line: int, end_line: int, silent: bool
) -> bool:
    if state.sCount[start_line] - state.blkIndent >= 4:
        return False
    line = _line_text(state, start_line)
    if not line.startswith("\\"):
        return False

    if line.rstrip() == COLUMN_BREAK_MARKER:
        if silent:
            return True
        _push_block(state, "colbreak", line, EMPTY_TAGS, start_line)
        state.line = start_line + 1
        return True

    match = _BEGIN_RE.match(line)
    if match is None or match.group("name") not in DELIMITED_TYPES:
        return False
    name = match.group("name")
    close_line = _find_close(state, name, start_line, end_line)
    if silent:
        return True

    depth = state.env.get(_DEPTH_KEY, 0)
    if depth >= MAX_BLOCK_DEPTH:
        raise MarkdownSyntaxError(
            name,
            start_line,
            f"Custom blocks nested deeper than {MAX_BLOCK_DEPTH} levels",
        )

    context = _context(state.env)
    tags = parse_tags(
        match.group("rest").strip() or None,
        context=context.filename or "",
    )
    raw = _raw_text(state, start_line, close_line)

    old_parent = state.parentType
    old_line_max = state.lineMax
    state.parentType = "maker_block"
    # Lazy continuation lines must not run past the end marker.
    state.lineMax = close_line
    _push_block(state, name, raw, tags, start_line, close_line)
    state.env[_DEPTH_KEY] = depth + 1
    try:
        state.md.block.tokenize(state, start_line + 1, close_line)
    finally:
        state.env[_DEPTH_KEY] = depth
    closing = state.push("maker_block_close", "", -1)
    closing.block = True
    state.parentType = old_parent
    state.lineMax = old_line_max
    state.line = close_line + 1
    return True


def _find_close(
    state: StateBlock, name: str, start_line: int, end_line: int
) -> int:
    begin = re.compile(rf"^\\{name}Begin(?![A-Za-z0-9])")
    end = re.compile(rf"^\\{name}End(?![A-Za-z0-9])")
    depth = 1
    fence: Optional[str] = None
    for line in range(start_line + 1, end_line):
        text = _line_text(state, line)
        indented = state.sCount[line] - state.blkIndent >= 4
        if fence is not None:
            if not indented and _closes_fence(text, fence):
                fence = None
            continue
        if indented:
            continue
        fence = _opens_fence(text)
        if fence is not None:
            continue
        if begin.match(text):
            depth += 1
        elif end.match(text):
            depth -= 1
            if depth == 0:
                return line
    offset = state.bMarks[start_line]
    raise MarkdownSyntaxError(
        name,
        start_line,
        f"Unterminated \\{name}Begin at offset {offset}: "
        f"missing \\{name}End",
    )


def _opens_fence(text: str) -> Optional[str]:
    match = _FENCE_RE.match(text)
    if match is None:
        return None
    marker = match.group("marker")
    if marker[0] == "`" and "`" in match.group("info"):
        return None
    return marker


def _closes_fence(text: str, marker: str) -> bool:
    stripped = text.rstrip()
    return len(stripped) >= len(marker) and not stripped.strip(marker[0])


def _raw_text(state: StateBlock, start_line: int, close_line: int) -> str:
    begin = state.bMarks[start_line]
    end = state.eMarks[close_line]
    return state.src[begin:end]


def _push_block(
    state: StateBlock,
    name: str,
    raw: str,
    tags: Tags,
    start_line: int,
    close_line: Optional[int] = None,
) -> None:
    token = state.push("maker_block_open", "", 1)
    token.block = True
    token.info = name
    token.markup = f"\\{name}Begin"
    last_line = close_line if close_line is not None else start_line
    token.map = [start_line, last_line + 1]
    token.meta = {
        "block": BlockToken(type=name, raw=raw, tags=tags, line=start_line)
    }
    if close_line is None:
        closing = state.push("maker_block_close", "", -1)
        closing.block = True


def _heading_tags_rule(state: StateCore) -> None:
    """Move a trailing ``{...}`` tag object off each heading's text."""

    context = _context(state.env)
    tokens = state.tokens
    for index, token in enumerate(tokens):
        if token.type != "heading_open" or index + 1 >= len(tokens):
            continue
        inline = tokens[index + 1]
        if inline.type != "inline":
            continue
        match = _HEADING_TAGS_RE.match(inline.content)
        tags = EMPTY_TAGS
        if match:
            tags = parse_tags(
                match.group("tags"), context=context.filename or ""
            )
            inline.content = match.group("title")
        token.meta = {**(token.meta or {}), "tags": tags}


def _fold_rule(state: StateCore) -> None:
    state.tokens = fold_tokens(state.tokens)


def fold_tokens(tokens: Sequence[Token]) -> list[Token]:
    """Turn the flat open/close stream into a tree.

    Each custom block becomes one ``maker_block`` token whose ``children``
    hold its interior; each heading becomes a ``maker_heading`` token whose
    only child is its inline token.
    """

    root: list[Token] = []
    stack: list[list[Token]] = [root]
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.type == "maker_block_open":
            block: BlockToken = token.meta["block"]
            token.type = "maker_block"
            token.nesting = 0
            token.children = block.children
            stack[-1].append(token)
            stack.append(block.children)
        elif token.type == "maker_block_close":
            stack.pop()
        elif (
            token.type == "heading_open"
            and index + 2 < len(tokens)
            and tokens[index + 1].type == "inline"
            and tokens[index + 2].type == "heading_close"
        ):
            token.type = "maker_heading"
            token.nesting = 0
            token.children = [tokens[index + 1]]
            stack[-1].append(token)
            index += 3
            continue
        else:
            stack[-1].append(token)
        index += 1
    return root


# ------------- Rendering -------------


def _render_block(
    self: RendererHTML,
    tokens: Sequence[Token],
    idx: int,
    options: Any,
    env: MutableMapping[str, Any],
) -> str:
    token = tokens[idx]
    block: BlockToken = token.meta["block"]
    context = _context(env)
    body = self.render(block.children, options, env)
    override = context.renderers.get(block.type)
    if override is not None:
        return override(context.job, context.filename, block, body)
    return render_default_block(block.type, block.tags, body)


def _render_heading(
    self: RendererHTML,
    tokens: Sequence[Token],
    idx: int,
    options: Any,
    env: MutableMapping[str, Any],
) -> str:
    token = tokens[idx]
    inline = token.children[0] if token.children else None
    title = ""
    if inline is not None and inline.children:
        title = self.renderInline(inline.children, options, env)
    tags: Tags = (token.meta or {}).get("tags", EMPTY_TAGS)
    level = int(token.tag[1:]) if token.tag.startswith("h") else 1
    context = _context(env)

    override = context.renderers.get("heading")
    if override is not None:
        return override(level, title, tags)

    element_id = tags.get("id") or slugify(_plain_text(inline))
    return render_default_heading(level, title, tags, element_id)


def _plain_text(inline: Optional[Token]) -> str:
    """Visible heading text with inline markup and icon spans removed."""

    if inline is None or not inline.children:
        return inline.content if inline is not None else ""
    parts: list[str] = []
    skip = 0
    for child in inline.children:
        if child.type == "html_inline":
            if _ICON_CLOSE_RE.match(child.content):
                skip = max(skip - 1, 0)
            elif _ICON_OPEN_RE.match(child.content):
                skip += 1
            continue
        if skip:
            continue
        if child.type in ("text", "code_inline"):
            parts.append(child.content)
        elif child.type in ("softbreak", "hardbreak"):
            parts.append(" ")
    return "".join(parts)
