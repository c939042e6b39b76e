"""Markdown rendering with the custom block grammar."""

from __future__ import annotations

from .defaults import render_default_block, render_default_heading
from .engine import (
    MAX_BLOCK_DEPTH,
    BlockToken,
    RenderContext,
    fold_tokens,
    get_engine,
    parse_markdown,
    render_markdown,
    slugify,
)
from .tags import EMPTY_TAGS, Tags, parse_tags, render_data_attributes

__all__ = [
    "render_default_block",
    "render_default_heading",
    "MAX_BLOCK_DEPTH",
    "BlockToken",
    "RenderContext",
    "fold_tokens",
    "get_engine",
    "parse_markdown",
    "render_markdown",
    "slugify",
    "EMPTY_TAGS",
    "Tags",
    "parse_tags",
    "render_data_attributes",
]
