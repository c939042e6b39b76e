from __future__ import annotations

import pytest

from markdown_maker.errors import MarkdownSyntaxError
from markdown_maker.markdown import engine
from markdown_maker.resources.models import BLOCK_RENDERER_NAMES, HookTable


def _renderers(**entries):
    return HookTable.build(
        entries, allowed=BLOCK_RENDERER_NAMES, kind="markdown renderer"
    )


NESTED = (
    '\\panelBegin {"title": "T", "class": "wide"}\n'
    "\\figureBegin\n"
    "# Hello World\n"
    "\\figureEnd\n"
    "\\panelEnd\n"
)


def test_parse_markdown_builds_block_tree():
    tokens = engine.parse_markdown(NESTED)

    assert [token.type for token in tokens] == ["maker_block"]
    panel = tokens[0].meta["block"]
    assert panel.type == "panel"
    assert panel.tags.get("title") == "T"
    assert panel.line == 0

    (figure_token,) = tokens[0].children
    assert figure_token.type == "maker_block"
    assert figure_token.meta["block"].type == "figure"

    (heading,) = figure_token.children
    assert heading.type == "maker_heading"
    assert heading.children[0].content == "Hello World"


def test_block_raw_text_spans_markers():
    tokens = engine.parse_markdown(NESTED)
    raw = tokens[0].meta["block"].raw

    assert raw.startswith("\\panelBegin")
    assert raw.rstrip().endswith("\\panelEnd")


def test_render_markdown_uses_default_templates():
    html = engine.render_markdown(NESTED)

    assert '<div class="panel wide">' in html
    assert '<h4 class="panel__title">T</h4>' in html
    assert '<figure class="figure">' in html
    assert '<h1 id="hello-world">Hello World</h1>' in html
    assert html.index("panel__body") < html.index("<figure")


def test_same_type_blocks_nest():
    text = (
        "\\exampleBegin\n"
        "outer\n\n"
        "\\exampleBegin\n"
        "inner\n"
        "\\exampleEnd\n"
        "\\exampleEnd\n"
    )

    tokens = engine.parse_markdown(text)

    assert len(tokens) == 1
    inner = [t for t in tokens[0].children if t.type == "maker_block"]
    assert len(inner) == 1
    assert inner[0].meta["block"].type == "example"


def test_block_body_is_markdown():
    html = engine.render_markdown(
        "\\exampleBegin\nSome *text*\n\\exampleEnd\n"
    )

    assert '<div class="example">' in html
    assert "<p>Some <em>text</em></p>" in html


def test_paragraph_stops_at_block_marker():
    html = engine.render_markdown(
        "Intro line\n\\sectionBegin\nInside\n\\sectionEnd\n"
    )

    assert "<p>Intro line</p>" in html
    assert '<section class="section">' in html
    assert "<p>Inside</p>" in html


def test_unknown_marker_stays_text():
    html = engine.render_markdown("\\widgetBegin\nbody\n\\widgetEnd\n")

    assert "widgetBegin" in html
    assert "<div" not in html


def test_unterminated_block_raises():
    with pytest.raises(MarkdownSyntaxError, match=r"missing \\panelEnd"):
        engine.parse_markdown("\\panelBegin\nbody\n")


def test_unterminated_error_reports_block_and_line():
    with pytest.raises(MarkdownSyntaxError) as excinfo:
        engine.parse_markdown("Intro\n\n\\cardBegin\nbody\n")

    assert excinfo.value.block_type == "card"
    assert excinfo.value.line == 2


def test_markers_inside_code_fence_are_literal():
    html = engine.render_markdown(
        "\\panelBegin\n"
        "```\n"
        "\\panelBegin\n"
        "```\n"
        "~~~~\n"
        "\\panelEnd\n"
        "~~~\n"
        "~~~~\n"
        "\\panelEnd\n"
    )

    assert html.count('<div class="panel">') == 1
    assert "<pre><code>\\panelBegin\n</code></pre>" in html
    assert "<pre><code>\\panelEnd\n~~~\n</code></pre>" in html


def test_end_marker_inside_code_fence_does_not_close():
    with pytest.raises(MarkdownSyntaxError, match=r"missing \\panelEnd"):
        engine.parse_markdown("\\panelBegin\n```\n\\panelEnd\n```\n")


def test_indented_marker_is_code():
    with pytest.raises(MarkdownSyntaxError, match=r"missing \\cardEnd"):
        engine.parse_markdown("\\cardBegin\ntext\n\n    \\cardEnd\n")


def test_column_break_renders_marker():
    html = engine.render_markdown("left\n\n\\columnbreak\n\nright\n")

    assert "<colbreak></colbreak>" in html
    assert html.index("left") < html.index("<colbreak>")
    assert html.index("<colbreak>") < html.index("right")


def test_block_tags_render_data_attributes():
    html = engine.render_markdown(
        '\\cardBegin {"data-kind": "tip", "img": "a.png"}\n'
        "Body\n"
        "\\cardEnd\n"
    )

    assert 'data-kind="tip"' in html
    assert '<img class="card__image" src="a.png">' in html


def test_malformed_tags_warn_and_render(caplog):
    caplog.set_level("WARNING", logger="markdown_maker.markdown")

    html = engine.render_markdown("\\panelBegin {bad}\nBody\n\\panelEnd\n")

    assert '<div class="panel">' in html
    assert "Couldn't parse json" in caplog.text


def test_heading_tags_set_id_and_class():
    html = engine.render_markdown(
        '## Intro {"id": "start", "class": "lead"}\n'
    )

    assert '<h2 id="start" class="lead">Intro</h2>' in html


def test_heading_with_braces_in_text_keeps_them():
    html = engine.render_markdown("# Sets {a} and {b}\n")

    assert "Sets {a} and {b}" in html


def test_heading_slug_skips_icon_markup():
    html = engine.render_markdown(
        '# <span class="icon">x</span> Getting Started\n'
    )

    assert 'id="getting-started"' in html


def test_renderer_override_receives_block_and_body():
    seen = {}

    def render_example(job, filename, block, body):
        seen["job"] = job
        seen["type"] = block.type
        seen["tags"] = dict(block.tags.values)
        return f'<aside data-file="{filename}">{body}</aside>\n'

    html = engine.render_markdown(
        '\\exampleBegin {"data-x": "1"}\nHi\n\\exampleEnd\n',
        renderers=_renderers(example=render_example),
        job="job-1",
        filename="intro.md",
    )

    assert html == '<aside data-file="intro.md"><p>Hi</p>\n</aside>\n'
    assert seen == {"job": "job-1", "type": "example", "tags": {"data-x": "1"}}


def test_heading_override_receives_level_and_tags():
    def render_heading(level, title, tags):
        return f"<p class='h{level}' data-id='{tags.get('id')}'>{title}</p>"

    html = engine.render_markdown(
        '### Deep {"id": "d"}\n',
        renderers=_renderers(heading=render_heading),
    )

    assert html == "<p class='h3' data-id='d'>Deep</p>"


def test_overrides_do_not_leak_between_calls():
    engine.render_markdown(
        "\\exampleBegin\nA\n\\exampleEnd\n",
        renderers=_renderers(example=lambda *args: "<x></x>"),
    )

    html = engine.render_markdown("\\exampleBegin\nA\n\\exampleEnd\n")

    assert '<div class="example">' in html


def test_nesting_deeper_than_limit_raises():
    depth = engine.MAX_BLOCK_DEPTH + 1
    text = "\\panelBegin\n" * depth + "x\n" + "\\panelEnd\n" * depth

    with pytest.raises(MarkdownSyntaxError, match="nested deeper"):
        engine.parse_markdown(text)


def test_nesting_at_limit_is_allowed():
    depth = engine.MAX_BLOCK_DEPTH
    text = "\\panelBegin\n" * depth + "x\n" + "\\panelEnd\n" * depth

    tokens = engine.parse_markdown(text)

    assert tokens[0].meta["block"].type == "panel"


def test_get_engine_is_shared():
    assert engine.get_engine() is engine.get_engine()


def test_slugify_collapses_whitespace():
    assert engine.slugify("  Hello   World ") == "hello-world"
    assert engine.slugify("Tabs\tAnd\nLines") == "tabs-and-lines"
