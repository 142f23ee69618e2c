from types import SimpleNamespace

import nbformat
import pytest

from courses.processing.math import MathExpression, math_token
from courses.processing.shortcodes import ShortcodeRenderer
from courses.processing.templates import TemplateSet
from courses.processing.web_renderer import (
    markdown_fragment,
    notebook_fragment,
    render_code_cell,
    render_output,
    render_page,
)

from conftest import write_project


@pytest.fixture
def templates(tmp_path):
    write_project(
        tmp_path / "templates",
        {"shortcodes/html/badge.html": '<span class="badge">{{ text }}</span>'},
    )
    return TemplateSet.load(tmp_path / "templates")


@pytest.fixture
def shortcodes(templates):
    return ShortcodeRenderer(templates=templates, kind="html")


def test_markdown_fragment(shortcodes):
    expressions: list[MathExpression] = []

    html = markdown_fragment(
        '# Title\n\nText with $a_1 * b_2$ and {{ badge(text="new") }}.\n', shortcodes, expressions
    )

    assert '<h1 id="title">Title</h1>' in html
    assert '<span class="badge">new</span>' in html
    assert math_token(0) in html
    assert expressions == [MathExpression("a_1 * b_2", False)]


def test_markdown_tables_and_fenced_code(shortcodes):
    html = markdown_fragment(
        "| a | b |\n|---|---|\n| 1 | 2 |\n\n```python\nx = {{ y }}\n```\n", shortcodes, []
    )

    assert "<table>" in html
    assert '<div class="highlight">' in html
    assert "y" in html


def test_fenced_code_is_highlighted(shortcodes):
    html = markdown_fragment("```python\ndef f(x):\n    return x\n```\n", shortcodes, [])

    assert '<div class="highlight">' in html
    assert '<span class="k">def</span>' in html
    assert '<span class="nf">f</span>' in html


class TestRenderOutput:
    def test_stream(self):
        output = nbformat.v4.new_output("stream", name="stderr", text="a < b\n")

        assert render_output(output) == (
            '<pre class="output output-stream output-stderr">a &lt; b\n</pre>'
        )

    def test_error(self):
        output = nbformat.v4.new_output(
            "error", ename="ValueError", evalue="bad", traceback=["..."]
        )

        assert render_output(output) == '<pre class="output output-error">ValueError: bad</pre>'

    def test_html_is_preferred_over_text(self):
        output = nbformat.v4.new_output(
            "execute_result",
            data={"text/html": "<b>1</b>", "text/plain": "1"},
            execution_count=1,
        )

        assert render_output(output) == '<div class="output output-html"><b>1</b></div>'

    def test_png_becomes_data_uri(self):
        output = nbformat.v4.new_output("display_data", data={"image/png": "iVBOR\nw0K"})

        assert 'src="data:image/png;base64,iVBORw0K"' in render_output(output)

    def test_plain_text_is_escaped(self):
        output = nbformat.v4.new_output(
            "execute_result", data={"text/plain": "<object>"}, execution_count=1
        )

        assert render_output(output) == '<pre class="output output-text">&lt;object&gt;</pre>'

    def test_unknown_mime_type_is_skipped(self):
        output = nbformat.v4.new_output("display_data", data={"application/x-custom": "{}"})

        assert render_output(output) == ""


def test_code_cell_without_outputs():
    cell = nbformat.v4.new_code_cell("if a < b:\n    pass")
    cell.outputs = [nbformat.v4.new_output("stream", name="stdout", text="out")]

    html = render_code_cell(cell, "python", show_outputs=False)

    assert html.startswith('<div class="cell code-cell language-python">')
    assert '<div class="highlight">' in html
    assert '<span class="k">if</span>' in html
    assert "&lt;" in html
    assert "output" not in html


def test_code_cell_in_unknown_language_is_plain_text():
    cell = nbformat.v4.new_code_cell("a < b")

    html = render_code_cell(cell, "no-such-language", show_outputs=False)

    assert '<div class="highlight">' in html
    assert "a &lt; b" in html


def test_notebook_fragment(shortcodes):
    code = nbformat.v4.new_code_cell("print(1)")
    code.outputs = [nbformat.v4.new_output("stream", name="stdout", text="1\n")]
    nb = nbformat.v4.new_notebook(
        cells=[
            nbformat.v4.new_markdown_cell("Some *math*: $x$"),
            code,
            nbformat.v4.new_raw_cell("raw cells are not shown"),
        ]
    )
    expressions: list[MathExpression] = []

    html = notebook_fragment(nb, shortcodes, expressions, "python", show_outputs=True)

    assert '<div class="cell markdown-cell">' in html
    assert "<em>math</em>" in html
    assert '<pre class="output output-stream output-stdout">1\n</pre>' in html
    assert "raw cells" not in html
    assert expressions == [MathExpression("x", False)]


def test_render_page_uses_default_layout():
    templates = TemplateSet.load(None)
    context = {
        "title": "Lists",
        "doc": None,
        "node": SimpleNamespace(kind=SimpleNamespace(value="section")),
        "project_title": "Course",
        "navigation": (),
        "breadcrumbs": (),
        "previous_page": None,
        "next_page": None,
        "url_prefix": "/c",
        "hide_sidebar": True,
        "katex_output": True,
        "profile": "release",
    }

    page = render_page(templates, "<p>Body</p>", context)

    assert "<title>Lists | Course</title>" in page
    assert "<p>Body</p>" in page
    assert 'href="/c/resources/styles.css"' in page
    assert "auto-render" not in page
    assert 'class="sidebar"' not in page
    assert ".highlight .k" in page


def test_render_page_escapes_titles():
    templates = TemplateSet.load(None)
    section = SimpleNamespace(url="/c/list.html", title="List<T> & Map<K, V>")
    context = {
        "title": "List<T> & Map<K, V>",
        "doc": None,
        "node": SimpleNamespace(kind=SimpleNamespace(value="section")),
        "project_title": "<script>alert(1)</script>",
        "navigation": (
            SimpleNamespace(
                kind="section", active=True, url=section.url, title=section.title, children=()
            ),
        ),
        "breadcrumbs": (section,),
        "previous_page": section,
        "next_page": None,
        "url_prefix": "/c",
        "hide_sidebar": False,
        "katex_output": False,
        "profile": "dev",
    }

    page = render_page(templates, "<p>Body</p>", context)

    assert "<h1>List&lt;T&gt; &amp; Map&lt;K, V&gt;</h1>" in page
    assert "<script>alert(1)</script>" not in page
    assert "&lt;script&gt;" in page
    assert "List<T>" not in page
    assert "<p>Body</p>" in page
