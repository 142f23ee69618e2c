"""HTML rendering of documents for the web target.

Markdown documents are converted as a whole; notebooks are rendered cell by
cell into a sequence of `<div class="cell ...">` blocks. The resulting
fragment is placed into the page layout by `render_page`.
"""

import html
import logging
from typing import Any

from nbformat import NotebookNode

from courses.processing.markdown_html import (
    highlight_code,
    highlight_stylesheet,
    markdown_to_html,
)
from courses.processing.math import MathExpression, protect_math
from courses.processing.shortcodes import ShortcodeRenderer
from courses.processing.templates import TemplateSet

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = ("image/png", "image/jpeg", "image/gif")


def markdown_fragment(
    text: str, shortcodes: ShortcodeRenderer, expressions: list[MathExpression]
) -> str:
    """Convert markdown text to HTML with math left as tokens."""
    protected, _ = protect_math(text, expressions)
    return markdown_to_html(shortcodes.render(protected))


def _joined(value: Any) -> str:
    if isinstance(value, list):
        return "".join(value)
    return str(value)


def render_output(output: NotebookNode) -> str:
    output_type = output.get("output_type")
    if output_type == "stream":
        name = output.get("name", "stdout")
        text = html.escape(_joined(output.get("text", "")))
        return f'<pre class="output output-stream output-{name}">{text}</pre>'

    if output_type == "error":
        text = html.escape(f"{output.get('ename', 'Error')}: {output.get('evalue', '')}")
        return f'<pre class="output output-error">{text}</pre>'

    data = output.get("data", {})
    if "text/html" in data:
        return f'<div class="output output-html">{_joined(data["text/html"])}</div>'
    if "image/svg+xml" in data:
        return f'<div class="output output-image">{_joined(data["image/svg+xml"])}</div>'
    for mime_type in IMAGE_MIME_TYPES:
        if mime_type in data:
            payload = _joined(data[mime_type]).replace("\n", "")
            return (
                f'<div class="output output-image">'
                f'<img src="data:{mime_type};base64,{payload}" alt=""></div>'
            )
    if "text/plain" in data:
        text = html.escape(_joined(data["text/plain"]))
        return f'<pre class="output output-text">{text}</pre>'
    logger.debug(f"Skipping output with MIME types {sorted(data)}")
    return ""


def render_code_cell(cell: NotebookNode, language: str, show_outputs: bool) -> str:
    parts = [
        f'<div class="cell code-cell language-{html.escape(language)}">',
        highlight_code(_joined(cell.get("source", "")), language).rstrip("\n"),
    ]
    if show_outputs:
        parts.extend(
            rendered
            for rendered in (render_output(output) for output in cell.get("outputs", []))
            if rendered
        )
    parts.append("</div>")
    return "\n".join(parts)


def notebook_fragment(
    nb: NotebookNode,
    shortcodes: ShortcodeRenderer,
    expressions: list[MathExpression],
    language: str,
    show_outputs: bool,
) -> str:
    """Render notebook cells to HTML with math left as tokens."""
    parts = []
    for cell in nb.cells:
        if cell.cell_type == "markdown":
            body = markdown_fragment(_joined(cell.source), shortcodes, expressions)
            parts.append(f'<div class="cell markdown-cell">\n{body}\n</div>')
        elif cell.cell_type == "code":
            parts.append(render_code_cell(cell, language, show_outputs))
    return "\n".join(parts)


def render_page(templates: TemplateSet, content: str, context: dict[str, Any]) -> str:
    """Place an HTML fragment into the page layout."""
    return templates.layout().render(
        content=content, highlight_css=highlight_stylesheet(), **context
    )
