from functools import cache

import markdown
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

HIGHLIGHT_CSS_CLASS = "highlight"

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "toc", "codehilite"]
MARKDOWN_EXTENSION_CONFIGS = {
    "codehilite": {
        "css_class": HIGHLIGHT_CSS_CLASS,
        "guess_lang": False,
    }
}


def markdown_to_html(text: str) -> str:
    """Convert markdown text to an HTML fragment with highlighted code blocks."""
    return markdown.markdown(
        text,
        extensions=MARKDOWN_EXTENSIONS,
        extension_configs=MARKDOWN_EXTENSION_CONFIGS,
        output_format="html",
    )


def highlight_code(source: str, language: str) -> str:
    """Highlight `source` as HTML; unknown languages are shown as plain text."""
    try:
        lexer = get_lexer_by_name(language)
    except ClassNotFound:
        lexer = TextLexer()
    return highlight(source, lexer, HtmlFormatter(cssclass=HIGHLIGHT_CSS_CLASS))


@cache
def highlight_stylesheet() -> str:
    """CSS rules for the classes emitted by `highlight_code` and codehilite."""
    return HtmlFormatter(cssclass=HIGHLIGHT_CSS_CLASS).get_style_defs(f".{HIGHLIGHT_CSS_CLASS}")
