"""Expansion of shortcodes in document text.

Two forms are recognized outside of code spans and fenced code blocks:

    {{ image(src="cat.png", width=300) }}

    {% note(title="Remember") %}
    Body text, which may contain *markdown* and other shortcodes.
    {% end_note %}

Arguments are `key=value` pairs. Values are quoted strings (single or double
quotes, with backslash escapes) or bare words; bare `true`/`false` and numbers
are converted to booleans and numbers.

Each shortcode is rendered with the template of the same name from the
template set of the current target (`html` for web pages, `md` for sources).
"""

import logging
import re
from collections import Counter
from pathlib import Path
from typing import Any

from attrs import Factory, define, frozen
from jinja2 import TemplateError, TemplateSyntaxError, UndefinedError

from courses.core.document_config import DocumentConfig
from courses.errors import (
    MissingArgumentError,
    RenderError,
    ShortcodeSyntaxError,
)
from courses.processing.markdown_scanner import code_ranges
from courses.processing.templates import TemplateSet

logger = logging.getLogger(__name__)

OPENING_REGEX = re.compile(r"\{([{%])\s*([A-Za-z_][\w-]*)\s*\(")
END_TAG_REGEX = re.compile(r"\{%\s*end_([A-Za-z_][\w-]*)\s*%\}")
TAG_START_REGEX = re.compile(r"\{[{%]")
KEY_REGEX = re.compile(r"[A-Za-z_][\w-]*")
BARE_VALUE_REGEX = re.compile(r"[^\s,()\"']+")
INT_REGEX = re.compile(r"[-+]?\d+")
FLOAT_REGEX = re.compile(r"[-+]?(\d+\.\d*|\.\d+|\d+(\.\d*)?[eE][-+]?\d+)")
ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"', "'": "'"}
CLOSERS = {"{": "}}", "%": "%}"}


def convert_bare_value(value: str) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    if INT_REGEX.fullmatch(value):
        return int(value)
    if FLOAT_REGEX.fullmatch(value):
        return float(value)
    return value


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _parse_quoted(text: str, pos: int) -> tuple[str, int]:
    quote = text[pos]
    chars = []
    pos += 1
    while pos < len(text):
        char = text[pos]
        if char == "\\" and pos + 1 < len(text):
            chars.append(ESCAPES.get(text[pos + 1], "\\" + text[pos + 1]))
            pos += 2
        elif char == quote:
            return "".join(chars), pos + 1
        else:
            chars.append(char)
            pos += 1
    raise ShortcodeSyntaxError("Unterminated string in shortcode arguments")


def parse_arguments(text: str, pos: int = 0) -> tuple[dict[str, Any], int]:
    """Parse a shortcode argument list.

    `pos` points just behind the opening parenthesis. Returns the arguments
    and the position just behind the closing parenthesis.

    Raises:
        ShortcodeSyntaxError: If the argument list is malformed.
    """
    arguments: dict[str, Any] = {}
    while True:
        pos = _skip_whitespace(text, pos)
        if pos >= len(text):
            raise ShortcodeSyntaxError("Shortcode argument list is not closed")
        if text[pos] == ")":
            return arguments, pos + 1

        key_match = KEY_REGEX.match(text, pos)
        if key_match is None:
            raise ShortcodeSyntaxError(
                f"Expected an argument name, found {text[pos:pos + 10]!r}"
            )
        key = key_match.group()
        pos = _skip_whitespace(text, key_match.end())
        if pos >= len(text) or text[pos] != "=":
            raise ShortcodeSyntaxError(f"Argument '{key}' has no value")
        pos = _skip_whitespace(text, pos + 1)

        if pos < len(text) and text[pos] in "\"'":
            value, pos = _parse_quoted(text, pos)
        else:
            value_match = BARE_VALUE_REGEX.match(text, pos)
            if value_match is None:
                raise ShortcodeSyntaxError(f"Argument '{key}' has no value")
            value = convert_bare_value(value_match.group())
            pos = value_match.end()

        if key in arguments:
            raise ShortcodeSyntaxError(f"Argument '{key}' given more than once")
        arguments[key] = value

        pos = _skip_whitespace(text, pos)
        if pos < len(text) and text[pos] == ",":
            pos += 1
        elif pos >= len(text) or text[pos] != ")":
            raise ShortcodeSyntaxError("Expected ',' or ')' in shortcode arguments")


def _in_ranges(pos: int, ranges: list[tuple[int, int]]) -> tuple[int, int] | None:
    for start, end in ranges:
        if start <= pos < end:
            return start, end
    return None


@frozen
class Shortcode:
    name: str
    arguments: dict[str, Any]
    start: int
    end: int
    body: str | None = None

    @property
    def is_block(self) -> bool:
        return self.body is not None


def _parse_opening(text: str, pos: int) -> tuple[str, str, dict[str, Any], int] | None:
    """Parse `{{ name(...) }}` or `{% name(...) %}` starting at `pos`."""
    match = OPENING_REGEX.match(text, pos)
    if match is None:
        return None
    delimiter, name = match.group(1), match.group(2)
    arguments, end = parse_arguments(text, match.end())
    end = _skip_whitespace(text, end)
    closer = CLOSERS[delimiter]
    if not text.startswith(closer, end):
        raise ShortcodeSyntaxError(f"Shortcode '{name}' is not closed by '{closer}'")
    return delimiter, name, arguments, end + len(closer)


def _find_block_end(
    text: str, name: str, pos: int, ranges: list[tuple[int, int]]
) -> tuple[int, int]:
    depth = 1
    while True:
        match = TAG_START_REGEX.search(text, pos)
        if match is None:
            raise ShortcodeSyntaxError(f"Block shortcode '{name}' is never closed")
        code_range = _in_ranges(match.start(), ranges)
        if code_range is not None:
            pos = code_range[1]
            continue
        end_match = END_TAG_REGEX.match(text, match.start())
        if end_match is not None and end_match.group(1) == name:
            depth -= 1
            if depth == 0:
                return match.start(), end_match.end()
            pos = end_match.end()
            continue
        opening = OPENING_REGEX.match(text, match.start())
        if opening is not None and opening.group(1) == "%" and opening.group(2) == name:
            depth += 1
        pos = match.end()


def find_shortcodes(text: str) -> list[Shortcode]:
    """Top-level shortcodes in `text`; block bodies are returned unparsed."""
    ranges = code_ranges(text)
    shortcodes = []
    pos = 0
    while True:
        match = TAG_START_REGEX.search(text, pos)
        if match is None:
            return shortcodes
        start = match.start()
        code_range = _in_ranges(start, ranges)
        if code_range is not None:
            pos = code_range[1]
            continue

        end_match = END_TAG_REGEX.match(text, start)
        if end_match is not None:
            raise ShortcodeSyntaxError(
                f"'end_{end_match.group(1)}' without a matching opening shortcode"
            )

        opening = _parse_opening(text, start)
        if opening is None:
            pos = match.end()
            continue
        delimiter, name, arguments, end = opening
        if delimiter == "{":
            shortcodes.append(Shortcode(name, arguments, start, end))
            pos = end
            continue

        body_end, block_end = _find_block_end(text, name, end, ranges)
        shortcodes.append(
            Shortcode(name, arguments, start, block_end, body=text[end:body_end])
        )
        pos = block_end


@define
class ShortcodeRenderer:
    """Expands the shortcodes of one document for one target.

    The renderer numbers shortcodes per name in document order (`num` in the
    template context), so a new renderer is needed for each document.
    """

    templates: TemplateSet
    kind: str
    doc: DocumentConfig | None = None
    url_prefix: str = ""
    path: Path | None = None
    _counter: Counter = Factory(Counter)

    def render(self, text: str) -> str:
        try:
            return self._expand(text)
        except RenderError as e:
            if self.path is not None:
                e.with_path(self.path)
            raise

    def _expand(self, text: str) -> str:
        parts = []
        pos = 0
        for shortcode in find_shortcodes(text):
            parts.append(text[pos : shortcode.start])
            parts.append(self._render_shortcode(shortcode))
            pos = shortcode.end
        parts.append(text[pos:])
        return "".join(parts)

    def _render_shortcode(self, shortcode: Shortcode) -> str:
        try:
            template = self.templates.shortcode_template(self.kind, shortcode.name)
        except TemplateSyntaxError as e:
            raise RenderError(f"Shortcode '{shortcode.name}': {e}") from e
        self._counter[shortcode.name] += 1
        context = dict(shortcode.arguments)
        context.update(
            num=self._counter[shortcode.name],
            doc=self.doc,
            url_prefix=self.url_prefix,
        )
        if shortcode.is_block:
            context["body"] = self._expand(shortcode.body)
        logger.debug(f"Rendering {self.kind} shortcode '{shortcode.name}'")
        try:
            return template.render(**context)
        except UndefinedError as e:
            raise MissingArgumentError(shortcode.name, str(e)) from e
        except TemplateError as e:
            raise RenderError(f"Shortcode '{shortcode.name}': {e}") from e
