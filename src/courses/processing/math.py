"""Math in web pages.

Inline math is written `$...$`, display math `$$...$$`. Before shortcodes are
expanded and markdown is converted, every expression outside of code is
replaced by an inert token; after conversion the tokens are replaced by the
rendered math. This keeps markdown from interpreting `_` and `*` in formulas.

Two renderers exist: the client-side renderer wraps the TeX source in
delimiters for KaTeX's auto-render script in the browser, the KaTeX renderer
precompiles each expression to HTML with the `katex` command line program.
"""

import asyncio
import html
import logging
import re
import secrets
from abc import ABC, abstractmethod

from attrs import frozen

from courses.errors import MathRenderError
from courses.infrastructure.services.subprocess_tools import (
    RetryConfig,
    SubprocessCrashError,
    SubprocessError,
    run_subprocess,
)
from courses.processing.markdown_scanner import split_code

logger = logging.getLogger(__name__)

DISPLAY_MATH_REGEX = re.compile(r"\$\$(.+?)\$\$", re.DOTALL)
INLINE_MATH_REGEX = re.compile(r"(?<![\\$])\$(?=\S)([^$\n]*?\S)\$(?![$\d])")
# Tokens carry a per-process random nonce; literal text never matches one
TOKEN_NONCE = secrets.token_hex(4)
TOKEN_REGEX = re.compile(rf"(<p>)?@@MATH-{TOKEN_NONCE}-(\d+)@@(</p>)?")


def math_token(index: int) -> str:
    return f"@@MATH-{TOKEN_NONCE}-{index}@@"


@frozen
class MathExpression:
    source: str
    display: bool


def protect_math(
    text: str, expressions: list[MathExpression] | None = None
) -> tuple[str, list[MathExpression]]:
    """Replace math outside of code by tokens.

    Returns the protected text and the expressions in token order. Passing
    the list returned by an earlier call numbers the new tokens after the
    existing ones, so several texts can share one list.
    """
    if expressions is None:
        expressions = []

    def replace(display: bool):
        def replacement(match: re.Match) -> str:
            expressions.append(MathExpression(match.group(1).strip(), display))
            return math_token(len(expressions) - 1)

        return replacement

    parts = []
    for segment, is_code in split_code(text):
        if not is_code:
            segment = DISPLAY_MATH_REGEX.sub(replace(True), segment)
            segment = INLINE_MATH_REGEX.sub(replace(False), segment)
        parts.append(segment)
    return "".join(parts), expressions


def restore_math(
    text: str, expressions: list[MathExpression], rendered: list[str]
) -> str:
    """Replace tokens by rendered math.

    A display expression that markdown wrapped into a paragraph of its own is
    unwrapped, since the rendered block may not appear inside `<p>`.
    """

    def replacement(match: re.Match) -> str:
        index = int(match.group(2))
        opening, closing = match.group(1) or "", match.group(3) or ""
        if opening and closing and expressions[index].display:
            return rendered[index]
        return f"{opening}{rendered[index]}{closing}"

    return TOKEN_REGEX.sub(replacement, text)


class MathRenderer(ABC):
    @abstractmethod
    async def render(self, expression: MathExpression) -> str: ...

    async def render_all(self, expressions: list[MathExpression]) -> list[str]:
        """Render all expressions; the first failure cancels the others."""
        tasks = [asyncio.ensure_future(self.render(e)) for e in expressions]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


class ClientSideMathRenderer(MathRenderer):
    """Leaves math for KaTeX's auto-render extension in the browser."""

    async def render(self, expression: MathExpression) -> str:
        source = html.escape(expression.source, quote=False)
        if expression.display:
            return f'<div class="math math-display">\\[{source}\\]</div>'
        return f'<span class="math math-inline">\\({source}\\)</span>'


class KatexMathRenderer(MathRenderer):
    """Precompiles math with the KaTeX command line program.

    Results are cached per expression and mode for the lifetime of the
    renderer, which is one build. At most `max_concurrency` KaTeX processes
    run at the same time across all documents, and each expression gets a
    single attempt: a timeout is a failure of the document.
    """

    def __init__(
        self, executable: str = "katex", timeout: float = 30.0, max_concurrency: int = 8
    ):
        self.executable = executable
        self.retry_config = RetryConfig(max_retries=1, base_timeout=timeout)
        self._slots = asyncio.Semaphore(max_concurrency)
        self._cache: dict[tuple[str, bool], str] = {}
        self.invocations = 0

    def command_for(self, expression: MathExpression) -> list[str]:
        if expression.display:
            return [self.executable, "--display-mode"]
        return [self.executable]

    async def render(self, expression: MathExpression) -> str:
        key = (expression.source, expression.display)
        if key in self._cache:
            return self._cache[key]

        self.invocations += 1
        try:
            async with self._slots:
                stdout, _ = await run_subprocess(
                    self.command_for(expression),
                    "katex",
                    input=expression.source.encode("utf-8"),
                    retry_config=self.retry_config,
                )
        except SubprocessCrashError as e:
            detail = e.stderr.decode("utf-8", errors="replace").strip()
            raise MathRenderError(
                f"Cannot render math {expression.source!r}: {detail or e.return_code}"
            ) from e
        except SubprocessError as e:
            raise MathRenderError(
                f"Cannot render math {expression.source!r}: {str(e).splitlines()[0]}"
            ) from e

        rendered = stdout.decode("utf-8").strip()
        if expression.display:
            rendered = f'<div class="math math-display">{rendered}</div>'
        self._cache[key] = rendered
        return rendered
