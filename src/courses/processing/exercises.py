"""Splitting exercise code into solution and placeholder variants.

Exercise regions are delimited by marker lines inside code:

    def mean(values):
        #| solution
        return sum(values) / len(values)
        #| placeholder
        return 0
        #| end

`//|` may be used instead of `#|` for languages without `#` comments. A region
starts with `solution` or `placeholder`, may switch once to the other section,
and is closed by `end`. Marker lines never appear in the transformed code. If
a region has no placeholder section, the placeholder variant is a single
`...` line indented like the solution.

The transformation output contains no markers, so transforming it again does
not change it.
"""

import logging
import re
from enum import Enum
from pathlib import Path

from attrs import field, frozen
from nbformat import NotebookNode

from courses.errors import UnbalancedMarkerError
from courses.processing.markdown_scanner import find_fenced_blocks

logger = logging.getLogger(__name__)

MARKER_REGEX = re.compile(
    r"^(?P<indent>[ \t]*)(?:#|//)\|[ \t]*(?P<marker>solution|placeholder|end)[ \t]*$"
)
SOLUTION = "solution"
PLACEHOLDER = "placeholder"
END = "end"
STUB = "..."


class ExerciseMode(Enum):
    SOLUTION = SOLUTION
    PLACEHOLDER = PLACEHOLDER


def _indentation(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


class _Region:
    def __init__(self, section: str, line: int, indent: str):
        self.section = section
        self.start_line = line
        self.indent = indent
        self.seen = {section}
        self.lines: dict[str, list[str]] = {SOLUTION: [], PLACEHOLDER: []}

    def switch_to(self, section: str, line: int, where: str):
        if section in self.seen:
            raise UnbalancedMarkerError(
                f"Duplicate '{section}' marker in region opened at line "
                f"{self.start_line}{where}",
                line,
            )
        self.section = section
        self.seen.add(section)

    def emit(self, mode: ExerciseMode) -> list[str]:
        if mode is ExerciseMode.SOLUTION:
            return self.lines[SOLUTION]
        if PLACEHOLDER in self.seen:
            return self.lines[PLACEHOLDER]
        indent = self.indent
        for line in self.lines[SOLUTION]:
            if line.strip():
                indent = _indentation(line)
                break
        return [f"{indent}{STUB}\n"]


@frozen
class ExerciseTransformer:
    """Rewrites exercise regions for one output variant.

    When `enabled` is False (a document with `code_split: false`) all code is
    passed through unchanged, markers included.
    """

    mode: ExerciseMode
    enabled: bool = True
    path: Path | None = field(default=None, eq=False)

    def transform_code(self, code: str, first_line: int = 1, where: str = "") -> str:
        if not self.enabled:
            return code
        try:
            return self._transform_lines(code, first_line, where)
        except UnbalancedMarkerError as e:
            if self.path is not None:
                e.with_path(self.path)
            raise

    def _transform_lines(self, code: str, first_line: int, where: str) -> str:
        output: list[str] = []
        region: _Region | None = None
        lines = code.splitlines(keepends=True)

        for offset, line in enumerate(lines):
            line_number = first_line + offset
            match = MARKER_REGEX.match(line.rstrip("\r\n"))
            if match is None:
                if region is None:
                    output.append(line)
                else:
                    region.lines[region.section].append(line)
                continue

            marker = match.group("marker")
            if marker == END:
                if region is None:
                    raise UnbalancedMarkerError(
                        f"'end' marker without an open region{where}", line_number
                    )
                output.extend(region.emit(self.mode))
                region = None
            elif region is None:
                region = _Region(marker, line_number, match.group("indent"))
            else:
                region.switch_to(marker, line_number, where)

        if region is not None:
            raise UnbalancedMarkerError(
                f"Region '{region.section}' is never closed{where}",
                region.start_line,
            )

        result = "".join(output)
        if code and not code.endswith("\n") and result.endswith("\n"):
            result = result[:-1]
        return result

    def transform_markdown(self, text: str, where: str = "") -> str:
        """Transform the fenced code blocks in markdown text."""
        if not self.enabled:
            return text
        parts = []
        position = 0
        for block in find_fenced_blocks(text):
            body = text[block.body_start : block.body_end]
            first_line = text.count("\n", 0, block.body_start) + 1
            parts.append(text[position : block.body_start])
            parts.append(self.transform_code(body, first_line, where))
            position = block.body_end
        parts.append(text[position:])
        return "".join(parts)

    def transform_notebook(self, nb: NotebookNode) -> NotebookNode:
        """Transform code cells and fenced code in markdown cells in place.

        Code cells whose source changes lose their outputs and execution
        count, since those belong to the original code.
        """
        if not self.enabled:
            return nb
        for index, cell in enumerate(nb.cells, 1):
            source = cell.get("source", "")
            if cell.cell_type == "code":
                transformed = self.transform_code(source, where=f" in cell {index}")
                if transformed != source:
                    cell.source = transformed
                    cell.outputs = []
                    cell.execution_count = None
            elif cell.cell_type == "markdown":
                cell.source = self.transform_markdown(source, where=f" in cell {index}")
        return nb
