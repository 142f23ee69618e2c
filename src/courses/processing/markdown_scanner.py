"""Locating code in markdown text.

Exercise markers are only honored inside fenced code blocks, while shortcodes
and math are only honored outside of fenced blocks, indented code blocks
and inline code spans. Both need the same view of where code starts and ends.
"""

import re

from attrs import frozen

FENCE_OPEN_REGEX = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})(?P<info>[^\n]*)$")
BACKTICK_RUN_REGEX = re.compile(r"`+")
LIST_ITEM_REGEX = re.compile(r"^ {0,3}(?:[-*+]|\d{1,9}[.)])(?:[ \t]|$)")


@frozen
class FencedBlock:
    start: int
    end: int
    body_start: int
    body_end: int
    info: str

    @property
    def language(self) -> str:
        words = self.info.strip().strip("{}").split()
        return words[0].lstrip(".") if words else ""


def _line_offsets(text: str) -> list[tuple[int, str]]:
    offsets = []
    position = 0
    for line in text.splitlines(keepends=True):
        offsets.append((position, line))
        position += len(line)
    return offsets


def _closes_fence(line: str, fence: str) -> bool:
    stripped = line.rstrip("\r\n")
    indent = len(stripped) - len(stripped.lstrip(" "))
    if indent > 3:
        return False
    candidate = stripped.strip()
    return len(candidate) >= len(fence) and set(candidate) == {fence[0]}


def find_fenced_blocks(text: str) -> list[FencedBlock]:
    """All fenced code blocks in `text`, in document order.

    A fence that is never closed extends to the end of the text.
    """
    blocks = []
    lines = _line_offsets(text)
    index = 0
    while index < len(lines):
        start, line = lines[index]
        match = FENCE_OPEN_REGEX.match(line.rstrip("\r\n"))
        if match is None or (
            match.group("fence")[0] == "`" and "`" in match.group("info")
        ):
            index += 1
            continue
        fence = match.group("fence")
        body_start = start + len(line)
        closing = index + 1
        while closing < len(lines) and not _closes_fence(lines[closing][1], fence):
            closing += 1
        if closing < len(lines):
            body_end, closing_line = lines[closing]
            end = body_end + len(closing_line)
        else:
            body_end = end = len(text)
        blocks.append(
            FencedBlock(
                start=start,
                end=end,
                body_start=body_start,
                body_end=body_end,
                info=match.group("info"),
            )
        )
        index = closing + 1
    return blocks


def _is_indented(line: str) -> bool:
    return line.startswith(("    ", "\t"))


def find_indented_blocks(
    text: str, fenced: list[FencedBlock] | None = None
) -> list[tuple[int, int]]:
    """Character ranges of indented code blocks, in document order.

    An indented block has to follow a blank line (or the start of the text or
    a fenced block), and indented lines that continue a list item are list
    content, not code. Blank lines inside a block belong to it.
    """
    if fenced is None:
        fenced = find_fenced_blocks(text)
    fences = iter(fenced)
    fence = next(fences, None)
    blocks = []
    block: list[int] | None = None
    after_blank = True
    in_list = False
    for offset, line in _line_offsets(text):
        while fence is not None and offset >= fence.end:
            fence = next(fences, None)
        if fence is not None and offset >= fence.start:
            if block is not None:
                blocks.append((block[0], block[1]))
                block = None
            after_blank = True
            continue
        if not line.strip():
            after_blank = True
            continue
        if _is_indented(line):
            if block is not None:
                block[1] = offset + len(line)
            elif after_blank and not in_list:
                block = [offset, offset + len(line)]
        else:
            if block is not None:
                blocks.append((block[0], block[1]))
                block = None
            starts_item = LIST_ITEM_REGEX.match(line) is not None
            in_list = starts_item or (in_list and not after_blank)
        after_blank = False
    if block is not None:
        blocks.append((block[0], block[1]))
    return blocks


def _find_code_spans(text: str, start: int, end: int) -> list[tuple[int, int]]:
    spans = []
    position = start
    while True:
        opening = BACKTICK_RUN_REGEX.search(text, position, end)
        if opening is None:
            return spans
        run_length = len(opening.group())
        search_from = opening.end()
        while True:
            closing = BACKTICK_RUN_REGEX.search(text, search_from, end)
            if closing is None or len(closing.group()) == run_length:
                break
            search_from = closing.end()
        if closing is None:
            # An unmatched backtick run is literal text
            position = opening.end()
            continue
        spans.append((opening.start(), closing.end()))
        position = closing.end()


def code_ranges(text: str) -> list[tuple[int, int]]:
    """Character ranges covered by code blocks and inline code spans."""
    fenced = find_fenced_blocks(text)
    blocks = sorted(
        [(block.start, block.end) for block in fenced] + find_indented_blocks(text, fenced)
    )
    ranges = []
    position = 0
    for start, end in blocks:
        ranges.extend(_find_code_spans(text, position, start))
        ranges.append((start, end))
        position = end
    ranges.extend(_find_code_spans(text, position, len(text)))
    return ranges


def split_code(text: str) -> list[tuple[str, bool]]:
    """Split `text` into (segment, is_code) pairs that concatenate to `text`."""
    segments = []
    position = 0
    for start, end in code_ranges(text):
        if start > position:
            segments.append((text[position:start], False))
        segments.append((text[start:end], True))
        position = end
    if position < len(text):
        segments.append((text[position:], False))
    return segments
