from courses.processing.markdown_scanner import code_ranges, find_fenced_blocks, split_code


def test_find_fenced_blocks():
    text = "Intro\n```python\nx = 1\n```\nMiddle\n~~~~\nraw\n~~~~\n"

    blocks = find_fenced_blocks(text)

    assert [block.language for block in blocks] == ["python", ""]
    assert text[blocks[0].body_start : blocks[0].body_end] == "x = 1\n"
    assert text[blocks[0].start : blocks[0].end] == "```python\nx = 1\n```\n"
    assert text[blocks[1].body_start : blocks[1].body_end] == "raw\n"


def test_closing_fence_must_be_at_least_as_long():
    text = "````\n```\ninner\n```\n````\n"

    blocks = find_fenced_blocks(text)

    assert len(blocks) == 1
    assert text[blocks[0].body_start : blocks[0].body_end] == "```\ninner\n```\n"


def test_unclosed_fence_runs_to_end():
    text = "```\nnever closed\n"

    (block,) = find_fenced_blocks(text)

    assert block.end == len(text)
    assert text[block.body_start : block.body_end] == "never closed\n"


def test_info_string_with_braces():
    (block,) = find_fenced_blocks("``` {.java}\nint x;\n```\n")

    assert block.language == "java"


def test_inline_code_spans():
    text = "Use `x` or ``a ` b`` here"

    spans = [text[start:end] for start, end in code_ranges(text)]

    assert spans == ["`x`", "``a ` b``"]


def test_unmatched_backtick_is_text():
    text = "A lone `` run and `code`"

    spans = [text[start:end] for start, end in code_ranges(text)]

    assert spans == ["`code`"]


def test_split_code_round_trips():
    text = "a `b` c\n```\nd\n```\ne"

    segments = split_code(text)

    assert "".join(segment for segment, _ in segments) == text
    assert [is_code for _, is_code in segments] == [False, True, False, True, False]


def test_indented_code_block():
    text = "Intro\n\n    $x$ {{ y() }}\n\n    more\nAfter $z$\n"

    spans = [text[start:end] for start, end in code_ranges(text)]

    assert spans == ["    $x$ {{ y() }}\n\n    more\n"]


def test_indented_line_continuing_a_paragraph_is_text():
    text = "A paragraph\n    continued with `code`\n"

    spans = [text[start:end] for start, end in code_ranges(text)]

    assert spans == ["`code`"]


def test_indented_list_content_is_text():
    text = "- item\n\n    more about $x$\n\nDone\n\n    code\n"

    spans = [text[start:end] for start, end in code_ranges(text)]

    assert spans == ["    code\n"]


def test_indented_line_after_fence_is_code():
    text = "```\na\n```\n    b\n"

    spans = [text[start:end] for start, end in code_ranges(text)]

    assert spans == ["```\na\n```\n", "    b\n"]
