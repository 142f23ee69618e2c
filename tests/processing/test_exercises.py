"""Tests for splitting exercise code into solutions and placeholders."""

import nbformat
import pytest

from courses.errors import TransformError, UnbalancedMarkerError
from courses.processing.exercises import ExerciseMode, ExerciseTransformer

SOLUTION_ONLY = """\
def mean(values):
    #| solution
    total = sum(values)
    return total / len(values)
    #| end
"""

WITH_PLACEHOLDER = """\
def mean(values):
    #| solution
    return sum(values) / len(values)
    #| placeholder
    return 0  # replace this
    #| end
print(mean([1, 2]))
"""

solution = ExerciseTransformer(ExerciseMode.SOLUTION)
placeholder = ExerciseTransformer(ExerciseMode.PLACEHOLDER)


class TestTransformCode:
    def test_solution_mode_keeps_solution(self):
        assert solution.transform_code(SOLUTION_ONLY) == (
            "def mean(values):\n"
            "    total = sum(values)\n"
            "    return total / len(values)\n"
        )

    def test_placeholder_mode_uses_stub(self):
        assert placeholder.transform_code(SOLUTION_ONLY) == "def mean(values):\n    ...\n"

    def test_placeholder_section(self):
        assert placeholder.transform_code(WITH_PLACEHOLDER) == (
            "def mean(values):\n"
            "    return 0  # replace this\n"
            "print(mean([1, 2]))\n"
        )

    def test_solution_mode_drops_placeholder_section(self):
        assert solution.transform_code(WITH_PLACEHOLDER) == (
            "def mean(values):\n"
            "    return sum(values) / len(values)\n"
            "print(mean([1, 2]))\n"
        )

    def test_placeholder_first(self):
        code = "#| placeholder\nx = ...\n#| solution\nx = 42\n#| end\n"

        assert placeholder.transform_code(code) == "x = ...\n"
        assert solution.transform_code(code) == "x = 42\n"

    def test_stub_takes_indentation_of_solution(self):
        code = "if True:\n#| solution\n        deep = 1\n#| end\n"

        assert placeholder.transform_code(code) == "if True:\n        ...\n"

    def test_c_style_markers(self):
        code = "int f() {\n  //| solution\n  return 1;\n  //| end\n}"

        assert placeholder.transform_code(code) == "int f() {\n  ...\n}"

    def test_missing_final_newline_is_preserved(self):
        code = "x = 1\n#| solution\ny = 2\n#| end"

        assert solution.transform_code(code) == "x = 1\ny = 2"

    def test_code_without_markers_is_unchanged(self):
        code = "# | solution is not a marker\nx = '#| end'\n"

        assert placeholder.transform_code(code) == code

    def test_multiple_regions(self):
        code = "#| solution\na = 1\n#| end\nb = 2\n#| solution\nc = 3\n#| end\n"

        assert placeholder.transform_code(code) == "...\nb = 2\n...\n"

    @pytest.mark.parametrize("code", [SOLUTION_ONLY, WITH_PLACEHOLDER])
    @pytest.mark.parametrize("transformer", [solution, placeholder])
    def test_transformation_is_idempotent(self, code, transformer):
        once = transformer.transform_code(code)

        assert transformer.transform_code(once) == once

    def test_disabled_transformer_passes_markers_through(self):
        transformer = ExerciseTransformer(ExerciseMode.PLACEHOLDER, enabled=False)

        assert transformer.transform_code(SOLUTION_ONLY) == SOLUTION_ONLY
        assert transformer.transform_code("#| end\n") == "#| end\n"


class TestUnbalancedMarkers:
    def test_end_without_region(self):
        with pytest.raises(UnbalancedMarkerError) as exc_info:
            solution.transform_code("x = 1\n#| end\n")

        assert exc_info.value.line == 2
        assert isinstance(exc_info.value, TransformError)

    def test_unclosed_region(self):
        with pytest.raises(UnbalancedMarkerError) as exc_info:
            placeholder.transform_code("x = 1\n#| solution\ny = 2\n")

        assert exc_info.value.line == 2

    def test_nested_solution(self):
        with pytest.raises(UnbalancedMarkerError) as exc_info:
            solution.transform_code("#| solution\n#| solution\n#| end\n")

        assert exc_info.value.line == 2

    def test_second_switch(self):
        code = "#| solution\na\n#| placeholder\nb\n#| solution\nc\n#| end\n"

        with pytest.raises(UnbalancedMarkerError) as exc_info:
            solution.transform_code(code)

        assert exc_info.value.line == 5

    def test_error_carries_document_path(self, tmp_path):
        transformer = ExerciseTransformer(ExerciseMode.SOLUTION, path=tmp_path / "doc.md")

        with pytest.raises(UnbalancedMarkerError) as exc_info:
            transformer.transform_code("#| end\n")

        assert exc_info.value.path == tmp_path / "doc.md"


class TestTransformMarkdown:
    def test_only_fenced_code_is_transformed(self):
        text = (
            "Write `#| solution` on a line of its own.\n"
            "\n"
            "```python\n"
            "#| solution\n"
            "answer = 42\n"
            "#| end\n"
            "```\n"
            "\n"
            "#| end\n"
        )

        assert placeholder.transform_markdown(text) == (
            "Write `#| solution` on a line of its own.\n"
            "\n"
            "```python\n"
            "...\n"
            "```\n"
            "\n"
            "#| end\n"
        )

    def test_line_numbers_refer_to_the_document(self):
        text = "# Title\n\nText\n\n```python\nx = 1\n#| end\n```\n"

        with pytest.raises(UnbalancedMarkerError) as exc_info:
            solution.transform_markdown(text)

        assert exc_info.value.line == 7

    def test_tilde_fences(self):
        text = "~~~\n#| solution\nx = 1\n#| end\n~~~\n"

        assert placeholder.transform_markdown(text) == "~~~\n...\n~~~\n"

    def test_disabled(self):
        transformer = ExerciseTransformer(ExerciseMode.PLACEHOLDER, enabled=False)
        text = "```python\n#| solution\nx = 1\n#| end\n```\n"

        assert transformer.transform_markdown(text) == text


class TestTransformNotebook:
    def make_notebook(self):
        code = nbformat.v4.new_code_cell(
            "#| solution\nx = 42\n#| end\nprint(x)", execution_count=1
        )
        code.outputs = [nbformat.v4.new_output("stream", name="stdout", text="42\n")]
        untouched = nbformat.v4.new_code_cell("print('hi')", execution_count=2)
        untouched.outputs = [nbformat.v4.new_output("stream", name="stdout", text="hi\n")]
        markdown = nbformat.v4.new_markdown_cell("```python\n#| solution\ny = 1\n#| end\n```")
        return nbformat.v4.new_notebook(cells=[markdown, code, untouched])

    def test_placeholder_clears_outputs_of_changed_cells(self):
        nb = placeholder.transform_notebook(self.make_notebook())

        markdown, code, untouched = nb.cells
        assert markdown.source == "```python\n...\n```"
        assert code.source == "...\nprint(x)"
        assert code.outputs == []
        assert code.execution_count is None
        assert untouched.outputs[0].text == "hi\n"
        assert untouched.execution_count == 2

    def test_solution_changes_only_markers(self):
        nb = solution.transform_notebook(self.make_notebook())

        assert nb.cells[1].source == "x = 42\nprint(x)"

    def test_errors_name_the_cell(self):
        nb = nbformat.v4.new_notebook(
            cells=[nbformat.v4.new_code_cell("x = 1"), nbformat.v4.new_code_cell("#| end")]
        )

        with pytest.raises(UnbalancedMarkerError, match="cell 2"):
            solution.transform_notebook(nb)
