import nbformat
import pytest

from courses.core.source_document import (
    SourceDocument,
    split_frontmatter,
    split_notebook_config,
)
from courses.errors import DocumentLoadError
from courses.infrastructure.utils.path_utils import SourceFormat

from conftest import new_notebook


class TestSplitFrontmatter:
    def test_frontmatter_is_split_from_body(self):
        frontmatter, body = split_frontmatter("---\ntitle: A\n---\nBody text\n")

        assert frontmatter == "title: A\n"
        assert body == "Body text\n"

    def test_dots_end_frontmatter(self):
        frontmatter, body = split_frontmatter("---\ntitle: A\n...\nBody\n")

        assert frontmatter == "title: A\n"
        assert body == "Body\n"

    def test_no_frontmatter(self):
        assert split_frontmatter("# Heading\n") == (None, "# Heading\n")

    def test_horizontal_rule_later_in_text_is_not_frontmatter(self):
        text = "Intro\n\n---\n\nMore\n"

        assert split_frontmatter(text) == (None, text)

    def test_unterminated_frontmatter(self, tmp_path):
        with pytest.raises(DocumentLoadError):
            split_frontmatter("---\ntitle: A\nBody\n", tmp_path / "doc.md")


class TestSplitNotebookConfig:
    def test_raw_cell_with_delimiters(self):
        nb = new_notebook([nbformat.v4.new_code_cell("x = 1")], {"title": "Nb"})

        config, stripped = split_notebook_config(nb)

        assert config == "title: Nb\n"
        assert len(stripped.cells) == 1
        assert stripped.cells[0].cell_type == "code"
        assert len(nb.cells) == 2

    def test_raw_cell_without_delimiters(self):
        nb = new_notebook(
            [nbformat.v4.new_raw_cell("title: Plain"), nbformat.v4.new_markdown_cell("Hi")]
        )

        config, stripped = split_notebook_config(nb)

        assert config == "title: Plain"
        assert [cell.cell_type for cell in stripped.cells] == ["markdown"]

    def test_notebook_without_raw_cell(self):
        nb = new_notebook([nbformat.v4.new_markdown_cell("Hi")])

        config, stripped = split_notebook_config(nb)

        assert config is None
        assert stripped is nb


class TestSourceDocument:
    def test_load_markdown(self, tmp_path):
        path = tmp_path / "doc.md"
        path.write_text("---\ntitle: Doc\n---\n# Heading\n", encoding="utf-8")

        document = SourceDocument.load(path)

        assert document.format == SourceFormat.MARKDOWN
        assert document.raw_config == "title: Doc\n"
        assert document.text == "# Heading\n"
        assert not document.is_notebook
        assert document.language == "python"

    def test_load_notebook(self, tmp_path):
        path = tmp_path / "doc.ipynb"
        nb = new_notebook([nbformat.v4.new_code_cell("x = 1")], {"title": "Nb"})
        nb.metadata["language_info"] = {"name": "java"}
        path.write_text(nbformat.writes(nb), encoding="utf-8")

        document = SourceDocument.load(path)

        assert document.is_notebook
        assert document.raw_config == "title: Nb\n"
        assert [cell.source for cell in document.notebook.cells] == ["x = 1"]
        assert document.language == "java"

    def test_notebook_copy_is_independent(self, tmp_path):
        path = tmp_path / "doc.ipynb"
        nb = new_notebook([nbformat.v4.new_code_cell("x = 1")], {"title": "Nb"})
        path.write_text(nbformat.writes(nb), encoding="utf-8")
        document = SourceDocument.load(path)

        copy = document.notebook_copy()
        copy.cells[0].source = "changed"

        assert document.notebook.cells[0].source == "x = 1"

    def test_invalid_notebook(self, tmp_path):
        path = tmp_path / "broken.ipynb"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(DocumentLoadError) as exc_info:
            SourceDocument.load(path)
        assert exc_info.value.path == path

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "script.py"
        path.write_text("print(1)\n")

        with pytest.raises(DocumentLoadError):
            SourceDocument.load(path)
