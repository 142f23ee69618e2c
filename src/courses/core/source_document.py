"""Loading of markdown and notebook sources.

A loaded document is split into its configuration block and its body. The
configuration block is YAML frontmatter for markdown files and a leading raw
cell for notebooks; it never appears in any output.
"""

import copy
import logging
from pathlib import Path

import nbformat
from attrs import field, frozen
from nbformat import NotebookNode

from courses.errors import DocumentLoadError
from courses.infrastructure.utils.path_utils import SourceFormat, source_format_for

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---"
FRONTMATTER_END_DELIMITERS = ("---", "...")


def split_frontmatter(text: str, path: Path | None = None) -> tuple[str | None, str]:
    """Split markdown text into (frontmatter, body).

    Returns None as frontmatter if the text does not start with `---`.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return None, text
    for index, line in enumerate(lines[1:], 1):
        if line.strip() in FRONTMATTER_END_DELIMITERS:
            return "".join(lines[1:index]), "".join(lines[index + 1 :])
    raise DocumentLoadError("Frontmatter is not terminated by '---'", path)


def split_notebook_config(nb: NotebookNode) -> tuple[str | None, NotebookNode]:
    """Remove the leading raw config cell from a notebook, if there is one."""
    cells = nb.get("cells", [])
    if not cells or cells[0].get("cell_type") != "raw":
        return None, nb
    source = cells[0].get("source", "")
    if isinstance(source, list):
        source = "".join(source)
    frontmatter, rest = split_frontmatter(source)
    config_text = frontmatter if frontmatter is not None else source
    if frontmatter is not None and rest.strip():
        logger.warning("Ignoring text after the config block in the raw config cell")
    stripped = copy.deepcopy(nb)
    stripped.cells = cells[1:]
    return config_text, stripped


@frozen
class SourceDocument:
    path: Path
    format: SourceFormat
    raw_config: str | None
    text: str | None = None
    notebook: NotebookNode | None = field(default=None, eq=False, repr=False)

    @classmethod
    def load(cls, path: Path) -> "SourceDocument":
        format_ = source_format_for(path)
        if format_ is None:
            raise DocumentLoadError("Not a markdown or notebook file", path)
        try:
            contents = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentLoadError(f"Cannot read document: {e}", path) from e

        if format_ == SourceFormat.MARKDOWN:
            raw_config, body = split_frontmatter(contents, path)
            return cls(path=path, format=format_, raw_config=raw_config, text=body)

        try:
            nb = nbformat.reads(contents, as_version=4)
        except Exception as e:
            raise DocumentLoadError(f"Invalid notebook: {e}", path) from e
        raw_config, nb = split_notebook_config(nb)
        return cls(path=path, format=format_, raw_config=raw_config, notebook=nb)

    @property
    def is_notebook(self) -> bool:
        return self.format == SourceFormat.NOTEBOOK

    def notebook_copy(self) -> NotebookNode:
        """A private copy of the notebook that callers may modify."""
        assert self.notebook is not None
        return copy.deepcopy(self.notebook)

    @property
    def language(self) -> str:
        if self.notebook is None:
            return "python"
        metadata = self.notebook.get("metadata", {})
        language = metadata.get("language_info", {}).get("name")
        if not language:
            language = metadata.get("kernelspec", {}).get("language")
        return language or "python"
