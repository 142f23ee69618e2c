"""Pytest configuration and fixtures.

Most tests build small course projects below `tmp_path`. `write_project`
creates the files of a project from a mapping of relative paths to contents;
`markdown_doc` and `notebook_doc` produce documents with a config block.

Environment variables:
- COURSES_ENABLE_TEST_LOGGING: Enable live logging for all tests
- COURSES_TEST_LOG_LEVEL: Log level for live logging (default: INFO)
"""

import logging
import os
from pathlib import Path

import nbformat
import pytest
import yaml
from attrs import Factory, define
from nbformat import NotebookNode

from courses.infrastructure.backend import Backend

EXERCISE_BODY = """\
Compute the mean of a list.

```python
def mean(values):
    #| solution
    return sum(values) / len(values)
    #| end
```
"""

NOTEBOOK_EXERCISE_SOURCE = """\
def square(x):
    #| solution
    return x * x
    #| placeholder
    return 0
    #| end"""

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


def write_project(root: Path, files: dict[str, str | bytes]) -> Path:
    for relative_path, contents in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(contents, bytes):
            path.write_bytes(contents)
        else:
            path.write_text(contents, encoding="utf-8")
    return root


def markdown_doc(title: str | None, body: str = "", **config) -> str:
    data = dict(config)
    if title is not None:
        data = {"title": title, **data}
    return f"---\n{yaml.safe_dump(data, sort_keys=False)}---\n{body}"


def new_notebook(cells: list[NotebookNode], config: dict | None = None) -> NotebookNode:
    if config is not None:
        raw = f"---\n{yaml.safe_dump(config, sort_keys=False)}---"
        cells = [nbformat.v4.new_raw_cell(raw), *cells]
    return nbformat.v4.new_notebook(
        cells=cells,
        metadata={
            "kernelspec": {"name": "python3", "display_name": "Python 3", "language": "python"},
            "language_info": {"name": "python"},
        },
    )


def notebook_doc(title: str, cells: list[NotebookNode], **config) -> str:
    return nbformat.writes(new_notebook(cells, {"title": title, **config}))


def exercise_notebook() -> str:
    code = nbformat.v4.new_code_cell(NOTEBOOK_EXERCISE_SOURCE, execution_count=3)
    code.outputs = [nbformat.v4.new_output("stream", name="stdout", text="done\n")]
    return notebook_doc(
        "Squares",
        [
            nbformat.v4.new_markdown_cell("Square a number: $x^2$"),
            code,
            nbformat.v4.new_code_cell("print(square(3))"),
        ],
    )


SAMPLE_PROJECT = {
    "config.yml": "url_prefix: /course\n",
    "content/index.md": markdown_doc("My Course", "Welcome to the course.\n"),
    "content/part-a/index.md": markdown_doc("Part A", "The first part.\n"),
    "content/part-a/chapter1/index.md": markdown_doc("Chapter 1", "Intro.\n"),
    "content/part-a/chapter1/01-basics.md": markdown_doc(
        "Basics", 'Inline math $x^2$ here.\n\n{{ note(text="Careful") }}\n'
    ),
    "content/part-a/chapter1/02-exercise.md": markdown_doc("Exercise", EXERCISE_BODY),
    "content/part-a/chapter2/index.md": markdown_doc("Chapter 2"),
    "content/part-a/chapter2/myscript.py": "print('hello')\n",
    "content/part-a/chapter2/squares.ipynb": exercise_notebook(),
    "content/images/logo.png": PNG_BYTES,
    "resources/styles.css": "body { margin: 0; }\n",
    "templates/shortcodes/html/note.html": '<div class="note">{{ text }}</div>\n',
    "templates/shortcodes/md/note.md": "> **Note:** {{ text }}\n",
}


@pytest.fixture
def sample_project(tmp_path) -> Path:
    return write_project(tmp_path / "project", SAMPLE_PROJECT)


@define
class RecordingBackend(Backend):
    """Backend that records file operations instead of performing them."""

    written: dict[Path, str] = Factory(dict)
    copied: list[tuple[Path, Path]] = Factory(list)
    copied_trees: list[tuple[Path, Path]] = Factory(list)
    deleted: list[Path] = Factory(list)

    async def write_text(self, path: Path, text: str) -> None:
        self.written[path] = text

    async def copy_file(self, source: Path, target: Path) -> None:
        self.copied.append((source, target))

    async def copy_tree(self, source: Path, target: Path) -> None:
        self.copied_trees.append((source, target))

    async def delete_tree(self, path: Path) -> None:
        self.deleted.append(path)


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


def pytest_configure(config):
    """Quiet application logs unless test logging is explicitly enabled."""
    if os.environ.get("COURSES_ENABLE_TEST_LOGGING"):
        config.option.log_cli = True
        config.option.log_cli_level = os.environ.get("COURSES_TEST_LOG_LEVEL", "INFO")
        config.option.log_cli_format = "[%(asctime)s] %(levelname)-8s %(name)s - %(message)s"
        config.option.log_cli_date_format = "%H:%M:%S"
    else:
        config.option.log_cli = False
        logging.getLogger("courses").setLevel(logging.WARNING)
