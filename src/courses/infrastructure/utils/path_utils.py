import logging
import re
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)

INDEX_STEM = "index"

MARKDOWN_EXTENSIONS = frozenset({".md"})
NOTEBOOK_EXTENSIONS = frozenset({".ipynb"})
DOCUMENT_EXTENSIONS = MARKDOWN_EXTENSIONS | NOTEBOOK_EXTENSIONS

# index.md wins over index.ipynb when both exist
INDEX_FILE_NAMES = ("index.md", "index.ipynb")

SKIP_DIRS_FOR_CONTENT = frozenset(
    (
        "__pycache__",
        ".git",
        ".ipynb_checkpoints",
        ".mypy_cache",
        ".pytest_cache",
        ".tox",
        ".venv",
        ".vscode",
        ".idea",
        "node_modules",
    )
)

SKIP_FILE_SUFFIXES = frozenset({".bkp", ".bak", ".swp", ".pyc"})

IGNORE_PATH_REGEX = re.compile(r"(.*\.egg-info.*|\..*|~\$.*)")


class SourceFormat(StrEnum):
    MARKDOWN = "markdown"
    NOTEBOOK = "notebook"


def source_format_for(path: Path) -> SourceFormat | None:
    if path.suffix in MARKDOWN_EXTENSIONS:
        return SourceFormat.MARKDOWN
    if path.suffix in NOTEBOOK_EXTENSIONS:
        return SourceFormat.NOTEBOOK
    return None


def is_document_file(path: Path) -> bool:
    return path.suffix in DOCUMENT_EXTENSIONS


def is_index_file(path: Path) -> bool:
    return path.stem == INDEX_STEM and is_document_file(path)


def is_ignored_entry(path: Path) -> bool:
    name = path.name
    if name in SKIP_DIRS_FOR_CONTENT:
        return True
    if re.fullmatch(IGNORE_PATH_REGEX, name):
        return True
    return path.is_file() and path.suffix in SKIP_FILE_SUFFIXES


def sorted_entries(dir_path: Path) -> list[Path]:
    """Directory entries that take part in the build, in lexicographic order."""
    return sorted(
        (entry for entry in dir_path.iterdir() if not is_ignored_entry(entry)),
        key=lambda entry: entry.name,
    )


def find_index_file(dir_path: Path) -> Path | None:
    for name in INDEX_FILE_NAMES:
        candidate = dir_path / name
        if candidate.is_file():
            return candidate
    return None


def contains_documents(dir_path: Path) -> bool:
    """True if any document file lives in `dir_path` or below."""
    for entry in sorted_entries(dir_path):
        if entry.is_dir():
            if contains_documents(entry):
                return True
        elif is_document_file(entry):
            return True
    return False


def iter_files(dir_path: Path):
    """Yield all non-ignored files below `dir_path` in lexicographic order."""
    for entry in sorted_entries(dir_path):
        if entry.is_dir():
            yield from iter_files(entry)
        else:
            yield entry


def web_path_for(relative_path: Path) -> Path:
    return relative_path.with_suffix(".html")


def url_for(url_prefix: str, relative_path: Path) -> str:
    return f"{url_prefix.rstrip('/')}/{web_path_for(relative_path).as_posix()}"
