"""Serialization of documents for the source target."""

import logging

import jupytext
import nbformat
from nbformat import NotebookNode

logger = logging.getLogger(__name__)

NOTEBOOK_VERSION = 4


def markdown_to_notebook(text: str, language: str = "python") -> NotebookNode:
    """Convert markdown to a notebook.

    Fenced code blocks in the document's language become code cells, all
    other text becomes markdown cells.
    """
    nb = jupytext.reads(text, fmt="md")
    nb.metadata.pop("jupytext", None)
    nb.metadata.setdefault("language_info", {"name": language})
    return nb


def notebook_text(nb: NotebookNode) -> str:
    return nbformat.writes(nb, version=NOTEBOOK_VERSION)
