"""Courses - build course websites and exercise notebooks.

Turns a `content/` directory of markdown files and Jupyter notebooks into a
static website (`build/web/`) and a set of redistributable notebooks with
exercise placeholders (`build/source/`).
"""

from courses.__version__ import __version__

__all__ = ["__version__"]
