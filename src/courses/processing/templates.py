"""The template set of a project.

Shortcode templates live in `templates/shortcodes/html/` (web pages) and
`templates/shortcodes/md/` (distributed sources). A template's shortcode name
is its file name up to the first dot, so `image.html`, `image.jinja.html` and
`image.md` all define `image`.

The page layout is any `templates/page.*` file; if the project has none, the
layout shipped with the package is used.
"""

import logging
from pathlib import Path

from attrs import Factory, frozen
from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    Template,
)

from courses.errors import UnknownShortcodeError
from courses.processing.markdown_html import markdown_to_html

logger = logging.getLogger(__name__)

SHORTCODE_DIR = "shortcodes"
SHORTCODE_KINDS = ("html", "md")
LAYOUT_NAME = "page"
DEFAULT_LAYOUT = "page.html"


def shortcode_name(file_name: str) -> str:
    return file_name.split(".", 1)[0]


def _scan_shortcodes(
    templates_dir: Path | None,
) -> tuple[dict[str, dict[str, str]], list[tuple[Path, str]]]:
    """Shortcode template names per kind, and the files shadowed by another one."""
    shortcodes: dict[str, dict[str, str]] = {kind: {} for kind in SHORTCODE_KINDS}
    shadowed: list[tuple[Path, str]] = []
    if templates_dir is None:
        return shortcodes, shadowed
    for kind in SHORTCODE_KINDS:
        kind_dir = templates_dir / SHORTCODE_DIR / kind
        if not kind_dir.is_dir():
            continue
        for file in sorted(kind_dir.iterdir()):
            if not file.is_file() or file.name.startswith("."):
                continue
            name = shortcode_name(file.name)
            if name in shortcodes[kind]:
                used = shortcodes[kind][name]
                logger.warning(f"Shortcode '{name}' defined more than once, using {used}")
                shadowed.append((file, used))
                continue
            shortcodes[kind][name] = f"{SHORTCODE_DIR}/{kind}/{file.name}"
    return shortcodes, shadowed


def _find_layout(templates_dir: Path | None) -> str | None:
    if templates_dir is None or not templates_dir.is_dir():
        return None
    for file in sorted(templates_dir.glob(f"{LAYOUT_NAME}.*")):
        if file.is_file():
            return file.name
    return None


def create_environment(templates_dir: Path | None) -> Environment:
    loaders = []
    if templates_dir is not None and templates_dir.is_dir():
        loaders.append(FileSystemLoader(str(templates_dir)))
    loaders.append(PackageLoader("courses", "templates"))
    environment = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=False,
    )
    environment.filters["markdown"] = markdown_to_html
    return environment


@frozen
class TemplateSet:
    """Shortcode and layout templates, loaded once per build."""

    environment: Environment
    shortcodes: dict[str, dict[str, str]] = Factory(dict)
    layout_name: str = DEFAULT_LAYOUT
    shadowed: tuple[tuple[Path, str], ...] = ()

    @classmethod
    def load(cls, templates_dir: Path | None) -> "TemplateSet":
        shortcodes, shadowed = _scan_shortcodes(templates_dir)
        layout_name = _find_layout(templates_dir) or DEFAULT_LAYOUT
        logger.debug(
            f"Loaded templates from {templates_dir}: "
            f"{len(shortcodes['html'])} html and {len(shortcodes['md'])} md "
            f"shortcodes, layout {layout_name}"
        )
        return cls(
            environment=create_environment(templates_dir),
            shortcodes=shortcodes,
            layout_name=layout_name,
            shadowed=tuple(shadowed),
        )

    def shortcode_names(self, kind: str) -> list[str]:
        return sorted(self.shortcodes.get(kind, {}))

    def shortcode_template(self, kind: str, name: str) -> Template:
        try:
            template_name = self.shortcodes[kind][name]
        except KeyError:
            raise UnknownShortcodeError(name) from None
        return self.environment.get_template(template_name)

    def layout(self) -> Template:
        return self.environment.get_template(self.layout_name)
