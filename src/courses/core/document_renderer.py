"""Rendering of a single document for a single build target.

For every target the pipeline is: exercise transformation, shortcode
expansion, then target-specific serialization. The web target additionally
renders math and wraps the result in the page layout.

The CPU-bound steps run in the default executor; only math rendering, which
may call the KaTeX program, runs on the event loop.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from attrs import frozen

from courses.core.build_target import BuildTarget
from courses.core.content_tree import ContentNode
from courses.core.navigation import build_page_links
from courses.processing.exercises import ExerciseTransformer
from courses.processing.math import MathExpression, MathRenderer, restore_math
from courses.processing.notebook_writer import markdown_to_notebook, notebook_text
from courses.processing.shortcodes import ShortcodeRenderer
from courses.processing.web_renderer import (
    markdown_fragment,
    notebook_fragment,
    render_page,
)

if TYPE_CHECKING:
    from courses.core.project import Project

logger = logging.getLogger(__name__)


@frozen
class DocumentRenderer:
    project: "Project"
    math_renderer: MathRenderer

    def _transformer(self, node: ContentNode, target: BuildTarget) -> ExerciseTransformer:
        return ExerciseTransformer(
            mode=target.exercise_mode, enabled=node.config.code_split, path=node.path
        )

    def _shortcodes(self, node: ContentNode, target: BuildTarget) -> ShortcodeRenderer:
        return ShortcodeRenderer(
            templates=self.project.templates,
            kind=target.shortcode_kind,
            doc=node.config,
            url_prefix=self.project.config.url_prefix,
            path=node.path,
        )

    async def render(self, node: ContentNode, target: BuildTarget) -> str:
        if target is BuildTarget.WEB:
            return await self.render_web(node)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.render_source, node)

    def web_fragment(self, node: ContentNode) -> tuple[str, list[MathExpression]]:
        """HTML body of a page, with math still protected."""
        transformer = self._transformer(node, BuildTarget.WEB)
        shortcodes = self._shortcodes(node, BuildTarget.WEB)
        expressions: list[MathExpression] = []
        document = node.document
        if document.is_notebook:
            nb = transformer.transform_notebook(document.notebook_copy())
            fragment = notebook_fragment(
                nb, shortcodes, expressions, document.language, node.config.cell_outputs
            )
        else:
            text = transformer.transform_markdown(document.text or "")
            fragment = markdown_fragment(text, shortcodes, expressions)
        return fragment, expressions

    async def render_web(self, node: ContentNode) -> str:
        loop = asyncio.get_running_loop()
        fragment, expressions = await loop.run_in_executor(None, self.web_fragment, node)
        if expressions:
            logger.debug(f"Rendering {len(expressions)} math expressions in {node.relative_path}")
        rendered = await self.math_renderer.render_all(expressions)
        content = restore_math(fragment, expressions, rendered)
        return render_page(self.project.templates, content, self.page_context(node))

    def page_context(self, node: ContentNode) -> dict[str, Any]:
        project = self.project
        links = build_page_links(
            project.tree, node, project.config.url_prefix, project.has_web_page
        )
        return {
            "title": node.title,
            "doc": node.config,
            "node": node,
            "project_title": project.name,
            "navigation": links.navigation,
            "breadcrumbs": links.breadcrumbs,
            "previous_page": links.previous_page,
            "next_page": links.next_page,
            "url_prefix": project.config.url_prefix,
            "hide_sidebar": node.config.layout.hide_sidebar,
            "katex_output": project.profile.katex_output,
            "profile": project.profile_name,
        }

    def render_source(self, node: ContentNode) -> str:
        """The redistributable source of a document, with placeholders."""
        transformer = self._transformer(node, BuildTarget.NOTEBOOK)
        shortcodes = self._shortcodes(node, BuildTarget.NOTEBOOK)
        document = node.document
        if document.is_notebook:
            nb = transformer.transform_notebook(document.notebook_copy())
            for cell in nb.cells:
                if cell.cell_type == "markdown":
                    cell.source = shortcodes.render(cell.source)
            return notebook_text(nb)

        text = shortcodes.render(transformer.transform_markdown(document.text or ""))
        if node.config.notebook_output:
            return notebook_text(markdown_to_notebook(text, document.language))
        return text
