import logging
from pathlib import Path

from attrs import field, frozen

from courses.cli.build_reporter import BuildReporter
from courses.core.build_target import BuildTarget
from courses.core.content_tree import ContentNode
from courses.core.document_renderer import DocumentRenderer
from courses.infrastructure.backend import Backend
from courses.infrastructure.operation import Operation

logger = logging.getLogger(__name__)


@frozen
class BuildDocumentOperation(Operation):
    """Renders one document for all of its targets.

    Every target is rendered in memory first; output is only written if all
    targets succeed, so a failing document leaves no partial output behind.
    Failures are reported and not raised, so that other documents continue.
    """

    node: ContentNode
    outputs: tuple[tuple[BuildTarget, Path], ...]
    renderer: DocumentRenderer = field(eq=False)
    reporter: BuildReporter = field(eq=False)

    async def execute(self, backend: Backend, *args, **kwargs) -> None:
        file_path = self.node.relative_path
        try:
            logger.info(f"Building '{file_path}'")
            rendered = [
                (output_path, await self.renderer.render(self.node, target))
                for target, output_path in self.outputs
            ]
            for output_path, text in rendered:
                await backend.write_text(output_path, text)
        except Exception as e:
            logger.error(f"Error while building '{file_path}': {e}")
            logger.debug(f"Error traceback for '{file_path}'", exc_info=e)
            self.reporter.report_exception(e, self.node.path)
            self.reporter.report_document_completed(self.node.path, success=False)
            return
        self.reporter.report_document_completed(self.node.path)

    def __attrs_pre_init__(self):
        super().__init__()
