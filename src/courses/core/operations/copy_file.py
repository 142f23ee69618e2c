import logging
from pathlib import Path

from attrs import field, frozen

from courses.cli.build_reporter import BuildReporter
from courses.infrastructure.backend import Backend
from courses.infrastructure.operation import Operation

logger = logging.getLogger(__name__)


@frozen
class CopyFileOperation(Operation):
    """Copies a passthrough asset byte for byte to each of its targets."""

    input_file: Path
    output_files: tuple[Path, ...]
    reporter: BuildReporter = field(eq=False)

    async def execute(self, backend: Backend, *args, **kwargs) -> None:
        try:
            for output_file in self.output_files:
                await backend.copy_file(self.input_file, output_file)
        except OSError as e:
            self.reporter.report_exception(e, self.input_file)

    def __attrs_pre_init__(self):
        super().__init__()


@frozen
class CopyDirectoryOperation(Operation):
    """Copies a whole directory tree, e.g. `resources/` into `build/web/`."""

    input_dir: Path
    output_dir: Path
    reporter: BuildReporter = field(eq=False)

    async def execute(self, backend: Backend, *args, **kwargs) -> None:
        logger.info(f"Copying '{self.input_dir}' to '{self.output_dir}'")
        try:
            await backend.copy_tree(self.input_dir, self.output_dir)
        except OSError as e:
            self.reporter.report_exception(e, self.input_dir)

    def __attrs_pre_init__(self):
        super().__init__()
