"""Build reporting coordinator.

The `BuildReporter` collects failures from document operations that run
concurrently, displays them through an `OutputFormatter`, and produces the
final `BuildSummary`.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path

from courses.cli.build_data_classes import BuildError, BuildSummary, BuildWarning
from courses.cli.output_formatter import OutputFormatter
from courses.errors import (
    ConfigError,
    CoursesError,
    RenderError,
    TransformError,
    TreeError,
)

logger = logging.getLogger(__name__)

GUIDANCE = {
    ConfigError: "Check the YAML configuration block of the document",
    TreeError: "Check the directory layout: project, part, chapter, section",
    TransformError: "Check that every '#| solution' region is closed by '#| end'",
    RenderError: "Check the shortcodes and math of the document",
}


def categorize_error(
    error: BaseException, path: Path | str | None, fatal: bool = False
) -> BuildError:
    """Convert an exception raised while building into a `BuildError`."""
    if isinstance(error, CoursesError):
        error_path = path if path is not None else error.path
        guidance = next(
            (text for cls, text in GUIDANCE.items() if isinstance(error, cls)), ""
        )
        return BuildError(
            error_type="configuration" if isinstance(error, ConfigError) else "content",
            category=error.kind,
            severity="fatal" if fatal else "error",
            file_path=str(error_path) if error_path is not None else "",
            message=error.message,
            actionable_guidance=guidance,
        )
    return BuildError(
        error_type="infrastructure",
        category=type(error).__name__,
        severity="fatal" if fatal else "error",
        file_path=str(path) if path is not None else "",
        message=str(error),
        actionable_guidance="This is likely a bug or an environment problem; see the log",
    )


class BuildReporter:
    """Coordinates build progress reporting and error collection.

    All reporting methods may be called from the event loop and from
    executor threads.
    """

    def __init__(self, output_formatter: OutputFormatter):
        self.formatter = output_formatter
        self.errors: list[BuildError] = []
        self.warnings: list[BuildWarning] = []
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.total_documents = 0
        self.completed_documents = 0
        self.failed_documents = 0
        self.skipped_documents = 0
        self._lock = threading.Lock()

    def start_build(self, project_name: str, profile: str, total_documents: int) -> None:
        with self._lock:
            self.start_time = datetime.now()
            self.total_documents = total_documents
            self.completed_documents = 0
            self.failed_documents = 0
            self.skipped_documents = 0
            self.errors = []
            self.warnings = []
        self.formatter.show_build_start(project_name, profile, total_documents)

    def report_skipped(self, path: Path | str, reason: str) -> None:
        logger.info(f"Skipping {path}: {reason}")
        with self._lock:
            self.skipped_documents += 1

    def report_document_completed(self, path: Path | str, success: bool = True) -> None:
        with self._lock:
            self.completed_documents += 1
            if not success:
                self.failed_documents += 1
            completed = self.completed_documents
        self.formatter.update_progress(completed, self.total_documents)
        self.formatter.show_document_completed(str(path), success)

    def report_error(self, error: BuildError) -> None:
        """Collect an error and display it if the output mode asks for it."""
        with self._lock:
            self.errors.append(error)
        if self.formatter.should_show_error(error):
            self.formatter.show_error(error)

    def report_exception(
        self, exception: BaseException, path: Path | str | None, fatal: bool = False
    ) -> None:
        self.report_error(categorize_error(exception, path, fatal))

    def report_warning(self, warning: BuildWarning) -> None:
        with self._lock:
            self.warnings.append(warning)
        if self.formatter.should_show_warning(warning):
            self.formatter.show_warning(warning)

    def finish_build(self) -> BuildSummary:
        """Generate and display the final summary."""
        with self._lock:
            self.end_time = datetime.now()
            duration = (
                (self.end_time - self.start_time).total_seconds() if self.start_time else 0.0
            )
            summary = BuildSummary(
                duration=duration,
                total_documents=self.total_documents,
                skipped_documents=self.skipped_documents,
                failed_documents=self.failed_documents,
                errors=sorted(self.errors, key=lambda e: e.file_path),
                warnings=list(self.warnings),
                start_time=self.start_time,
                end_time=self.end_time,
            )
        self.formatter.show_summary(summary)
        return summary

    def cleanup(self) -> None:
        self.formatter.cleanup()
