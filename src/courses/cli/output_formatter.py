"""Output formatting for build reporting.

A build is shown in one of three modes: the default human-readable mode
with a progress bar, a quiet mode that prints only failures, and a JSON mode
for CI that prints a single document on stdout when the build finishes.
Everything except the JSON document goes to stderr.
"""

import json
import sys
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
)

from courses.cli.build_data_classes import BuildError, BuildSummary, BuildWarning


class OutputMode(Enum):
    DEFAULT = "default"
    QUIET = "quiet"
    JSON = "json"


class OutputFormatter(ABC):
    """Receives build events from the `BuildReporter`.

    Only the summary is mandatory; the other hooks do nothing unless a
    formatter overrides them.
    """

    def show_build_start(self, project_name: str, profile: str, total_documents: int) -> None:  # noqa: B027
        pass

    def update_progress(self, completed: int, total: int) -> None:  # noqa: B027
        pass

    def show_document_completed(self, file_path: str, success: bool) -> None:  # noqa: B027
        pass

    def should_show_error(self, error: BuildError) -> bool:
        """True if the error is displayed as soon as it is reported."""
        return False

    def show_error(self, error: BuildError) -> None:  # noqa: B027
        pass

    def should_show_warning(self, warning: BuildWarning) -> bool:
        return False

    def show_warning(self, warning: BuildWarning) -> None:  # noqa: B027
        pass

    @abstractmethod
    def show_summary(self, summary: BuildSummary) -> None: ...

    def cleanup(self) -> None:  # noqa: B027
        """Release display resources such as progress bars."""
        pass


class DefaultOutputFormatter(OutputFormatter):
    """Progress bar while rendering, failures as they happen, then a summary."""

    def __init__(self, show_progress: bool = True, console: Console | None = None):
        self.show_progress = show_progress
        self.console = console or Console(file=sys.stderr)
        self.progress: Progress | None = None
        self.current_task: TaskID | None = None

    def show_build_start(self, project_name: str, profile: str, total_documents: int) -> None:
        self.console.print(
            f"\n[bold]Building project:[/bold] {escape(project_name)} "
            f"[dim](profile {escape(profile)})[/dim]",
            style="cyan",
        )
        self.console.print(f"Documents: {total_documents}\n")

        if self.show_progress and self.progress is None:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                console=self.console,
                transient=True,
            )
            self.progress.start()
            self.current_task = self.progress.add_task("Rendering", total=total_documents)

    def update_progress(self, completed: int, total: int) -> None:
        if self.progress is not None and self.current_task is not None:
            self.progress.update(self.current_task, completed=completed, total=total)

    def should_show_error(self, error: BuildError) -> bool:
        return True

    def show_error(self, error: BuildError) -> None:
        color = "magenta" if error.error_type == "configuration" else "red"
        self.console.print(f"[bold {color}]✗ {escape(error.file_path)}[/bold {color}]")
        self.console.print(f"  {error.category}: {error.message}", markup=False)

    def should_show_warning(self, warning: BuildWarning) -> bool:
        return True

    def show_warning(self, warning: BuildWarning) -> None:
        self.console.print(f"[yellow]⚠ {escape(str(warning))}[/yellow]")

    def show_summary(self, summary: BuildSummary) -> None:
        self.cleanup()

        if summary.has_errors():
            color, headline = "red", "✗ Build completed with errors"
        else:
            color, headline = "green", "✓ Build completed successfully"
        self.console.print(f"\n[bold {color}]{headline}[/bold {color}] in {summary.duration:.1f}s\n")

        self.console.print("[bold]Summary:[/bold]")
        self.console.print(f"  {summary.successful_documents} documents built")
        if summary.skipped_documents:
            self.console.print(f"  {summary.skipped_documents} documents skipped")
        if summary.errors:
            self.console.print(f"  [red]{len(summary.errors)} errors[/red]")
        if summary.warnings:
            self.console.print(f"  [yellow]{len(summary.warnings)} warnings[/yellow]")

        if not summary.errors:
            return
        self.console.print("\n[bold]Failed:[/bold]")
        for number, error in enumerate(summary.errors, 1):
            self.console.print(f"  {number}. {escape(error.file_path)} [dim]({error.category})[/dim]")
            first_line = error.message.splitlines()[0] if error.message else ""
            self.console.print(f"     {first_line}", markup=False)
            if error.actionable_guidance:
                self.console.print(f"     [dim]{escape(error.actionable_guidance)}[/dim]")

    def cleanup(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
            self.current_task = None


class QuietOutputFormatter(OutputFormatter):
    """One line per failure, nothing at all for a clean build."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(file=sys.stderr)

    def show_summary(self, summary: BuildSummary) -> None:
        for error in summary.errors:
            self.console.print(
                f"ERROR: {error.file_path}: [{error.category}] {error.message}",
                style="red",
                highlight=False,
                markup=False,
            )
        if summary.has_errors():
            self.console.print(
                f"Build failed with {len(summary.errors)} errors in {summary.duration:.1f}s",
                style="red bold",
            )


def _error_record(error: BuildError) -> dict[str, Any]:
    return {
        "error_type": error.error_type,
        "category": error.category,
        "severity": error.severity,
        "file_path": error.file_path,
        "message": error.message,
        "actionable_guidance": error.actionable_guidance,
    }


def _warning_record(warning: BuildWarning) -> dict[str, Any]:
    return {
        "category": warning.category,
        "message": warning.message,
        "file_path": warning.file_path,
    }


class JSONOutputFormatter(OutputFormatter):
    """Machine-readable result for CI, printed to stdout at the end."""

    def __init__(self):
        self.output_data: dict[str, Any] = {"status": "in_progress"}
        self.failed: list[str] = []

    def show_build_start(self, project_name: str, profile: str, total_documents: int) -> None:
        self.output_data.update(
            project=project_name, profile=profile, total_documents=total_documents
        )

    def show_document_completed(self, file_path: str, success: bool) -> None:
        if not success:
            self.failed.append(file_path)

    def show_summary(self, summary: BuildSummary) -> None:
        if summary.has_fatal_errors():
            status = "fatal"
        elif summary.has_errors():
            status = "failed"
        else:
            status = "success"
        self.output_data.update(
            status=status,
            duration_seconds=summary.duration,
            documents_succeeded=summary.successful_documents,
            documents_failed=summary.failed_documents,
            documents_skipped=summary.skipped_documents,
            failed_documents=sorted(self.failed),
            errors=[_error_record(e) for e in summary.errors],
            warnings=[_warning_record(w) for w in summary.warnings],
        )
        if summary.start_time:
            self.output_data["start_time"] = summary.start_time.isoformat()
        if summary.end_time:
            self.output_data["end_time"] = summary.end_time.isoformat()

        print(json.dumps(self.output_data, indent=2))


def create_output_formatter(mode: OutputMode, show_progress: bool = True) -> OutputFormatter:
    if mode is OutputMode.QUIET:
        return QuietOutputFormatter()
    if mode is OutputMode.JSON:
        return JSONOutputFormatter()
    return DefaultOutputFormatter(show_progress=show_progress)
