"""Data classes for build reporting.

This module defines the records collected while a project is built: one
`BuildError` per failed document (or per tree failure), warnings, and the
final `BuildSummary`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal


@dataclass
class BuildError:
    """A failure that prevented output for one path.

    Attributes:
        error_type: Whether the content or the tool's environment is at fault
        category: The error's kind, e.g. 'transform:unbalanced-marker'
        severity: 'error' for per-document failures, 'fatal' if the build
            could not run at all
        file_path: Path of the document or directory that failed
        message: Error message
        actionable_guidance: Suggestion for how to fix the error
    """

    error_type: Literal["content", "configuration", "infrastructure"]
    category: str
    severity: Literal["error", "fatal"]
    file_path: str
    message: str
    actionable_guidance: str = ""

    def __str__(self) -> str:
        parts = [f"[{self.error_type.title()} Error] {self.category}"]
        parts.append(f"  File: {self.file_path}")
        parts.append(f"  Error: {self.message}")
        if self.actionable_guidance:
            parts.append(f"  Action: {self.actionable_guidance}")
        return "\n".join(parts)


@dataclass
class BuildWarning:
    category: str
    message: str
    file_path: str | None = None

    def __str__(self) -> str:
        if self.file_path:
            return f"{self.message} (File: {self.file_path})"
        return self.message


@dataclass
class BuildSummary:
    """Summary of a build execution.

    Attributes:
        duration: Build duration in seconds
        total_documents: Number of documents the build attempted
        skipped_documents: Documents skipped by profile or output settings
        failed_documents: Documents whose rendering failed
        errors: Failures, one per failed path
        warnings: Warnings encountered
    """

    duration: float
    total_documents: int
    skipped_documents: int = 0
    failed_documents: int = 0
    errors: list[BuildError] = field(default_factory=list)
    warnings: list[BuildWarning] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def successful_documents(self) -> int:
        return max(0, self.total_documents - self.failed_documents)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_fatal_errors(self) -> bool:
        return any(e.severity == "fatal" for e in self.errors)

    @property
    def exit_code(self) -> int:
        if self.has_fatal_errors():
            return 2
        if self.has_errors():
            return 1
        return 0

    def __str__(self) -> str:
        status = "with errors" if self.has_errors() else "successfully"
        parts = [f"Build completed {status} in {self.duration:.1f}s"]
        parts.append(f"  {self.total_documents} documents")
        parts.append(f"  {len(self.errors)} errors")
        for error in self.errors:
            parts.append(f"  {error.file_path}: {error.category}")
        return "\n".join(parts)
