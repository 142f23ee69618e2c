"""Exception hierarchy for course builds.

All errors raised while resolving configuration, building the content tree,
transforming exercises, or rendering documents derive from `CoursesError`.
The four families mirror the stages of a build:

- `ConfigError`: the global config file or a document's config is invalid
- `TreeError`: the content directory violates the project/part/chapter/section
  hierarchy
- `TransformError`: placeholder/solution markers are malformed
- `RenderError`: a shortcode or math expression cannot be rendered

Each error carries the offending path (if known) and a short `kind` string
that is used in build summaries.
"""

from pathlib import Path


class CoursesError(Exception):
    """Base class for all errors raised by the build pipeline."""

    kind: str = "error"

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.message} ({self.path})"
        return self.message

    def with_path(self, path: Path) -> "CoursesError":
        """Attach a path to an error that was raised without one."""
        if self.path is None:
            self.path = path
        return self


class ConfigError(CoursesError):
    kind = "config"


class InvalidSchemaError(ConfigError):
    kind = "config:invalid-schema"


class MissingRequiredFieldError(ConfigError):
    kind = "config:missing-field"

    def __init__(self, field_name: str, path: Path | None = None):
        super().__init__(f"Missing required field '{field_name}'", path)
        self.field_name = field_name


class UnknownProfileError(ConfigError):
    kind = "config:unknown-profile"

    def __init__(self, profile: str, available: list[str]):
        super().__init__(
            f"Build profile '{profile}' does not exist "
            f"(available: {', '.join(sorted(available))})"
        )
        self.profile = profile
        self.available = available


class ProjectLayoutError(ConfigError):
    kind = "config:project-layout"


class TreeError(CoursesError):
    kind = "tree"


class MissingIndexError(TreeError):
    kind = "tree:missing-index"

    def __init__(self, path: Path):
        super().__init__("Directory has no index.md or index.ipynb", path)


class DepthExceededError(TreeError):
    kind = "tree:depth-exceeded"

    def __init__(self, path: Path):
        super().__init__(
            "Documents are nested deeper than project/part/chapter/section", path
        )


class MisplacedDocumentError(TreeError):
    kind = "tree:misplaced-document"

    def __init__(self, path: Path):
        super().__init__(
            "Only index documents may appear at project or part level", path
        )


class DuplicateOutputError(TreeError):
    kind = "tree:duplicate-output"

    def __init__(self, path: Path, output: Path, claimed_by: Path):
        super().__init__(
            f"Output {output.as_posix()} is already produced by {claimed_by.name}", path
        )
        self.output = output
        self.claimed_by = claimed_by


class TransformError(CoursesError):
    kind = "transform"


class UnbalancedMarkerError(TransformError):
    kind = "transform:unbalanced-marker"

    def __init__(self, message: str, line: int, path: Path | None = None):
        super().__init__(f"{message} at line {line}", path)
        self.line = line


class RenderError(CoursesError):
    kind = "render"


class UnknownShortcodeError(RenderError):
    kind = "render:unknown-shortcode"

    def __init__(self, name: str, path: Path | None = None):
        super().__init__(f"Unknown shortcode '{name}'", path)
        self.name = name


class MissingArgumentError(RenderError):
    kind = "render:missing-argument"

    def __init__(self, shortcode: str, detail: str, path: Path | None = None):
        super().__init__(f"Shortcode '{shortcode}': {detail}", path)
        self.shortcode = shortcode


class ShortcodeSyntaxError(RenderError):
    kind = "render:shortcode-syntax"


class MathRenderError(RenderError):
    kind = "render:math"


class DocumentLoadError(CoursesError):
    kind = "load"
