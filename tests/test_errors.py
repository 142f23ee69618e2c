from pathlib import Path

import pytest

from courses.errors import (
    ConfigError,
    CoursesError,
    DepthExceededError,
    DocumentLoadError,
    DuplicateOutputError,
    InvalidSchemaError,
    MathRenderError,
    MisplacedDocumentError,
    MissingArgumentError,
    MissingIndexError,
    MissingRequiredFieldError,
    ProjectLayoutError,
    RenderError,
    ShortcodeSyntaxError,
    TransformError,
    TreeError,
    UnbalancedMarkerError,
    UnknownProfileError,
    UnknownShortcodeError,
)


@pytest.mark.parametrize(
    "error, family, kind",
    [
        (InvalidSchemaError("bad"), ConfigError, "config:invalid-schema"),
        (MissingRequiredFieldError("title"), ConfigError, "config:missing-field"),
        (UnknownProfileError("x", ["dev"]), ConfigError, "config:unknown-profile"),
        (ProjectLayoutError("no content"), ConfigError, "config:project-layout"),
        (MissingIndexError(Path("a")), TreeError, "tree:missing-index"),
        (DepthExceededError(Path("a")), TreeError, "tree:depth-exceeded"),
        (MisplacedDocumentError(Path("a")), TreeError, "tree:misplaced-document"),
        (
            DuplicateOutputError(Path("a.md"), Path("a.html"), Path("a.ipynb")),
            TreeError,
            "tree:duplicate-output",
        ),
        (UnbalancedMarkerError("stray", 1), TransformError, "transform:unbalanced-marker"),
        (UnknownShortcodeError("video"), RenderError, "render:unknown-shortcode"),
        (MissingArgumentError("img", "'src' is undefined"), RenderError, "render:missing-argument"),
        (ShortcodeSyntaxError("bad"), RenderError, "render:shortcode-syntax"),
        (MathRenderError("bad"), RenderError, "render:math"),
        (DocumentLoadError("bad"), CoursesError, "load"),
    ],
)
def test_families_and_kinds(error, family, kind):
    assert isinstance(error, family)
    assert isinstance(error, CoursesError)
    assert error.kind == kind


def test_str_includes_path():
    assert str(InvalidSchemaError("bad", Path("a.md"))) == "bad (a.md)"
    assert str(InvalidSchemaError("bad")) == "bad"


def test_with_path_keeps_existing_path():
    error = InvalidSchemaError("bad", Path("a.md"))

    assert error.with_path(Path("b.md")).path == Path("a.md")
    assert InvalidSchemaError("bad").with_path(Path("b.md")).path == Path("b.md")


def test_unbalanced_marker_line():
    error = UnbalancedMarkerError("'#| solution' is never closed", 7, Path("a.md"))

    assert error.line == 7
    assert error.message == "'#| solution' is never closed at line 7"


def test_unknown_profile_lists_profiles():
    error = UnknownProfileError("staging", ["release", "dev"])

    assert error.message == "Build profile 'staging' does not exist (available: dev, release)"
    assert error.available == ["release", "dev"]


def test_missing_field_name():
    assert MissingRequiredFieldError("title").field_name == "title"
