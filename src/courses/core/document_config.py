"""Per-document configuration.

Markdown documents carry their configuration as YAML frontmatter; notebooks
carry it in a raw cell at the top. Values are resolved in layers: built-in
defaults, then the project's `defaults` section, then the document itself.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from courses.core.utils.config_utils import (
    deep_merge,
    format_validation_error,
    load_yaml_mapping,
)
from courses.errors import InvalidSchemaError, MissingRequiredFieldError

logger = logging.getLogger(__name__)


class LayoutSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    hide_sidebar: bool = False


class OutputSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    web: bool = Field(default=True, description="Render a page into build/web")
    source: bool = Field(default=True, description="Emit a source file into build/source")


class DocumentConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str
    code_split: bool = Field(
        default=True,
        description="Split exercise code into solution and placeholder variants",
    )
    notebook_output: bool = Field(
        default=True,
        description="Emit markdown documents as notebooks in build/source",
    )
    draft: bool = False
    cell_outputs: bool = Field(
        default=True,
        description="Show notebook cell outputs on the web page",
    )
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)


def resolve_document(
    raw_yaml: str | Mapping[str, Any] | None,
    defaults: Mapping[str, Any] | None = None,
    path: Path | None = None,
) -> DocumentConfig:
    """Resolve a document's configuration against the layered defaults.

    Args:
        raw_yaml: The document's YAML block (text or already parsed), or None
            if the document has none.
        defaults: Document-level defaults from the project configuration.
        path: Path of the document, used in error messages.

    Raises:
        MissingRequiredFieldError: If no `title` is set at any level.
        InvalidSchemaError: If the YAML cannot be parsed or has wrong types.
    """
    if raw_yaml is None:
        document_data: dict[str, Any] = {}
    elif isinstance(raw_yaml, str):
        document_data = load_yaml_mapping(raw_yaml, path)
    else:
        document_data = dict(raw_yaml)

    merged = deep_merge(dict(defaults or {}), document_data)
    if merged.get("title") in (None, ""):
        raise MissingRequiredFieldError("title", path)

    try:
        return DocumentConfig.model_validate(merged)
    except ValidationError as e:
        raise InvalidSchemaError(format_validation_error(e), path) from e
