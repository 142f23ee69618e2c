import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from courses.errors import InvalidSchemaError

logger = logging.getLogger(__name__)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge `override` into a copy of `base`, recursing into nested mappings."""
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def load_yaml_mapping(text: str, path: Path | None = None) -> dict[str, Any]:
    """Parse YAML text that must either be empty or a mapping."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidSchemaError(f"Invalid YAML: {e}", path) from e
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise InvalidSchemaError(
            f"Expected a mapping at the top level, got {type(data).__name__}", path
        )
    return dict(data)


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(loc) for loc in detail["loc"])
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)
