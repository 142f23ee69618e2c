"""Project-wide configuration loaded from `config.yml`.

The file is optional. Recognized keys are `url_prefix`, `build.<profile>.*`,
and `defaults` (document settings applied to every document). Unknown keys
are ignored so that older versions of the tool can read newer projects.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from courses.core.utils.config_utils import (
    deep_merge,
    format_validation_error,
    load_yaml_mapping,
)
from courses.errors import InvalidSchemaError, UnknownProfileError

logger = logging.getLogger(__name__)

DEV_PROFILE = "dev"
RELEASE_PROFILE = "release"

BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    DEV_PROFILE: {"katex_output": False, "include_drafts": True},
    RELEASE_PROFILE: {"katex_output": True, "include_drafts": False},
}


class ProfileSettings(BaseModel):
    """Build-time settings selected by the `--profile` option."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    katex_output: bool = Field(
        default=False,
        description="Precompile math with KaTeX instead of rendering it in the browser",
    )
    include_drafts: bool = Field(
        default=True,
        description="Build documents whose config sets `draft: true`",
    )


def _builtin_profiles() -> dict[str, ProfileSettings]:
    return {name: ProfileSettings(**values) for name, values in BUILTIN_PROFILES.items()}


class ProjectConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    url_prefix: str = Field(default="", description="Prefix prepended to all page URLs")
    build: dict[str, ProfileSettings] = Field(
        default_factory=_builtin_profiles,
        description="Build profiles by name",
    )
    defaults: dict[str, Any] = Field(
        default_factory=dict,
        description="Document configuration defaults shared by all documents",
    )

    @model_validator(mode="before")
    @classmethod
    def _merge_builtin_profiles(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        build = data.get("build")
        if build is None:
            return data
        if not isinstance(build, dict):
            raise ValueError("'build' must be a mapping of profile names to settings")
        merged: dict[str, Any] = {name: dict(values) for name, values in BUILTIN_PROFILES.items()}
        for name, settings in build.items():
            if settings is None:
                settings = {}
            if not isinstance(settings, dict):
                raise ValueError(f"Profile '{name}' must be a mapping")
            merged[str(name)] = deep_merge(merged.get(str(name), {}), settings)
        return {**data, "build": merged}

    @property
    def profile_names(self) -> list[str]:
        return list(self.build)

    def profile(self, name: str) -> ProfileSettings:
        try:
            return self.build[name]
        except KeyError:
            raise UnknownProfileError(name, self.profile_names) from None


def resolve_global(path: Path) -> ProjectConfig:
    """Load the project configuration, falling back to defaults.

    Raises:
        InvalidSchemaError: If the file exists but is not a valid mapping of
            known keys.
    """
    if not path.exists():
        logger.debug(f"No project config at {path}, using defaults")
        return ProjectConfig()

    logger.debug(f"Loading project config from {path}")
    data = load_yaml_mapping(path.read_text(encoding="utf-8"), path)
    if data.get("defaults") is None:
        data.pop("defaults", None)
    if data.get("url_prefix") is None:
        data.pop("url_prefix", None)
    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise InvalidSchemaError(format_validation_error(e), path) from e
