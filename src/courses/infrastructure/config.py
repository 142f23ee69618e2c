"""Settings of the `courses` tool itself.

These are distinct from a project's `config.yml`: they describe how the tool
runs on this machine (log level, parallelism, where KaTeX lives), not what a
course looks like.

Configuration Priority (highest to lowest):
1. Environment variables
2. Project settings file (./courses.toml or ./.courses/config.toml)
3. User settings file (platformdirs user config dir, config.toml)
4. Default values

Environment Variable Naming:
- Nested fields: COURSES_<SECTION>__<FIELD> (e.g., COURSES_BUILD__MAX_WORKERS)
- The KaTeX executable may also be given as KATEX_EXECUTABLE.
"""

import logging
import os
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

logger = logging.getLogger(__name__)

APP_NAME = "courses"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LegacyEnvSettingsSource(PydanticBaseSettingsSource):
    """Environment variables without the COURSES_ prefix."""

    LEGACY_ENV_VARS = {
        ("build", "katex_executable"): "KATEX_EXECUTABLE",
    }

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        raise ValueError(f"Field {field_name} not found in legacy environment")

    def __call__(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for field_path, env_var in self.LEGACY_ENV_VARS.items():
            env_value = os.getenv(env_var)
            if env_value is None:
                continue
            current = data
            for part in field_path[:-1]:
                current = current.setdefault(part, {})
            current[field_path[-1]] = env_value
        return data


class LoggingConfig(BaseModel):
    """Logging configuration."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of {VALID_LOG_LEVELS}, got {v}")
        return v_upper


class BuildConfig(BaseModel):
    """Build execution configuration."""

    max_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum number of documents processed concurrently",
    )

    katex_executable: str = Field(
        default="katex",
        description="KaTeX command line program used to precompile math",
    )

    katex_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single KaTeX invocation (seconds)",
    )


class CoursesSettings(BaseSettings):
    """Tool settings, loaded from environment variables and TOML files."""

    model_config = SettingsConfigDict(
        env_prefix="COURSES_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )

    build: BuildConfig = Field(
        default_factory=BuildConfig,
        description="Build execution configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init arguments, environment, project file, user file."""
        config_files = find_config_files()
        toml_sources = []
        for location in ("project", "user"):
            config_file = config_files[location]
            if config_file is None:
                continue
            toml_sources.append(TomlConfigSettingsSource(settings_cls, toml_file=config_file))
            logger.debug(f"Loaded {location} settings: {config_file}")

        return (
            init_settings,
            env_settings,
            LegacyEnvSettingsSource(settings_cls),
            *toml_sources,
        )


def get_config_file_locations() -> dict[str, Path]:
    """The standard settings file locations (which may not exist)."""
    user_config_dir = Path(platformdirs.user_config_dir(APP_NAME, appauthor=False))
    return {
        "user": user_config_dir / "config.toml",
        "project": Path.cwd() / ".courses" / "config.toml",
    }


def find_config_files() -> dict[str, Path | None]:
    """Find existing settings files in the standard locations."""
    locations = get_config_file_locations()
    config_files: dict[str, Path | None] = {"user": None, "project": None}

    if locations["user"].exists():
        config_files["user"] = locations["user"]

    for project_config in (locations["project"], Path.cwd() / f"{APP_NAME}.toml"):
        if project_config.exists():
            config_files["project"] = project_config
            break

    return config_files


# Lazily initialized on first access
_config: CoursesSettings | None = None


def get_config(reload: bool = False) -> CoursesSettings:
    """Get the global settings instance.

    Args:
        reload: If True, reload the settings from files and environment.
    """
    global _config

    if _config is None or reload:
        _config = CoursesSettings()

    return _config


def create_example_config() -> str:
    """Example settings file content with all options documented."""
    return """# courses settings
#
# Settings files are loaded from (in priority order):
#   1. .courses/config.toml or courses.toml (current directory)
#   2. config.toml in the user config directory
#
# Environment variables override any setting.
# Nested settings use double underscores: COURSES_<SECTION>__<KEY>

[logging]
# Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL
# Environment variable: COURSES_LOGGING__LOG_LEVEL
log_level = "INFO"

[build]
# Maximum number of documents processed concurrently
# Environment variable: COURSES_BUILD__MAX_WORKERS
max_workers = 8

# KaTeX command line program (npm install -g katex)
# Environment variable: COURSES_BUILD__KATEX_EXECUTABLE or KATEX_EXECUTABLE
katex_executable = "katex"

# Timeout for a single KaTeX invocation (seconds)
# Environment variable: COURSES_BUILD__KATEX_TIMEOUT
katex_timeout = 30.0
"""


def write_example_config(location: str = "user") -> Path:
    """Write an example settings file to a standard location.

    Args:
        location: "user" or "project".

    Raises:
        ValueError: If location is invalid.
    """
    locations = get_config_file_locations()

    if location not in locations:
        raise ValueError(f"Invalid location '{location}'. Must be one of: user, project")

    config_path = locations[location]
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(create_example_config())

    logger.info(f"Created example settings at: {config_path}")

    return config_path
