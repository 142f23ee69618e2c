"""Centralized path resolution for project directories."""

from pathlib import Path

from attrs import frozen

from courses.core.build_target import BuildTarget
from courses.errors import ProjectLayoutError

CONFIG_FILE_NAME = "config.yml"


@frozen
class ProjectPaths:
    """Locations of the fixed project layout below a project root."""

    root: Path

    @classmethod
    def from_root(cls, root: Path) -> "ProjectPaths":
        return cls(root=root.resolve())

    @property
    def config_file(self) -> Path:
        return self.root / CONFIG_FILE_NAME

    @property
    def content_dir(self) -> Path:
        return self.root / "content"

    @property
    def templates_dir(self) -> Path:
        return self.root / "templates"

    @property
    def resources_dir(self) -> Path:
        return self.root / "resources"

    @property
    def build_dir(self) -> Path:
        return self.root / "build"

    def output_dir(self, target: BuildTarget) -> Path:
        return self.build_dir / target.output_dir_name

    @property
    def web_dir(self) -> Path:
        return self.output_dir(BuildTarget.WEB)

    @property
    def source_dir(self) -> Path:
        return self.output_dir(BuildTarget.NOTEBOOK)

    def validate(self) -> None:
        """Check the parts of the layout a build cannot do without."""
        if not self.content_dir.is_dir():
            raise ProjectLayoutError("Project has no content/ directory", self.root)
