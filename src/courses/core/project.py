"""A course project: configuration, content tree and templates.

`Project.from_path` resolves everything a build needs exactly once. The
resulting object is not modified while documents are rendered, so it is
shared by all concurrently running document operations.
"""

import logging
from pathlib import Path

from attrs import define

from courses.cli.build_data_classes import BuildWarning
from courses.cli.build_reporter import BuildReporter
from courses.core.build_target import BuildTarget
from courses.core.content_tree import ContentNode, ContentTree, build_content_tree
from courses.core.document_renderer import DocumentRenderer
from courses.core.operations.build_document import BuildDocumentOperation
from courses.core.operations.copy_file import CopyDirectoryOperation, CopyFileOperation
from courses.core.project_config import (
    DEV_PROFILE,
    ProfileSettings,
    ProjectConfig,
    resolve_global,
)
from courses.core.project_paths import ProjectPaths
from courses.infrastructure.backend import Backend
from courses.infrastructure.config import BuildConfig
from courses.infrastructure.operation import Concurrently, Operation, Sequential
from courses.processing.math import (
    ClientSideMathRenderer,
    KatexMathRenderer,
    MathRenderer,
)
from courses.processing.templates import TemplateSet

logger = logging.getLogger(__name__)

RESOURCES_OUTPUT_DIR = "resources"


@define
class Project:
    paths: ProjectPaths
    config: ProjectConfig
    profile_name: str
    profile: ProfileSettings
    tree: ContentTree
    templates: TemplateSet

    @classmethod
    def from_path(cls, root: Path, profile: str = DEV_PROFILE) -> "Project":
        """Resolve the project below `root` for a build with `profile`.

        Raises:
            ConfigError: If the project layout or `config.yml` is invalid, or
                the profile does not exist.
            CoursesError: If the content root has no usable index document.
        """
        paths = ProjectPaths.from_root(root)
        logger.debug(f"Loading project from {paths.root} with profile {profile}")
        paths.validate()
        config = resolve_global(paths.config_file)
        profile_settings = config.profile(profile)
        tree = build_content_tree(paths.content_dir, config.defaults)
        templates_dir = paths.templates_dir if paths.templates_dir.is_dir() else None
        templates = TemplateSet.load(templates_dir)
        return cls(
            paths=paths,
            config=config,
            profile_name=profile,
            profile=profile_settings,
            tree=tree,
            templates=templates,
        )

    @property
    def name(self) -> str:
        return self.tree.root.title

    def is_included(self, node: ContentNode) -> bool:
        """False for drafts in profiles that exclude them.

        A draft part or chapter index makes its whole subtree a draft.
        """
        if self.profile.include_drafts:
            return True
        return not any(n.config.draft for n in [*self.tree.ancestors(node), node])

    def has_web_page(self, node: ContentNode) -> bool:
        return self.is_included(node) and node.config.output.web

    def output_targets(self, node: ContentNode) -> tuple[tuple[BuildTarget, Path], ...]:
        """The targets a document is built for, with their output paths."""
        if not self.is_included(node):
            return ()
        outputs = []
        if node.config.output.web:
            outputs.append((BuildTarget.WEB, self.paths.web_dir / node.web_relative_path))
        if node.config.output.source:
            outputs.append(
                (BuildTarget.NOTEBOOK, self.paths.source_dir / node.source_relative_path)
            )
        return tuple(outputs)

    def documents_to_build(self) -> list[ContentNode]:
        return [node for node in self.tree.documents() if self.output_targets(node)]

    def create_math_renderer(self, build_config: BuildConfig | None = None) -> MathRenderer:
        if not self.profile.katex_output:
            return ClientSideMathRenderer()
        build_config = build_config or BuildConfig()
        return KatexMathRenderer(
            executable=build_config.katex_executable,
            timeout=build_config.katex_timeout,
            max_concurrency=build_config.max_workers,
        )

    def get_processing_operation(
        self,
        reporter: BuildReporter,
        math_renderer: MathRenderer,
        max_concurrency: int | None = None,
    ) -> Operation:
        renderer = DocumentRenderer(project=self, math_renderer=math_renderer)
        operations: list[Operation] = [
            BuildDocumentOperation(
                node=node,
                outputs=self.output_targets(node),
                renderer=renderer,
                reporter=reporter,
            )
            for node in self.documents_to_build()
        ]
        for asset in self.tree.assets:
            relative_path = self.tree.relative_asset_path(asset)
            operations.append(
                CopyFileOperation(
                    input_file=asset,
                    output_files=(
                        self.paths.source_dir / relative_path,
                        self.paths.web_dir / relative_path,
                    ),
                    reporter=reporter,
                )
            )
        copy_resources: list[Operation] = []
        if self.paths.resources_dir.is_dir():
            copy_resources.append(
                CopyDirectoryOperation(
                    input_dir=self.paths.resources_dir,
                    output_dir=self.paths.web_dir / RESOURCES_OUTPUT_DIR,
                    reporter=reporter,
                )
            )
        return Sequential(
            [*copy_resources, Concurrently(operations, max_concurrency=max_concurrency)]
        )

    async def clean(self, backend: Backend) -> None:
        for output_dir in (self.paths.web_dir, self.paths.source_dir):
            await backend.delete_tree(output_dir)

    async def process_all(
        self,
        backend: Backend,
        reporter: BuildReporter,
        build_config: BuildConfig | None = None,
        clean: bool = False,
    ) -> None:
        """Build every document and copy every asset.

        Failures of single documents are reported to `reporter`; this method
        only raises if the build as a whole cannot run.
        """
        build_config = build_config or BuildConfig()
        logger.info(f"Building {self.paths.root} with profile {self.profile_name}")
        if clean:
            await self.clean(backend)

        for failure in self.tree.errors:
            reporter.report_exception(failure.error, failure.path)
        for warning in self.tree.warnings:
            reporter.report_warning(BuildWarning("tree", warning.message, str(warning.path)))
        for shadowed, used in self.templates.shadowed:
            reporter.report_warning(
                BuildWarning("templates", f"Shadowed by {used}", str(shadowed))
            )
        for node in self.tree.documents():
            if not self.is_included(node):
                reporter.report_skipped(node.path, "draft")
            elif not self.output_targets(node):
                reporter.report_skipped(node.path, "all outputs disabled")

        operation = self.get_processing_operation(
            reporter,
            self.create_math_renderer(build_config),
            max_concurrency=build_config.max_workers,
        )
        await operation.execute(backend)
        logger.info(f"Finished building {self.paths.root}")
