"""The project/part/chapter/section hierarchy of a `content/` directory.

The hierarchy has a fixed depth, so nodes live in a flat arena
(`ContentTree.nodes`) and refer to each other by index instead of forming an
object graph. The tree is built once per build and not modified afterwards.

Classification rules:

- `content/` itself must contain `index.md` or `index.ipynb` (the project).
- A directory directly below the project is a part, a directory below a part
  is a chapter. Both need an index document.
- Every other document in a chapter directory is a section.
- Directories that contain no documents at all hold passthrough assets; so do
  non-document files anywhere in the tree.
"""

import logging
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import Any

from attrs import Factory, define, field, frozen

from courses.core.document_config import DocumentConfig, resolve_document
from courses.core.source_document import SourceDocument
from courses.errors import (
    CoursesError,
    DepthExceededError,
    DuplicateOutputError,
    MisplacedDocumentError,
    MissingIndexError,
)
from courses.infrastructure.utils.path_utils import (
    SourceFormat,
    contains_documents,
    find_index_file,
    is_document_file,
    is_index_file,
    iter_files,
    sorted_entries,
)

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    PROJECT = "project"
    PART = "part"
    CHAPTER = "chapter"
    SECTION = "section"

    @classmethod
    def for_depth(cls, depth: int) -> "NodeKind":
        return (cls.PROJECT, cls.PART, cls.CHAPTER)[depth]


MAX_DIRECTORY_DEPTH = 2

WEB = "web"
SOURCE = "source"


def output_paths(
    relative_path: Path, document: SourceDocument, config: DocumentConfig
) -> tuple[Path, Path]:
    """The web and source output paths of a document, relative to their build dirs."""
    web_path = relative_path.with_suffix(".html")
    if document.is_notebook or config.notebook_output:
        return web_path, relative_path.with_suffix(".ipynb")
    return web_path, relative_path.with_suffix(".md")


@frozen
class ContentNode:
    id: int
    kind: NodeKind
    path: Path
    relative_path: Path
    config: DocumentConfig
    document: SourceDocument = field(eq=False, repr=False)
    parent_id: int | None = None
    child_ids: tuple[int, ...] = ()

    @property
    def title(self) -> str:
        return self.config.title

    @property
    def source_format(self) -> SourceFormat:
        return self.document.format

    @property
    def is_index(self) -> bool:
        return self.kind is not NodeKind.SECTION

    @property
    def web_relative_path(self) -> Path:
        return output_paths(self.relative_path, self.document, self.config)[0]

    @property
    def source_relative_path(self) -> Path:
        return output_paths(self.relative_path, self.document, self.config)[1]


@frozen
class TreeFailure:
    path: Path
    error: CoursesError


@frozen
class TreeWarning:
    path: Path
    message: str


@frozen
class ContentTree:
    content_dir: Path
    nodes: tuple[ContentNode, ...]
    assets: tuple[Path, ...] = ()
    errors: tuple[TreeFailure, ...] = ()
    warnings: tuple[TreeWarning, ...] = ()

    @property
    def root(self) -> ContentNode:
        return self.nodes[0]

    def node(self, node_id: int) -> ContentNode:
        return self.nodes[node_id]

    def children(self, node: ContentNode) -> list[ContentNode]:
        return [self.nodes[child_id] for child_id in node.child_ids]

    def parent(self, node: ContentNode) -> ContentNode | None:
        if node.parent_id is None:
            return None
        return self.nodes[node.parent_id]

    def ancestors(self, node: ContentNode) -> list[ContentNode]:
        result = []
        current = self.parent(node)
        while current is not None:
            result.append(current)
            current = self.parent(current)
        return list(reversed(result))

    def documents(self) -> Iterator[ContentNode]:
        """All nodes in pre-order (parents before their children)."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(self.children(node)))

    def find(self, relative_path: Path) -> ContentNode | None:
        for node in self.nodes:
            if node.relative_path == relative_path:
                return node
        return None

    def relative_asset_path(self, asset: Path) -> Path:
        return asset.relative_to(self.content_dir)

    def __len__(self) -> int:
        return len(self.nodes)


@define
class _TreeBuilder:
    content_dir: Path
    defaults: dict[str, Any]
    _nodes: list[ContentNode | None] = Factory(list)
    _assets: list[Path] = Factory(list)
    _failures: list[TreeFailure] = Factory(list)
    _warnings: list[TreeWarning] = Factory(list)
    _outputs: dict[tuple[str, Path], Path] = Factory(dict)

    def build(self) -> ContentTree:
        index = find_index_file(self.content_dir)
        if index is None:
            raise MissingIndexError(self.content_dir)
        self._add_directory(self.content_dir, index, depth=0, parent_id=None)
        nodes = tuple(node for node in self._nodes if node is not None)
        assert len(nodes) == len(self._nodes)
        logger.debug(
            f"Built content tree with {len(nodes)} documents, "
            f"{len(self._assets)} assets and {len(self._failures)} failures"
        )
        return ContentTree(
            content_dir=self.content_dir,
            nodes=nodes,
            assets=tuple(self._assets),
            errors=tuple(self._failures),
            warnings=tuple(self._warnings),
        )

    def _record(self, path: Path, error: CoursesError) -> None:
        error.with_path(path)
        logger.error(f"Skipping {path}: {error}")
        self._failures.append(TreeFailure(path=path, error=error))

    def _warn(self, path: Path, message: str) -> None:
        logger.warning(f"{path}: {message}")
        self._warnings.append(TreeWarning(path=path, message=message))

    def _claim(self, path: Path, outputs: list[tuple[str, Path]]) -> bool:
        """Register the outputs of `path`; record a failure if one is taken."""
        for key in outputs:
            claimed_by = self._outputs.get(key)
            if claimed_by is not None:
                self._record(path, DuplicateOutputError(path, key[1], claimed_by))
                return False
        for key in outputs:
            self._outputs[key] = path
        return True

    def _claim_document(
        self, path: Path, document: SourceDocument, config: DocumentConfig
    ) -> bool:
        web_path, source_path = output_paths(
            path.relative_to(self.content_dir), document, config
        )
        return self._claim(path, [(WEB, web_path), (SOURCE, source_path)])

    def _add_asset(self, path: Path) -> None:
        relative_path = path.relative_to(self.content_dir)
        if self._claim(path, [(WEB, relative_path), (SOURCE, relative_path)]):
            self._assets.append(path)

    def _load(self, path: Path) -> tuple[SourceDocument, DocumentConfig]:
        document = SourceDocument.load(path)
        config = resolve_document(document.raw_config, self.defaults, path)
        return document, config

    def _reserve_id(self) -> int:
        self._nodes.append(None)
        return len(self._nodes) - 1

    def _add_directory(
        self, dir_path: Path, index: Path, depth: int, parent_id: int | None
    ) -> int:
        document, config = self._load(index)
        self._claim_document(index, document, config)
        node_id = self._reserve_id()
        child_ids: list[int] = []
        kind = NodeKind.for_depth(depth)

        for entry in sorted_entries(dir_path):
            if entry.is_dir():
                child_id = self._add_subdirectory(entry, depth + 1, node_id)
            elif entry == index:
                continue
            elif is_index_file(entry):
                self._warn(entry, f"Ignoring {entry.name}, using {index.name} as index")
                continue
            elif not is_document_file(entry):
                self._add_asset(entry)
                continue
            elif kind is NodeKind.CHAPTER:
                child_id = self._add_section(entry, node_id)
            else:
                self._record(entry, MisplacedDocumentError(entry))
                continue
            if child_id is not None:
                child_ids.append(child_id)

        self._nodes[node_id] = ContentNode(
            id=node_id,
            kind=kind,
            path=index,
            relative_path=index.relative_to(self.content_dir),
            config=config,
            document=document,
            parent_id=parent_id,
            child_ids=tuple(child_ids),
        )
        return node_id

    def _add_subdirectory(self, dir_path: Path, depth: int, parent_id: int) -> int | None:
        if not contains_documents(dir_path):
            for file in iter_files(dir_path):
                self._add_asset(file)
            return None
        if depth > MAX_DIRECTORY_DEPTH:
            self._record(dir_path, DepthExceededError(dir_path))
            return None
        index = find_index_file(dir_path)
        if index is None:
            self._record(dir_path, MissingIndexError(dir_path))
            return None
        try:
            return self._add_directory(dir_path, index, depth, parent_id)
        except CoursesError as e:
            self._record(index, e)
            return None

    def _add_section(self, path: Path, parent_id: int) -> int | None:
        try:
            document, config = self._load(path)
        except CoursesError as e:
            self._record(path, e)
            return None
        if not self._claim_document(path, document, config):
            return None
        node_id = self._reserve_id()
        self._nodes[node_id] = ContentNode(
            id=node_id,
            kind=NodeKind.SECTION,
            path=path,
            relative_path=path.relative_to(self.content_dir),
            config=config,
            document=document,
            parent_id=parent_id,
        )
        return node_id


def build_content_tree(
    content_dir: Path, defaults: dict[str, Any] | None = None
) -> ContentTree:
    """Classify the files below `content_dir` into a content tree.

    Raises:
        MissingIndexError: If `content_dir` has no index document.
        CoursesError: If the project index cannot be loaded.
    """
    logger.debug(f"Building content tree for {content_dir}")
    return _TreeBuilder(content_dir=content_dir, defaults=dict(defaults or {})).build()
