import logging
from abc import abstractmethod
from contextlib import AbstractAsyncContextManager
from pathlib import Path

from attrs import define

logger = logging.getLogger(__name__)


@define
class Backend(AbstractAsyncContextManager):
    """Performs the file system side effects of a build."""

    async def __aenter__(self) -> "Backend":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    @abstractmethod
    async def write_text(self, path: Path, text: str) -> None: ...

    @abstractmethod
    async def copy_file(self, source: Path, target: Path) -> None: ...

    @abstractmethod
    async def copy_tree(self, source: Path, target: Path) -> None: ...

    @abstractmethod
    async def delete_tree(self, path: Path) -> None: ...
