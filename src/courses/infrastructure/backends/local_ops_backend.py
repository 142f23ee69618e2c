import asyncio
import logging
import shutil
from pathlib import Path

from attrs import define

from courses.infrastructure.backend import Backend
from courses.infrastructure.utils.path_utils import SKIP_DIRS_FOR_CONTENT

logger = logging.getLogger(__name__)


@define
class LocalOpsBackend(Backend):
    """Backend that writes to the local file system.

    Blocking file operations run in the default executor so that the event
    loop stays free for other documents and for KaTeX subprocesses.
    """

    async def write_text(self, path: Path, text: str) -> None:
        logger.debug(f"Writing {path}")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write_text_sync, path, text)

    @staticmethod
    def _write_text_sync(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    async def copy_file(self, source: Path, target: Path) -> None:
        logger.debug(f"Copying {source} to {target}")
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._copy_file_sync, source, target)
        except Exception as e:
            logger.error(f"Error while copying file '{source}' to {target}: {e}")
            logger.debug("Error traceback:", exc_info=e)
            raise

    @staticmethod
    def _copy_file_sync(source: Path, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)

    async def copy_tree(self, source: Path, target: Path) -> None:
        logger.debug(f"Copying directory {source} to {target}")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._copy_tree_sync, source, target)

    @staticmethod
    def _copy_tree_sync(source: Path, target: Path) -> None:
        target.mkdir(parents=True, exist_ok=True)
        shutil.copytree(
            source,
            target,
            dirs_exist_ok=True,
            ignore=shutil.ignore_patterns(*SKIP_DIRS_FOR_CONTENT),
        )

    async def delete_tree(self, path: Path) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._delete_tree_sync, path)

    @staticmethod
    def _delete_tree_sync(path: Path) -> None:
        if path.exists():
            logger.info(f"Removing {path}")
            shutil.rmtree(path)
