"""Concrete implementation of the FileSystem interface for the local disk.

Uses `pathlib` for paths and `aiofiles` for async binary I/O.
"""

import logging
from pathlib import Path

import aiofiles

from auracli.domain.interfaces.filesystem import FileSystem
from auracli.domain.models.common import FilePath

logger = logging.getLogger(__name__)


class LocalFileSystem(FileSystem):
    """Implementation of FileSystem for the local disk."""

    def __init__(self):
        logger.info("LocalFileSystem initialized.")

    async def read_bytes(self, file_path: FilePath) -> bytes:
        path = Path(file_path)
        logger.debug(f"Attempting to read file: {path}")
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            async with aiofiles.open(path, mode='rb') as f:
                content = await f.read()
            logger.debug(f"Successfully read {len(content)} bytes from {path}")
            return content
        except PermissionError as e:
            logger.error(f"Permission denied reading file: {path}")
            raise PermissionError(f"Permission denied: {file_path}") from e
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}", exc_info=True)
            raise IOError(f"Failed to read file {file_path}: {e}") from e

    async def write_bytes(self, file_path: FilePath, content: bytes) -> None:
        path = Path(file_path)
        logger.debug(f"Attempting to write {len(content)} bytes to file: {path}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, mode='wb') as f:
                await f.write(content)
            logger.debug(f"Successfully wrote to {path}")
        except PermissionError as e:
            logger.error(f"Permission denied writing file: {path}")
            raise PermissionError(f"Permission denied: {file_path}") from e
        except OSError as e:
            logger.error(f"Error writing file {path}: {e}", exc_info=True)
            raise IOError(f"Failed to write file {file_path}: {e}") from e
