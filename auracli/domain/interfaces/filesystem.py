"""Interface for file system operations needed by the diagnostics flow."""

import abc

from ..models.common import FilePath


class FileSystem(abc.ABC):
    """Abstract Base Class for reading photos and writing generated images."""

    @abc.abstractmethod
    async def read_bytes(self, file_path: FilePath) -> bytes:
        """Reads a binary file asynchronously.

        Raises:
            FileNotFoundError: If the file does not exist.
            IOError: For other read errors.
        """
        pass

    @abc.abstractmethod
    async def write_bytes(self, file_path: FilePath, content: bytes) -> None:
        """Writes a binary file asynchronously, creating parent directories."""
        pass
