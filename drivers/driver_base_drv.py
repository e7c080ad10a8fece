from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, Optional
from dataclasses import dataclass

from drivers.stream_drv import ByteStream, Range, WriteSource
from utils import logging_ut

logger = logging_ut.get_logger("driver_base")


@dataclass
class FileStat:
    rel_path: str
    size: int
    modified: datetime
    etag: Optional[str] = None
    content_type: Optional[str] = None


class StorageDriver(ABC):
    """
    Abstract interface for storage drivers (fs, s3, etc).
    All paths are relative to the driver root.
    """

    async def init(self) -> None:
        """Prepare backend (create root, check bucket). Optional."""
        pass

    @abstractmethod
    async def read(self, rel_path: str, range: Optional[Range] = None) -> ByteStream:
        """
        Open file for reading, whole or a byte range.
        Caller drains or closes the returned stream.
        """
        pass

    @abstractmethod
    async def stat(self, rel_path: str) -> FileStat:
        """Get metadata about file. NotFound if missing."""
        pass

    async def exists(self, rel_path: str) -> bool:
        """
        True if stat() works. Any failure reads as "no",
        a flaky backend included.
        """
        try:
            await self.stat(rel_path)
            return True
        except Exception as e:
            logger.debug(f"exists({rel_path!r}) -> False: {e!r}")
            return False

    @abstractmethod
    async def write(self, rel_path: str, stream: WriteSource, content_type: Optional[str] = None) -> None:
        """
        Write stream to file. Existing file is replaced.
        """
        pass

    @abstractmethod
    async def copy(self, src: str, dest: str) -> None:
        pass

    async def move(self, src: str, dest: str) -> None:
        """
        Copy, then delete source. NOT atomic: if delete fails, both
        src and dest stay and the delete error is raised.
        """
        await self.copy(src, dest)
        try:
            await self.delete(src)
        except Exception:
            logger.warning(f"Move {src} -> {dest}: copied, but source not deleted")
            raise

    @abstractmethod
    async def delete(self, rel_path: str) -> None:
        """Remove file. Missing file is not an error."""
        pass

    @abstractmethod
    def list(self, prefix: str = "") -> AsyncIterator[str]:
        """
        Lazily yield rel paths of all files under prefix.
        Call again to start over.
        """
        pass
