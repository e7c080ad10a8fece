import os
import shutil
import asyncio
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional

import aiofiles
from aiofiles.os import stat as aio_stat

from drivers.driver_base_drv import StorageDriver, FileStat
from drivers.stream_drv import ByteStream, Range, WriteSource, iter_source
from config import fs_cfg
from utils.errors_ut import NotFound
from utils.path_ut import safe_join
from utils import logging_ut

logger = logging_ut.get_logger("fs_driver")


class FSDriver(StorageDriver):
    """
    Implementation for local filesystem driver.
    """

    def __init__(self, root: Optional[str] = None):
        self.root = str(Path(root or fs_cfg.FS_ROOT).resolve())

    def _full_path(self, rel_path: str) -> str:
        """Safely get abs path."""
        return safe_join(self.root, rel_path)

    async def init(self) -> None:
        """Create root dir if not exist."""
        if not os.path.exists(self.root):
            logger.info(f"Creating storage root: {self.root}")
            os.makedirs(self.root, exist_ok=True)
        else:
            logger.info(f"Storage root exists: {self.root}")

    async def read(self, rel_path: str, range: Optional[Range] = None) -> ByteStream:
        full_path = self._full_path(rel_path)
        if not await asyncio.to_thread(os.path.isfile, full_path):
            raise NotFound(f"File not found: {rel_path}")

        size = (await aio_stat(full_path)).st_size
        offset, length = 0, 0
        if range and not range.is_open:
            if range.start is None:
                # Suffix range: last N bytes
                offset = max(size - range.end, 0)
            else:
                offset = range.start
                if range.end is not None:
                    length = range.end - range.start + 1

        return ByteStream(self._read_chunks(full_path, offset, length))

    async def _read_chunks(self, full_path: str, offset: int, length: int) -> AsyncIterator[bytes]:
        chunk_size = fs_cfg.CHUNK_SIZE

        async with aiofiles.open(full_path, mode='rb') as f:
            if offset > 0:
                await f.seek(offset)

            bytes_read = 0
            while True:
                to_read = chunk_size
                if length > 0:
                    remaining = length - bytes_read
                    if remaining <= 0:
                        break
                    to_read = min(chunk_size, remaining)

                chunk = await f.read(to_read)
                if not chunk:
                    break

                yield chunk
                bytes_read += len(chunk)

    async def stat(self, rel_path: str) -> FileStat:
        full_path = self._full_path(rel_path)

        if not await asyncio.to_thread(os.path.isfile, full_path):
            raise NotFound(f"File not found: {rel_path}")
        st = await aio_stat(full_path)

        return FileStat(
            rel_path=rel_path,
            size=st.st_size,
            modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            etag=None,
            content_type=mimetypes.guess_type(full_path)[0],
        )

    async def write(self, rel_path: str, stream: WriteSource, content_type: Optional[str] = None) -> None:
        # Local files carry no content type
        full_path = self._full_path(rel_path)

        # Create parent dirs
        parent_dir = os.path.dirname(full_path)
        await asyncio.to_thread(os.makedirs, parent_dir, exist_ok=True)

        async with aiofiles.open(full_path, mode='wb') as f:
            async for chunk in iter_source(stream, fs_cfg.CHUNK_SIZE):
                await f.write(chunk)

    async def copy(self, src: str, dest: str) -> None:
        full_src = self._full_path(src)
        full_dst = self._full_path(dest)

        await asyncio.to_thread(os.makedirs, os.path.dirname(full_dst), exist_ok=True)
        await asyncio.to_thread(shutil.copy2, full_src, full_dst)

    async def move(self, src: str, dest: str) -> None:
        """Same filesystem: plain atomic rename."""
        full_src = self._full_path(src)
        full_dst = self._full_path(dest)

        await asyncio.to_thread(os.makedirs, os.path.dirname(full_dst), exist_ok=True)
        await asyncio.to_thread(os.replace, full_src, full_dst)

    async def delete(self, rel_path: str) -> None:
        full_path = self._full_path(rel_path)
        try:
            await asyncio.to_thread(os.remove, full_path)
        except FileNotFoundError:
            pass

    def _walk(self, base: str) -> List[str]:
        results = []
        for dirpath, dirnames, filenames in os.walk(base):
            for name in filenames:
                full = os.path.join(dirpath, name)
                results.append(os.path.relpath(full, self.root).replace(os.sep, "/"))
        return sorted(results)

    async def list(self, prefix: str = "") -> AsyncIterator[str]:
        """
        All files under prefix, recursive, sorted.
        Prefix is a folder here, not a key fragment.
        """
        base = self._full_path(prefix)
        if not await asyncio.to_thread(os.path.isdir, base):
            return

        for rel in await asyncio.to_thread(self._walk, base):
            yield rel
