import asyncio
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Optional, Union

# Anything write() accepts as content.
WriteSource = Union[bytes, bytearray, memoryview, AsyncIterable[bytes], Iterable[bytes]]


@dataclass(frozen=True)
class Range:
    """
    Byte range for partial reads, both ends inclusive.
    Either end can be left open.
    """
    start: Optional[int] = None
    end: Optional[int] = None

    def __post_init__(self):
        for bound in (self.start, self.end):
            if bound is not None and bound < 0:
                raise ValueError(f"Range bounds must be >= 0: {self}")
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(f"Range start > end: {self}")
        if self.start is None and self.end == 0:
            # "bytes=-0" asks for the last zero bytes; S3 answers 416
            raise ValueError(f"Empty suffix range: {self}")

    @property
    def is_open(self) -> bool:
        """No bound at all: same as reading everything."""
        return self.start is None and self.end is None

    def to_header(self) -> Optional[str]:
        """HTTP Range value: bytes=<start>-<end>, empty for a missing bound."""
        if self.is_open:
            return None
        start = "" if self.start is None else self.start
        end = "" if self.end is None else self.end
        return f"bytes={start}-{end}"


class ByteStream:
    """
    Async byte stream handed out by driver.read().

    Iterate it for chunks, or read(n) / read() it like a file. It holds the
    backend connection (or file handle) until drained or closed, so callers
    should either consume it fully or use `async with`.
    """

    def __init__(self, chunks: AsyncIterator[bytes], close: Optional[Callable[[], Awaitable[None]]] = None):
        self._chunks = chunks
        self._close = close
        self._buffer = bytearray()
        self._eof = False
        self.closed = False

    async def _next_chunk(self) -> Optional[bytes]:
        if self._eof or self.closed:
            return None
        while True:
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._eof = True
                # Fully drained: release backend resources right away
                await self.aclose()
                return None
            if chunk:
                return bytes(chunk)

    def __aiter__(self) -> "ByteStream":
        return self

    async def __anext__(self) -> bytes:
        if self._buffer:
            data = bytes(self._buffer)
            self._buffer.clear()
            return data
        chunk = await self._next_chunk()
        if chunk is None:
            raise StopAsyncIteration
        return chunk

    async def read(self, size: int = -1) -> bytes:
        """
        Read up to `size` bytes, everything left if size < 0.
        Returns b"" at the end of the stream.
        """
        while size < 0 or len(self._buffer) < size:
            chunk = await self._next_chunk()
            if chunk is None:
                break
            self._buffer.extend(chunk)

        if size < 0 or size > len(self._buffer):
            size = len(self._buffer)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            aclose = getattr(self._chunks, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            if self._close is not None:
                await self._close()

    async def __aenter__(self) -> "ByteStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


async def iter_source(source: WriteSource, chunk_size: int) -> AsyncIterator[bytes]:
    """
    Turn any accepted write() content into an async stream of chunks:
    bytes, async iterables (ByteStream included), sync iterables, and
    binary file objects (read in a worker thread).
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        if source:
            yield bytes(source)
        return

    if hasattr(source, "__aiter__"):
        async for chunk in source:
            if chunk:
                yield bytes(chunk)
        return

    read = getattr(source, "read", None)
    if read is not None:
        while True:
            chunk = await asyncio.to_thread(read, chunk_size)
            if not chunk:
                break
            yield bytes(chunk)
        return

    for chunk in source:
        if chunk:
            yield bytes(chunk)
