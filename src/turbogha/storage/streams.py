"""Async byte stream helpers.

Artifacts are passed around as async iterables of ``bytes`` so that they are
never held in memory as a whole. Blocking file I/O runs in the default
executor.
"""

import asyncio
import os
import uuid
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable, List, Optional

DEFAULT_CHUNK_SIZE = 1024 * 1024


async def iter_file(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield the contents of a file in chunks.

    Args:
        path: File to read
        chunk_size: Maximum size of each chunk

    Yields:
        File contents
    """
    loop = asyncio.get_running_loop()
    f = await loop.run_in_executor(None, open, path, "rb")
    try:
        while True:
            chunk = await loop.run_in_executor(None, f.read, chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        await loop.run_in_executor(None, f.close)


async def write_stream_to_file(stream: AsyncIterable[bytes], path: Path) -> int:
    """Copy a byte stream into a file, replacing its contents.

    Args:
        stream: Source stream
        path: Destination file

    Returns:
        Number of bytes written
    """
    loop = asyncio.get_running_loop()
    path.parent.mkdir(parents=True, exist_ok=True)
    f = await loop.run_in_executor(None, open, path, "wb")
    written = 0
    try:
        async for chunk in stream:
            await loop.run_in_executor(None, f.write, chunk)
            written += len(chunk)
    finally:
        await loop.run_in_executor(None, f.close)
    return written


async def replace_file_from_stream(stream: AsyncIterable[bytes], path: Path) -> int:
    """Copy a byte stream into ``path`` only once the stream has fully drained.

    Bytes go to a sibling temp file that is moved onto ``path`` at the end,
    so a failing stream never leaves a truncated file at ``path``.

    Args:
        stream: Source stream
        path: Destination file

    Returns:
        Number of bytes written
    """
    temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        written = await write_stream_to_file(stream, temp_path)
        os.replace(temp_path, path)
    finally:
        temp_path.unlink(missing_ok=True)
    return written


async def iter_parts(stream: AsyncIterable[bytes], part_size: int) -> AsyncIterator[bytes]:
    """Regroup a byte stream into parts of exactly ``part_size`` bytes.

    The last part may be shorter. An empty stream yields a single empty part.
    """
    buffer = bytearray()
    emitted = False
    async for chunk in stream:
        buffer.extend(chunk)
        while len(buffer) >= part_size:
            yield bytes(buffer[:part_size])
            del buffer[:part_size]
            emitted = True
    if buffer or not emitted:
        yield bytes(buffer)


class ArtifactStream:
    """A cached artifact being read.

    Iterate it to consume the bytes. Consumers that stop early must call
    :meth:`aclose` (or use it as an async context manager) so that the
    underlying file or HTTP response is released.

    Attributes:
        size: Declared size in bytes, 0 when unknown
        tag: Artifact tag recovered from the cache key, if any
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        size: int = 0,
        tag: Optional[str] = None,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self._chunks = chunks
        self.size = size
        self.tag = tag
        self._close_callbacks: List[Callable[[], Awaitable[None]]] = []
        if on_close is not None:
            self._close_callbacks.append(on_close)
        self.closed = False

    @classmethod
    def from_file(
        cls, path: Path, tag: Optional[str] = None, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> "ArtifactStream":
        """Open a stream over a local file."""
        size = path.stat().st_size
        return cls(iter_file(path, chunk_size), size=size, tag=tag)

    def add_close_callback(self, callback: Callable[[], Awaitable[None]]) -> None:
        self._close_callbacks.append(callback)

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._chunks:
                yield chunk
        finally:
            await self.aclose()

    async def read(self) -> bytes:
        """Consume the whole stream into memory."""
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()
        for callback in self._close_callbacks:
            await callback()

    async def __aenter__(self) -> "ArtifactStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
