"""Tests for async byte stream helpers."""

import pytest

from fakes import byte_stream
from turbogha.storage.streams import (
    ArtifactStream,
    iter_file,
    iter_parts,
    replace_file_from_stream,
    write_stream_to_file,
)


async def collect(stream) -> list:
    return [chunk async for chunk in stream]


class TestIterParts:
    """Test regrouping streams into fixed-size parts."""

    @pytest.mark.asyncio
    async def test_regroups_chunks(self):
        """Test chunks are regrouped into fixed-size parts."""
        parts = await collect(iter_parts(byte_stream(b"ab", b"cde", b"f"), 4))
        assert parts == [b"abcd", b"ef"]

    @pytest.mark.asyncio
    async def test_exact_multiple(self):
        """Test input already aligned to the part size."""
        parts = await collect(iter_parts(byte_stream(b"abcd", b"efgh"), 4))
        assert parts == [b"abcd", b"efgh"]

    @pytest.mark.asyncio
    async def test_empty_stream_yields_one_empty_part(self):
        """Test an empty stream yields one empty part."""
        parts = await collect(iter_parts(byte_stream(), 4))
        assert parts == [b""]


class TestFileStreams:
    """Test file read/write helpers."""

    @pytest.mark.asyncio
    async def test_write_stream_to_file(self, tmp_path):
        """Test a stream is written to a new file."""
        path = tmp_path / "nested" / "out.bin"
        written = await write_stream_to_file(byte_stream(b"\x01", b"\x02\x03"), path)

        assert written == 3
        assert path.read_bytes() == b"\x01\x02\x03"

    @pytest.mark.asyncio
    async def test_write_replaces_existing_file(self, tmp_path):
        """Test writing replaces an existing file."""
        path = tmp_path / "out.bin"
        path.write_bytes(b"old contents")

        await write_stream_to_file(byte_stream(b"new"), path)

        assert path.read_bytes() == b"new"

    @pytest.mark.asyncio
    async def test_replace_file_from_stream(self, tmp_path):
        """Test the destination appears only after the stream drains."""
        path = tmp_path / "abc123.tg.bin"
        path.write_bytes(b"old contents")

        written = await replace_file_from_stream(byte_stream(b"new ", b"contents"), path)

        assert written == 12
        assert path.read_bytes() == b"new contents"
        assert list(tmp_path.iterdir()) == [path]

    @pytest.mark.asyncio
    async def test_replace_file_from_failing_stream(self, tmp_path):
        """Test a failing stream leaves neither the file nor a temp file."""
        async def broken_stream():
            yield b"\x01\x02"
            raise OSError("connection reset by peer")

        path = tmp_path / "abc123.tg.bin"

        with pytest.raises(OSError, match="connection reset"):
            await replace_file_from_stream(broken_stream(), path)

        assert not path.exists()
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_iter_file_chunks(self, tmp_path):
        """Test a file is read back in chunks."""
        path = tmp_path / "in.bin"
        path.write_bytes(b"0123456789")

        chunks = await collect(iter_file(path, chunk_size=4))

        assert chunks == [b"0123", b"4567", b"89"]


class TestArtifactStream:
    """Test ArtifactStream."""

    @pytest.mark.asyncio
    async def test_from_file(self, tmp_path):
        """Test a stream opened over a file."""
        path = tmp_path / "artifact.bin"
        path.write_bytes(b"artifact")

        stream = ArtifactStream.from_file(path, tag="linux")

        assert stream.size == 8
        assert stream.tag == "linux"
        assert await stream.read() == b"artifact"
        assert stream.closed

    @pytest.mark.asyncio
    async def test_close_callbacks_run_once(self):
        """Test close callbacks run exactly once."""
        calls = []

        async def on_close():
            calls.append("closed")

        stream = ArtifactStream(byte_stream(b"a", b"b"), on_close=on_close)
        assert await stream.read() == b"ab"
        await stream.aclose()

        assert calls == ["closed"]

    @pytest.mark.asyncio
    async def test_abandon_with_context_manager(self):
        """Test leaving the context manager closes an unread stream."""
        calls = []

        async def on_close():
            calls.append("closed")

        async with ArtifactStream(byte_stream(b"a", b"b"), size=2) as stream:
            stream.add_close_callback(on_close)

        assert stream.closed
        assert calls == ["closed"]
