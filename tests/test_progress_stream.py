"""Tests for ProgressStream."""
import pytest

from batch_uploader.services.progress_stream import ProgressStream


async def collect(stream):
    return b"".join([chunk async for chunk in stream])


class TestProgressStream:
    @pytest.mark.asyncio
    async def test_content_is_unchanged(self, tmp_path):
        path = tmp_path / "data.bin"
        payload = bytes(range(256)) * 3
        path.write_bytes(payload)

        assert await collect(ProgressStream(path, chunk_size=100)) == payload

    @pytest.mark.asyncio
    async def test_emits_delta_per_chunk(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"x" * 25)
        deltas = []
        stream = ProgressStream(path, chunk_size=10)
        stream.on_progress(deltas.append)

        await collect(stream)

        assert deltas == [10, 10, 5]
        assert stream.bytes_read == 25

    @pytest.mark.asyncio
    async def test_empty_file_emits_nothing(self, tmp_path):
        path = tmp_path / "empty.bin"
        path.write_bytes(b"")
        deltas = []
        stream = ProgressStream(path)
        stream.on_progress(deltas.append)

        assert await collect(stream) == b""
        assert deltas == []

    @pytest.mark.asyncio
    async def test_single_use(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"abc")
        stream = ProgressStream(path)
        await collect(stream)

        with pytest.raises(RuntimeError, match="already consumed"):
            stream.__aiter__()

    @pytest.mark.asyncio
    async def test_missing_file_fails_on_read(self, tmp_path):
        stream = ProgressStream(tmp_path / "missing.bin")

        with pytest.raises(FileNotFoundError):
            await collect(stream)
