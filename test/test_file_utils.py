import base64
import hashlib
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import aiofiles
import pytest

from oss_client.utils.file_utils import (
    FileUtils,
    HashingReader,
    close_resource,
    iter_file,
    md5_base64,
)


def test_md5_base64() -> None:
    assert md5_base64(b"") == "1B2M2Y8AsgTpgAmY7PhCfg=="
    assert md5_base64(b"hello") == base64.b64encode(hashlib.md5(b"hello").digest()).decode()


def test_get_content_type() -> None:
    file_utils = FileUtils()
    assert file_utils.get_content_type(Path("a/b.png")) == "image/png"
    assert file_utils.get_content_type(Path("a/b.unknown-ext")) is None


@pytest.mark.asyncio
async def test_hashing_reader(temp_dir: Path) -> None:
    path = temp_dir / "data.bin"
    data = b"0123456789" * 10000
    path.write_bytes(data)

    async with aiofiles.open(path, "rb") as f:
        reader = HashingReader(f)
        size = await reader.drain(chunk_size=4096)

    assert size == len(data)
    assert reader.hexdigest() == hashlib.md5(data).hexdigest()
    assert reader.base64_digest() == md5_base64(data)


@pytest.mark.asyncio
async def test_calculate_md5(temp_dir: Path) -> None:
    path = temp_dir / "data.txt"
    path.write_bytes(b"hello")

    digest, size = await FileUtils().calculate_md5(path)

    assert digest == md5_base64(b"hello")
    assert size == 5


@pytest.mark.asyncio
async def test_iter_file(temp_dir: Path) -> None:
    path = temp_dir / "data.bin"
    path.write_bytes(b"abcdefg")

    chunks = [chunk async for chunk in iter_file(path, chunk_size=3)]

    assert chunks == [b"abc", b"def", b"g"]


class TestCloseResource:
    """Test suite for safe closing."""

    @pytest.mark.asyncio
    async def test_close_async_handle_twice(self, temp_dir: Path) -> None:
        path = temp_dir / "data.bin"
        path.write_bytes(b"x")
        f = await aiofiles.open(path, "rb")

        await close_resource(f)
        await close_resource(f)

    @pytest.mark.asyncio
    async def test_close_sync_handle(self) -> None:
        resource = MagicMock()

        await close_resource(resource)

        resource.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_errors_are_ignored(self) -> None:
        resource = MagicMock()
        resource.close = AsyncMock(side_effect=OSError("bad resource"))

        await close_resource(resource)

        resource.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_none_and_closeless(self) -> None:
        await close_resource(None)
        await close_resource(object())
