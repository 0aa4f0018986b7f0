"""
File utility functions for object uploads and downloads.

This module provides MIME type detection, MD5 hashing of local files and
streams, chunked async file iteration and safe closing of file handles.
"""

import base64
import hashlib
import inspect
import mimetypes
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Optional

import aiofiles
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def md5_base64(data: bytes) -> str:
    """Base64 encoded MD5 digest, the format of the Content-MD5 header."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


class HashingReader:
    """
    Wraps an async readable and hashes every chunk read through it.

    Used for the first pass of a file upload: the file is drained once to
    compute its Content-MD5, then re-opened and streamed as the body.
    """

    def __init__(self, source: Any, algorithm: str = "md5"):
        self._source = source
        self._hash = hashlib.new(algorithm)
        self.bytes_read = 0

    async def read(self, size: int = -1) -> bytes:
        chunk = await self._source.read(size)
        if chunk:
            self._hash.update(chunk)
            self.bytes_read += len(chunk)
        return chunk

    async def drain(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """Read the source to its end, returning the number of bytes seen."""
        while await self.read(chunk_size):
            pass
        return self.bytes_read

    def hexdigest(self) -> str:
        return self._hash.hexdigest()

    def base64_digest(self) -> str:
        return base64.b64encode(self._hash.digest()).decode("ascii")


async def close_resource(resource: Any) -> None:
    """
    Close a file handle or stream, ignoring failures.

    Closing an already-closed or already-released handle is a no-op.
    """
    if resource is None:
        return

    close = getattr(resource, "close", None)
    if close is None:
        return

    try:
        result = close()
        if inspect.isawaitable(result):
            await result
    except (OSError, ValueError, RuntimeError) as e:
        logger.debug("Ignoring error while closing resource", error=str(e))


async def iter_file(file_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield the content of a local file chunk by chunk."""
    async with aiofiles.open(file_path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk


class FileUtils:
    """Utility class for local file inspection."""

    def __init__(self):
        mimetypes.init()

    def get_content_type(self, file_path: Path) -> Optional[str]:
        """
        Guess the MIME content type of a file from its extension.

        Args:
            file_path: Path to the file

        Returns:
            MIME content type string, or None when the extension is unknown
        """
        content_type, _ = mimetypes.guess_type(str(file_path))
        return content_type

    async def calculate_md5(self, file_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> tuple[str, int]:
        """
        Hash a local file.

        Returns:
            Tuple of (base64 MD5 digest, number of bytes read)
        """
        f = await aiofiles.open(file_path, "rb")
        try:
            reader = HashingReader(f)
            size = await reader.drain(chunk_size)
            return reader.base64_digest(), size
        finally:
            await close_resource(f)
