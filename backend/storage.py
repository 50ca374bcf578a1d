"""Blob storage for uploaded file bytes.

Blobs are addressed by storage key. The store knows nothing about TTLs or
counters; pairing a blob with its metadata row is the file manager's job.

On disk every key gets its own directory::

    <root>/<key>/data          the bytes
    <root>/<key>/content_type  the MIME type given at upload
"""

import inspect
import logging
import re
import time
from pathlib import Path
from typing import AsyncIterator, Protocol

import aiofiles
import aiofiles.os

from errors import InvalidInputError, NotFoundError, StorageFailureError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB
DATA_NAME = "data"
CONTENT_TYPE_NAME = "content_type"
PARTIAL_NAME = ".data.partial"

_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class BlobStream:
    """Readable handle on a stored blob. Must be closed by whoever holds it."""

    def __init__(self, handle, key: str):
        self._handle = handle
        self.key = key
        self.closed = False

    async def read(self, size: int = -1) -> bytes:
        return await self._handle.read(size)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while chunk := await self._handle.read(CHUNK_SIZE):
            yield chunk

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._handle.close()

    async def __aenter__(self) -> "BlobStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class BlobStore(Protocol):
    async def put(self, key: str, stream, size: int, content_type: str) -> int: ...

    async def get(self, key: str) -> BlobStream: ...

    async def delete(self, key: str) -> None: ...

    def url_for(self, key: str) -> str: ...

    async def list_keys(self, older_than: float = 0) -> list[str]: ...


async def _read_chunk(stream, size: int) -> bytes:
    # Accepts both sync file objects and async ones such as UploadFile.
    chunk = stream.read(size)
    if inspect.isawaitable(chunk):
        chunk = await chunk
    return chunk


class LocalBlobStore:
    def __init__(self, root_dir: str | Path):
        self.root = Path(root_dir)

    def init(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _dir(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise InvalidInputError(f"invalid storage key {key!r}")
        return self.root / key

    async def put(self, key: str, stream, size: int, content_type: str) -> int:
        """Write ``stream`` under ``key``. Returns the number of bytes written."""
        blob_dir = self._dir(key)
        partial = blob_dir / PARTIAL_NAME
        written = 0
        try:
            await aiofiles.os.makedirs(blob_dir, exist_ok=True)
            async with aiofiles.open(partial, "wb") as f:
                while chunk := await _read_chunk(stream, CHUNK_SIZE):
                    written += len(chunk)
                    await f.write(chunk)
            async with aiofiles.open(blob_dir / CONTENT_TYPE_NAME, "w") as f:
                await f.write(content_type)
            await aiofiles.os.replace(partial, blob_dir / DATA_NAME)
        except OSError as exc:
            logger.error("Failed to write blob %s", key, exc_info=True)
            raise StorageFailureError("blob.put", key, str(exc)) from exc

        if size and written != size:
            logger.warning("Blob %s: expected %d bytes, wrote %d", key, size, written)
        logger.debug("Stored blob %s (%d bytes, %s)", key, written, content_type)
        return written

    async def get(self, key: str) -> BlobStream:
        path = self._dir(key) / DATA_NAME
        try:
            handle = await aiofiles.open(path, "rb")
        except FileNotFoundError as exc:
            logger.warning("Blob %s not found", key)
            raise NotFoundError("blob", key) from exc
        except OSError as exc:
            logger.error("Failed to open blob %s", key, exc_info=True)
            raise StorageFailureError("blob.get", key, str(exc)) from exc
        return BlobStream(handle, key)

    async def delete(self, key: str) -> None:
        """Remove the blob. Deleting a missing key is not an error."""
        blob_dir = self._dir(key)
        try:
            for name in (DATA_NAME, CONTENT_TYPE_NAME, PARTIAL_NAME):
                try:
                    await aiofiles.os.remove(blob_dir / name)
                except FileNotFoundError:
                    pass
            try:
                await aiofiles.os.rmdir(blob_dir)
            except FileNotFoundError:
                pass
        except OSError as exc:
            logger.error("Failed to delete blob %s", key, exc_info=True)
            raise StorageFailureError("blob.delete", key, str(exc)) from exc
        logger.debug("Deleted blob %s", key)

    def url_for(self, key: str) -> str:
        return (self._dir(key) / DATA_NAME).resolve().as_uri()

    async def list_keys(self, older_than: float = 0) -> list[str]:
        """Keys whose directory was last modified more than ``older_than`` seconds ago."""
        cutoff = time.time() - older_than
        keys = []
        try:
            names = await aiofiles.os.listdir(self.root)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageFailureError("blob.list", None, str(exc)) from exc

        for name in names:
            if not _KEY_RE.match(name):
                continue
            try:
                stat = await aiofiles.os.stat(self.root / name)
            except FileNotFoundError:
                continue
            if stat.st_mtime <= cutoff:
                keys.append(name)
        return sorted(keys)
