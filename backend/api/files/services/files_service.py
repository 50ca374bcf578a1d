"""Files service: lifecycle of uploaded binary content.

Bytes live in the blob store, metadata in the files repository. Upload writes
the blob first and the row second; if the row cannot be written the blob is
deleted again. A crash between the two steps leaves an orphaned blob, which
``reap_orphans`` removes later. A row never points at a blob that was not
written.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from api.common.gating import UNLIMITED, utcnow
from api.common.lifecycle import LifecycleManager, validate_ttl
from api.files.dto.file import FileRecord
from api.files.repositories.files_repository import FilesRepository
from errors import InvalidInputError
from ids import new_storage_key, new_token
from storage import BlobStore, BlobStream

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class FileLifecycleManager(LifecycleManager[FileRecord]):
    resource = "file"
    counter_field = "downloads"
    limit_field = "max_downloads"

    def __init__(
        self,
        repository: FilesRepository,
        blob_store: BlobStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(repository, clock)
        self.blob_store = blob_store

    async def upload(
        self,
        stream,
        filename: str,
        size: int,
        content_type: str | None,
        ttl: timedelta,
        max_downloads: int = UNLIMITED,
        timeout: float | None = None,
    ) -> FileRecord:
        if size < 0:
            raise InvalidInputError("size must not be negative")
        validate_ttl(ttl)

        now = self.clock()
        record = FileRecord(
            id=new_token(),
            original_name=filename,
            size=size,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            storage_key=new_storage_key(),
            downloads=0,
            max_downloads=max_downloads,
            created_at=now,
            expires_at=now + ttl,
        )

        failed_compensation = None
        try:
            async with self._deadline(timeout):
                await self.blob_store.put(record.storage_key, stream, size, record.content_type)
                logger.debug("File %s written to blob %s", record.id, record.storage_key)
                try:
                    await self.repository.store(record)
                except (Exception, asyncio.CancelledError) as exc:
                    logger.error(
                        "Failed to store metadata for file %s, removing blob %s",
                        record.id,
                        record.storage_key,
                    )
                    failed_compensation = await self._discard_blob(record.storage_key)
                    if failed_compensation:
                        exc.add_note(failed_compensation)
                    raise
        except TimeoutError as exc:
            # a deadline surfaces as a new TimeoutError, not the cancelled error above
            if failed_compensation and failed_compensation not in getattr(exc, "__notes__", ()):
                exc.add_note(failed_compensation)
            raise

        logger.info("File %s uploaded (%s, %d bytes)", record.id, record.original_name, record.size)
        return record

    async def _discard_blob(self, key: str) -> str | None:
        """Single best-effort compensating delete. Returns a note when it fails."""
        try:
            await self.blob_store.delete(key)
        except Exception as exc:
            logger.error("Failed to remove blob %s after metadata failure", key, exc_info=True)
            return f"compensating delete of blob {key} also failed: {exc!r}"
        return None

    async def download(self, file_id: str, timeout: float | None = None) -> tuple[BlobStream, FileRecord]:
        """Open the file for reading and count the download.

        The caller owns the returned stream and must close it.
        """
        async with self._deadline(timeout):
            record = await self._find(file_id)
            self._gate(record)
            stream = await self.blob_store.get(record.storage_key)
            try:
                record = await self._increment(record)
            except (Exception, asyncio.CancelledError):
                await stream.close()
                logger.error("Failed to count download of file %s", file_id)
                raise

        logger.info("File %s downloaded (%d/%d)", file_id, record.downloads, record.max_downloads)
        return stream, record

    async def get_info(self, file_id: str, timeout: float | None = None) -> FileRecord:
        logger.debug("Fetching file info for %s", file_id)
        async with self._deadline(timeout):
            return await self._find(file_id)

    async def delete(self, file_id: str, timeout: float | None = None) -> None:
        async with self._deadline(timeout):
            record = await self._find(file_id)
            await self.blob_store.delete(record.storage_key)
            await self.repository.delete(file_id)
        logger.info("File %s deleted", file_id)

    async def _release(self, records: list[FileRecord]) -> None:
        for record in records:
            try:
                await self.blob_store.delete(record.storage_key)
            except Exception:
                # left for reap_orphans
                logger.warning(
                    "Failed to delete blob %s of expired file %s",
                    record.storage_key,
                    record.id,
                    exc_info=True,
                )

    async def reap_orphans(self, grace: float, timeout: float | None = None) -> int:
        """Delete blobs older than ``grace`` seconds that no file row references."""
        async with self._deadline(timeout):
            # list blobs before reading keys so a row committed meanwhile is still seen
            candidates = await self.blob_store.list_keys(older_than=grace)
            if not candidates:
                return 0
            referenced = await self.repository.storage_keys()
            orphans = [key for key in candidates if key not in referenced]
            for key in orphans:
                await self.blob_store.delete(key)

        if orphans:
            logger.info("Removed %d orphaned blobs", len(orphans))
        return len(orphans)
