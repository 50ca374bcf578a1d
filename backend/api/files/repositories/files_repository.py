"""Files repository: data access layer."""

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.common.gating import as_utc
from api.files.dto.file import FileRecord
from api.files.orm.file_model import FileModel
from database import session_scope
from errors import NotFoundError

logger = logging.getLogger(__name__)


def _model_to_dto(model: FileModel) -> FileRecord:
    return FileRecord(
        id=model.id,
        original_name=model.original_name,
        size=model.size or 0,
        content_type=model.content_type,
        storage_key=model.storage_key,
        downloads=model.downloads or 0,
        max_downloads=model.max_downloads,
        created_at=as_utc(model.created_at),
        expires_at=as_utc(model.expires_at),
    )


class FilesRepository:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def store(self, record: FileRecord) -> None:
        async with session_scope(self._sessionmaker, "files.store", record.id) as session:
            session.add(FileModel(**record.model_dump()))

    async def find(self, file_id: str) -> FileRecord:
        async with session_scope(self._sessionmaker, "files.find", file_id) as session:
            model = await session.get(FileModel, file_id)
            if model is None:
                logger.warning("File %s not found", file_id)
                raise NotFoundError("file", file_id)
            return _model_to_dto(model)

    async def increment(self, file_id: str) -> None:
        """Add one download in a single UPDATE so concurrent downloads never lose a count."""
        async with session_scope(self._sessionmaker, "files.increment", file_id) as session:
            result = await session.execute(
                update(FileModel)
                .where(FileModel.id == file_id)
                .values(downloads=FileModel.downloads + 1)
            )
            if result.rowcount == 0:
                raise NotFoundError("file", file_id)

    async def delete(self, file_id: str) -> None:
        async with session_scope(self._sessionmaker, "files.delete", file_id) as session:
            result = await session.execute(delete(FileModel).where(FileModel.id == file_id))
            if result.rowcount == 0:
                raise NotFoundError("file", file_id)

    async def delete_expired(self, now: datetime) -> list[FileRecord]:
        """Remove every row past ``expires_at`` and return what was removed."""
        async with session_scope(self._sessionmaker, "files.delete_expired") as session:
            models = (
                await session.scalars(select(FileModel).where(FileModel.expires_at < now))
            ).all()
            expired = [_model_to_dto(m) for m in models]
            if expired:
                await session.execute(
                    delete(FileModel).where(FileModel.id.in_([f.id for f in expired]))
                )
            return expired

    async def storage_keys(self) -> set[str]:
        async with session_scope(self._sessionmaker, "files.storage_keys") as session:
            return set(await session.scalars(select(FileModel.storage_key)))
