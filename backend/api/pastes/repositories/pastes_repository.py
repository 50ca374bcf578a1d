"""Pastes repository: data access layer."""

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.common.gating import as_utc
from api.pastes.dto.paste import PasteRecord
from api.pastes.orm.paste_model import PasteModel
from database import session_scope
from errors import NotFoundError

logger = logging.getLogger(__name__)


def _model_to_dto(model: PasteModel) -> PasteRecord:
    return PasteRecord(
        id=model.id,
        content=model.content,
        language=model.language,
        title=model.title,
        views=model.views or 0,
        max_views=model.max_views,
        created_at=as_utc(model.created_at),
        expires_at=as_utc(model.expires_at),
    )


class PastesRepository:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def store(self, record: PasteRecord) -> None:
        async with session_scope(self._sessionmaker, "pastes.store", record.id) as session:
            session.add(PasteModel(**record.model_dump()))

    async def find(self, paste_id: str) -> PasteRecord:
        async with session_scope(self._sessionmaker, "pastes.find", paste_id) as session:
            model = await session.get(PasteModel, paste_id)
            if model is None:
                logger.warning("Paste %s not found", paste_id)
                raise NotFoundError("paste", paste_id)
            return _model_to_dto(model)

    async def increment(self, paste_id: str) -> None:
        async with session_scope(self._sessionmaker, "pastes.increment", paste_id) as session:
            result = await session.execute(
                update(PasteModel)
                .where(PasteModel.id == paste_id)
                .values(views=PasteModel.views + 1)
            )
            if result.rowcount == 0:
                raise NotFoundError("paste", paste_id)

    async def delete(self, paste_id: str) -> None:
        async with session_scope(self._sessionmaker, "pastes.delete", paste_id) as session:
            result = await session.execute(delete(PasteModel).where(PasteModel.id == paste_id))
            if result.rowcount == 0:
                raise NotFoundError("paste", paste_id)

    async def delete_expired(self, now: datetime) -> list[PasteRecord]:
        async with session_scope(self._sessionmaker, "pastes.delete_expired") as session:
            models = (
                await session.scalars(select(PasteModel).where(PasteModel.expires_at < now))
            ).all()
            expired = [_model_to_dto(m) for m in models]
            if expired:
                await session.execute(
                    delete(PasteModel).where(PasteModel.id.in_([p.id for p in expired]))
                )
            return expired
