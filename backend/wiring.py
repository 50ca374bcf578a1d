"""Builds the stores and lifecycle managers from settings."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from api.files.repositories.files_repository import FilesRepository
from api.files.services.files_service import FileLifecycleManager
from api.pastes.repositories.pastes_repository import PastesRepository
from api.pastes.services.pastes_service import PasteLifecycleManager
from config import Settings
from database import create_engine, create_sessionmaker, init_db
from storage import LocalBlobStore


@dataclass
class Services:
    engine: AsyncEngine
    blob_store: LocalBlobStore
    files: FileLifecycleManager
    pastes: PasteLifecycleManager

    async def start(self) -> None:
        self.blob_store.init()
        await init_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()


def build_services(settings: Settings) -> Services:
    engine = create_engine(settings.db_url)
    sessionmaker = create_sessionmaker(engine)
    blob_store = LocalBlobStore(settings.blob_dir)
    return Services(
        engine=engine,
        blob_store=blob_store,
        files=FileLifecycleManager(FilesRepository(sessionmaker), blob_store),
        pastes=PasteLifecycleManager(PastesRepository(sessionmaker)),
    )
