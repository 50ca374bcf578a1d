from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from api.files.repositories.files_repository import FilesRepository
from api.files.services.files_service import FileLifecycleManager
from api.pastes.repositories.pastes_repository import PastesRepository
from api.pastes.services.pastes_service import PasteLifecycleManager
from database import create_engine, create_sessionmaker, init_db
from storage import LocalBlobStore


class FakeClock:
    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def sessionmaker(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'quip.db'}")
    await init_db(engine)
    yield create_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def blob_store(tmp_path):
    store = LocalBlobStore(tmp_path / "blobs")
    store.init()
    return store


@pytest.fixture
def files_repository(sessionmaker):
    return FilesRepository(sessionmaker)


@pytest.fixture
def pastes_repository(sessionmaker):
    return PastesRepository(sessionmaker)


@pytest.fixture
def files(files_repository, blob_store, clock):
    return FileLifecycleManager(files_repository, blob_store, clock=clock)


@pytest.fixture
def pastes(pastes_repository, clock):
    return PasteLifecycleManager(pastes_repository, clock=clock)
