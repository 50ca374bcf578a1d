"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"


class Settings(BaseSettings):
    app_name: str = "quip"
    data_dir: Path = DEFAULT_DATA_DIR
    database_url: str | None = None
    files_dir: Path | None = None

    default_expiry: str = "24h"
    max_expiry: str = "7d"
    max_file_size: str = "100MB"

    sweep_interval_seconds: float = 3600
    orphan_grace_seconds: float = 3600
    sweep_timeout_seconds: float | None = 300.0
    request_timeout_seconds: float | None = 30.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="QUIP_")

    @property
    def db_url(self) -> str:
        return self.database_url or f"sqlite+aiosqlite:///{self.data_dir}/quip.db"

    @property
    def blob_dir(self) -> Path:
        return self.files_dir or self.data_dir / "files"


@lru_cache
def get_settings() -> Settings:
    return Settings()
