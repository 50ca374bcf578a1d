"""File Data Transfer Objects."""

from datetime import datetime

from pydantic import BaseModel


class FileRecord(BaseModel):
    """Full metadata record, including the storage key. Never returned to clients."""

    id: str
    original_name: str
    size: int
    content_type: str
    storage_key: str
    downloads: int = 0
    max_downloads: int = -1
    created_at: datetime
    expires_at: datetime


class FileResponse(BaseModel):
    id: str
    original_name: str
    size: int
    content_type: str
    downloads: int
    max_downloads: int
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileResponse":
        return cls(**record.model_dump(exclude={"storage_key"}))


class UploadResponse(BaseModel):
    id: str
    filename: str
    size: int
    download: str
    info: str
    expires_at: datetime
    max_downloads: int
