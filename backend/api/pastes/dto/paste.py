"""Paste Data Transfer Objects."""

from datetime import datetime

from pydantic import BaseModel, Field


class PasteRecord(BaseModel):
    id: str
    content: str
    language: str
    title: str | None = None
    views: int = 0
    max_views: int = -1
    created_at: datetime
    expires_at: datetime


class PasteCreate(BaseModel):
    content: str
    language: str = ""
    title: str | None = Field(default=None, max_length=255)
    ttl: str | None = None
    max_views: int = -1


class PasteCreateResponse(BaseModel):
    id: str
    language: str
    title: str | None = None
    expires_at: datetime
    max_views: int
    raw: str
