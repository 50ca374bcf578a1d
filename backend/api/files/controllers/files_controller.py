"""Files controller: upload, download, info and delete."""

import logging
import os
from datetime import datetime
from pathlib import PurePath
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from api.common.gating import UNLIMITED, utcnow
from api.common.parsing import parse_size, resolve_ttl
from api.deps import get_app_settings, get_files
from api.files.dto.file import FileResponse, UploadResponse
from api.files.services.files_service import FileLifecycleManager
from config import Settings
from storage import BlobStream

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/file", tags=["Files"])


def download_name(filename: str, now: datetime) -> str:
    """'report.pdf' -> 'report_20260101_120000.pdf'."""
    path = PurePath(filename)
    return f"{path.stem}_{now.strftime('%Y%m%d_%H%M%S')}{path.suffix}"


def content_disposition(filename: str) -> str:
    """Attachment header that survives non-latin-1 names, built the way Starlette's FileResponse does."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    size = upload.file.seek(0, os.SEEK_END)
    upload.file.seek(0)
    return size


async def _iter_and_close(stream: BlobStream):
    try:
        async for chunk in stream:
            yield chunk
    finally:
        await stream.close()


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    ttl: str | None = Form(None),
    max_downloads: int = Form(UNLIMITED),
    files: FileLifecycleManager = Depends(get_files),
    settings: Settings = Depends(get_app_settings),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="filename is required")

    size = _upload_size(file)
    max_file_size = parse_size(settings.max_file_size)
    if max_file_size and size > max_file_size:
        logger.warning("Rejected upload of %s: %d bytes", file.filename, size)
        raise HTTPException(
            status_code=413, detail=f"File exceeds max size of {settings.max_file_size}"
        )

    record = await files.upload(
        file,
        filename=file.filename,
        size=size,
        content_type=file.content_type,
        ttl=resolve_ttl(ttl, settings.default_expiry, settings.max_expiry),
        max_downloads=max_downloads,
        timeout=settings.request_timeout_seconds,
    )
    return UploadResponse(
        id=record.id,
        filename=record.original_name,
        size=record.size,
        download=f"/api/file/{record.id}",
        info=f"/api/file/{record.id}/info",
        expires_at=record.expires_at,
        max_downloads=record.max_downloads,
    )


@router.get("/{file_id}")
async def download_file(
    file_id: str,
    files: FileLifecycleManager = Depends(get_files),
    settings: Settings = Depends(get_app_settings),
):
    """Stream a file download."""
    stream, record = await files.download(file_id, timeout=settings.request_timeout_seconds)
    try:
        filename = download_name(record.original_name, utcnow())
        return StreamingResponse(
            _iter_and_close(stream),
            media_type=record.content_type,
            headers={
                "Content-Disposition": content_disposition(filename),
                "Content-Length": str(record.size),
            },
            # covers responses whose body iterator never starts
            background=BackgroundTask(stream.close),
        )
    except BaseException:
        await stream.close()
        raise


@router.get("/{file_id}/info", response_model=FileResponse)
async def get_file_info(
    file_id: str,
    files: FileLifecycleManager = Depends(get_files),
    settings: Settings = Depends(get_app_settings),
):
    record = await files.get_info(file_id, timeout=settings.request_timeout_seconds)
    return FileResponse.from_record(record)


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: str,
    files: FileLifecycleManager = Depends(get_files),
    settings: Settings = Depends(get_app_settings),
):
    await files.delete(file_id, timeout=settings.request_timeout_seconds)
