"""Pastes controller: create, view, raw view and delete."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse

from api.common.parsing import resolve_ttl
from api.deps import get_app_settings, get_pastes
from api.pastes.dto.paste import PasteCreate, PasteCreateResponse, PasteRecord
from api.pastes.services.pastes_service import PasteLifecycleManager
from config import Settings

router = APIRouter(prefix="/api/paste", tags=["Pastes"])


@router.post("", response_model=PasteCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_paste(
    data: PasteCreate,
    pastes: PasteLifecycleManager = Depends(get_pastes),
    settings: Settings = Depends(get_app_settings),
):
    paste = await pastes.create(
        data.content,
        language=data.language,
        title=data.title,
        ttl=resolve_ttl(data.ttl, settings.default_expiry, settings.max_expiry),
        max_views=data.max_views,
        timeout=settings.request_timeout_seconds,
    )
    return PasteCreateResponse(
        id=paste.id,
        language=paste.language,
        title=paste.title,
        expires_at=paste.expires_at,
        max_views=paste.max_views,
        raw=f"/api/paste/{paste.id}/raw",
    )


@router.get("/{paste_id}", response_model=PasteRecord)
async def get_paste(
    paste_id: str,
    pastes: PasteLifecycleManager = Depends(get_pastes),
    settings: Settings = Depends(get_app_settings),
):
    return await pastes.get(paste_id, timeout=settings.request_timeout_seconds)


@router.get("/{paste_id}/raw", response_class=PlainTextResponse)
async def get_raw_paste(
    paste_id: str,
    pastes: PasteLifecycleManager = Depends(get_pastes),
    settings: Settings = Depends(get_app_settings),
):
    return await pastes.get_raw(paste_id, timeout=settings.request_timeout_seconds)


@router.delete("/{paste_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_paste(
    paste_id: str,
    pastes: PasteLifecycleManager = Depends(get_pastes),
    settings: Settings = Depends(get_app_settings),
):
    await pastes.delete(paste_id, timeout=settings.request_timeout_seconds)
