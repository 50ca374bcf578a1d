"""FastAPI dependencies resolving the app-scoped services."""

from fastapi import Request

from api.files.services.files_service import FileLifecycleManager
from api.pastes.services.pastes_service import PasteLifecycleManager
from config import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_files(request: Request) -> FileLifecycleManager:
    return request.app.state.services.files


def get_pastes(request: Request) -> PasteLifecycleManager:
    return request.app.state.services.pastes
