"""Quip: Main application entry point."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.files.controllers.files_controller import router as files_router
from api.pastes.controllers.pastes_controller import router as pastes_router
from cleanup import ExpirySweeper
from config import Settings, get_settings
from errors import QuipError
from logging_config import configure_logging
from wiring import build_services

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "bad_request",
    404: "not_found",
    410: "expired",
    413: "payload_too_large",
    429: "limit_exceeded",
}


def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    services = build_services(settings)
    sweeper = ExpirySweeper(
        services.files,
        services.pastes,
        interval=settings.sweep_interval_seconds,
        orphan_grace=settings.orphan_grace_seconds,
        timeout=settings.sweep_timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await services.start()
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()
            await services.close()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.services = services
    app.state.sweeper = sweeper

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        client = request.client.host if request.client else "-"
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            client,
        )
        return response

    @app.exception_handler(QuipError)
    async def quip_error_handler(request: Request, exc: QuipError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
            return error_response(exc.status_code, "internal server error", exc.code)
        return error_response(exc.status_code, str(exc), exc.code)

    @app.exception_handler(TimeoutError)
    async def timeout_handler(request: Request, _: TimeoutError):
        logger.error("%s %s timed out", request.method, request.url.path)
        return error_response(504, "storage deadline exceeded", "timeout")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_: Request, exc: HTTPException):
        message = str(exc.detail) if exc.detail else "request failed"
        return error_response(exc.status_code, message, HTTP_ERROR_CODES.get(exc.status_code, "error"))

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(_: Request, exc: RequestValidationError):
        missing_fields = [
            ".".join(str(item) for item in error["loc"] if item != "body")
            for error in exc.errors()
            if error.get("type") == "missing"
        ]
        if missing_fields:
            message = f"missing parameters: {', '.join(missing_fields)}"
        else:
            message = "invalid request parameters"
        return error_response(400, message, "bad_request")

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    app.include_router(files_router)
    app.include_router(pastes_router)

    return app


app = create_app()
