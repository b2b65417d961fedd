from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from permission_store.configs.settings import Settings, get_settings
from permission_store.errors import AppError
from permission_store.repositories.permissions_repository import PermissionsRepository
from permission_store.repositories.redis_client import redis_client
from permission_store.routers.health_router import router as health_router
from permission_store.routers.permissions_router import router as permissions_router
from permission_store.utils.response import failure
from permission_store.configs.logging_config import get_logger, setup_logging

log = get_logger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="permission_store", version="0.1.0")
    settings: Settings = get_settings()
    service = settings.SERVICE_NAME

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or request.headers.get("x-correlation-id")
        route = f"{request.method} {request.url.path}"
        started = time.perf_counter()
        log.info("request.start service=%s route=\"%s\" request_id=%s", service, route, request_id)

        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            log.info(
                "request.end service=%s route=\"%s\" status=%s prefix=%s request_id=%s elapsed_ms=%s",
                service,
                route,
                getattr(response, "status_code", "error"),
                settings.redis_prefix,
                request_id,
                int((time.perf_counter() - started) * 1000),
            )

    app.include_router(health_router)
    app.include_router(permissions_router)

    @app.exception_handler(AppError)
    async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
        log.info("request.error type=app_error status=%s message=%s", exc.http_status, exc.message)
        return JSONResponse(status_code=exc.http_status, content=failure(exc.message))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error: %s", str(exc))
        return JSONResponse(status_code=500, content=failure("internal server error"))

    @app.on_event("startup")
    async def startup() -> None:
        settings: Settings = get_settings()
        setup_logging(settings.LOG_LEVEL)

        client = await redis_client.connect(settings)

        app.state.settings = settings
        app.state.redis = client
        app.state.permissions_repo = PermissionsRepository.from_settings(client, settings)
        log.info(
            "startup.done prefix=%s atomic_writes=%s",
            settings.redis_prefix,
            settings.redis_atomic_writes,
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        log.info("shutdown.begin")
        await redis_client.close()
        log.info("shutdown.done")

    return app


app = create_app()
