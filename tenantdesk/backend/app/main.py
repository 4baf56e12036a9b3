# backend/app/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .domain.errors import ActionError
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.dashboard import router as dashboard_router

from .routers.clients import router as clients_router
from .routers.buildings import router as buildings_router
from .routers.apartments import router as apartments_router
from .routers.tenants import router as tenants_router

from .routers.announcements import router as announcements_router
from .routers.polls import router as polls_router
from .routers.incidents import router as incidents_router
from .routers.calendar import router as calendar_router
from .routers.social import router as social_router
from .routers.notifications import router as notifications_router

from .routers.subscriptions import router as subscriptions_router
from .routers.storage import router as storage_router
from .routers.cron import router as cron_router
from .routers.audit import router as audit_router

API_PREFIX = "/api"

log = logging.getLogger("tenantdesk.app")


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def _failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ActionError)
    async def action_error_handler(request: Request, exc: ActionError):
        return _failure(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        first = errors[0].get("msg") if errors else "Invalid request"
        return _failure(422, str(first), details=errors)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.error("Unhandled exception: %s", exc, exc_info=True)
        return _failure(500, "An unexpected error occurred. Please try again later.")


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="TenantDesk", version=settings.app_version)

    # added first = innermost; the request id must wrap the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_error_handlers(app)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(dashboard_router, prefix=API_PREFIX)

    # Portfolio
    app.include_router(clients_router, prefix=API_PREFIX)
    app.include_router(buildings_router, prefix=API_PREFIX)
    app.include_router(apartments_router, prefix=API_PREFIX)
    app.include_router(tenants_router, prefix=API_PREFIX)

    # Residents
    app.include_router(announcements_router, prefix=API_PREFIX)
    app.include_router(polls_router, prefix=API_PREFIX)
    app.include_router(incidents_router, prefix=API_PREFIX)
    app.include_router(calendar_router, prefix=API_PREFIX)
    app.include_router(social_router, prefix=API_PREFIX)
    app.include_router(notifications_router, prefix=API_PREFIX)

    # Billing, files, jobs, audit
    app.include_router(subscriptions_router, prefix=API_PREFIX)
    app.include_router(storage_router, prefix=API_PREFIX)
    app.include_router(cron_router, prefix=API_PREFIX)
    app.include_router(audit_router, prefix=API_PREFIX)

    return app


app = create_app()
