from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPIError

from gcp_panel.auth.sessions import SessionRegistry
from gcp_panel.compute.clients import ComputeClientFactory
from gcp_panel.compute.instances import InstanceOrchestrator
from gcp_panel.config import AppSettings, get_settings
from gcp_panel.errors import ConsoleError, describe_remote_error
from gcp_panel.repositories.accounts import AccountRepository
from gcp_panel.repositories.audit_log import AuditLogRepository
from gcp_panel.repositories.panel_config import PanelConfigRepository
from gcp_panel.responses import error_response
from gcp_panel.routes.accounts import router as accounts_router
from gcp_panel.routes.auth import router as auth_router
from gcp_panel.routes.instances import router as instances_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: AppSettings = app.state.settings
    accounts: AccountRepository = app.state.accounts
    settings.data_path.mkdir(parents=True, exist_ok=True)
    accounts.migrate_legacy_key(settings.legacy_key_filename)
    yield


def create_app(settings: AppSettings | None = None) -> FastAPI:
    app_settings = settings or get_settings()
    data_path = app_settings.data_path

    app = FastAPI(title="GCP Panel", version="0.1.0", lifespan=_lifespan)
    app.state.settings = app_settings
    app.state.accounts = AccountRepository(data_path)
    app.state.client_factory = ComputeClientFactory(app.state.accounts)
    app.state.orchestrator_factory = InstanceOrchestrator
    app.state.sessions = SessionRegistry()
    app.state.audit_log = AuditLogRepository(data_path / "audit.log")
    app.state.panel_config = PanelConfigRepository(data_path / "config.json")

    app.include_router(auth_router)
    app.include_router(accounts_router)
    app.include_router(instances_router)

    @app.exception_handler(ConsoleError)
    async def console_error_handler(_: Request, exc: ConsoleError) -> JSONResponse:
        return error_response(status_code=exc.status_code, message=exc.message)

    @app.exception_handler(GoogleAPIError)
    async def remote_error_handler(request: Request, exc: GoogleAPIError) -> JSONResponse:
        logger.error("remote API error on %s %s: %s", request.method, request.url.path, exc)
        return error_response(status_code=500, message=describe_remote_error(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(status_code=400, message=describe_validation_error(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return error_response(status_code=500, message=str(exc) or exc.__class__.__name__)

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


def describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}" if location else message
