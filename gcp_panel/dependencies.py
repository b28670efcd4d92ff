"""Common FastAPI dependencies."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any, cast

from fastapi import Depends, Request

from gcp_panel.auth.sessions import SessionRegistry
from gcp_panel.compute.clients import ClientBundle, ComputeClientFactory
from gcp_panel.compute.instances import InstanceOrchestrator
from gcp_panel.config import AppSettings
from gcp_panel.errors import AccountUnavailableError, InvalidRequestError, UnauthorizedError
from gcp_panel.repositories.accounts import AccountRepository
from gcp_panel.repositories.audit_log import AuditLogRepository
from gcp_panel.repositories.panel_config import PanelConfigRepository

OrchestratorFactory = Callable[[ClientBundle], InstanceOrchestrator]


def get_app_settings(request: Request) -> AppSettings:
    return cast(AppSettings, request.app.state.settings)


def get_account_repository(request: Request) -> AccountRepository:
    return cast(AccountRepository, request.app.state.accounts)


def get_client_factory(request: Request) -> ComputeClientFactory:
    return cast(ComputeClientFactory, request.app.state.client_factory)


def get_session_registry(request: Request) -> SessionRegistry:
    return cast(SessionRegistry, request.app.state.sessions)


def get_audit_log(request: Request) -> AuditLogRepository:
    return cast(AuditLogRepository, request.app.state.audit_log)


def get_panel_config(request: Request) -> PanelConfigRepository:
    return cast(PanelConfigRepository, request.app.state.panel_config)


def session_token(request: Request) -> str | None:
    settings = get_app_settings(request)
    token = request.cookies.get(settings.session_cookie_name)
    return token or None


def require_session(request: Request) -> str:
    token = session_token(request)
    if token is None or not get_session_registry(request).is_valid(token):
        raise UnauthorizedError()
    return token


def client_ip(request: Request) -> str:
    settings = get_app_settings(request)
    raw = ""
    if settings.trust_forwarded_for:
        raw = request.headers.get("cf-connecting-ip", "").strip()
        if not raw:
            forwarded = request.headers.get("x-forwarded-for", "")
            raw = forwarded.split(",")[0].strip()
    if not raw and request.client is not None:
        raw = request.client.host
    raw = raw or "-"
    return raw.removeprefix("::ffff:")


class AuditRecorder:
    """Appends audit entries attributed to the current request's client."""

    def __init__(self, request: Request) -> None:
        self._audit_log = get_audit_log(request)
        self._ip = client_ip(request)

    def record(self, action: str, detail: Any = "") -> None:
        self._audit_log.append(action=action, detail=detail, ip=self._ip)


def get_orchestrator_for_account(request: Request, account_id: str | None) -> InstanceOrchestrator:
    if not account_id:
        raise InvalidRequestError("No account specified")

    bundle = get_client_factory(request).get_clients(account_id)
    if bundle is None:
        raise AccountUnavailableError(account_id)

    factory = cast(OrchestratorFactory, request.app.state.orchestrator_factory)
    return factory(bundle)


SettingsDep = Annotated[AppSettings, Depends(get_app_settings)]
AccountsDep = Annotated[AccountRepository, Depends(get_account_repository)]
ClientFactoryDep = Annotated[ComputeClientFactory, Depends(get_client_factory)]
SessionsDep = Annotated[SessionRegistry, Depends(get_session_registry)]
AuditLogDep = Annotated[AuditLogRepository, Depends(get_audit_log)]
PanelConfigDep = Annotated[PanelConfigRepository, Depends(get_panel_config)]
AuditDep = Annotated[AuditRecorder, Depends(AuditRecorder)]
