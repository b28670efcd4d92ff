"""Password login, logout and password change routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from gcp_panel.dependencies import (
    AuditDep,
    PanelConfigDep,
    SessionsDep,
    SettingsDep,
    require_session,
)
from gcp_panel.responses import error_response, success_response

router = APIRouter(tags=["auth"])
SessionTokenDep = Annotated[str, Depends(require_session)]


class LoginPayload(BaseModel):
    password: str | None = None


class ChangePasswordPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_password: str | None = Field(default=None, alias="newPassword")


@router.post("/api/login")
def api_login(
    payload: LoginPayload,
    settings: SettingsDep,
    sessions: SessionsDep,
    panel_config: PanelConfigDep,
    audit: AuditDep,
) -> JSONResponse:
    if not panel_config.check_password(payload.password):
        audit.record("login", "failed")
        return error_response(status_code=200, message="Password Incorrect")

    token = sessions.issue()
    audit.record("login", "success")
    response = success_response()
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_cookie_max_age_seconds,
        httponly=True,
        samesite="strict",
        secure=settings.session_cookie_secure,
    )
    return response


@router.post("/api/logout")
def api_logout(
    token: SessionTokenDep,
    settings: SettingsDep,
    sessions: SessionsDep,
    audit: AuditDep,
) -> JSONResponse:
    sessions.revoke(token)
    audit.record("logout")
    response = success_response()
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.post("/api/setup/password", dependencies=[Depends(require_session)])
def api_change_password(
    payload: ChangePasswordPayload,
    settings: SettingsDep,
    panel_config: PanelConfigDep,
    audit: AuditDep,
) -> JSONResponse:
    panel_config.set_password(payload.new_password, min_length=settings.password_min_length)
    audit.record("change_password")
    return success_response()
