"""Account management, status and audit history routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, field_validator

from gcp_panel.dependencies import (
    AccountsDep,
    AuditDep,
    AuditLogDep,
    ClientFactoryDep,
    require_session,
)
from gcp_panel.responses import success_response

router = APIRouter(tags=["accounts"], dependencies=[Depends(require_session)])


class CreateAccountPayload(BaseModel):
    name: str | None = None
    key: str | None = None

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class RenameAccountPayload(BaseModel):
    name: str | None = None


@router.get("/api/status")
def api_status(accounts: AccountsDep) -> dict[str, object]:
    rows = accounts.list()
    return {
        "ready": bool(rows),
        "accounts": [account.to_public_dict() for account in rows],
    }


@router.get("/api/accounts")
def api_list_accounts(accounts: AccountsDep) -> JSONResponse:
    return success_response(accounts=[account.to_public_dict() for account in accounts.list()])


@router.post("/api/accounts")
def api_create_account(
    payload: CreateAccountPayload,
    accounts: AccountsDep,
    audit: AuditDep,
) -> JSONResponse:
    account_id = accounts.add(payload.name, payload.key)
    account = accounts.get(account_id)
    audit.record(
        "add_account",
        {"id": account_id, "name": account.name if account else payload.name},
    )
    return success_response(id=account_id)


@router.put("/api/accounts/{account_id}")
def api_rename_account(
    account_id: str,
    payload: RenameAccountPayload,
    accounts: AccountsDep,
    audit: AuditDep,
) -> JSONResponse:
    account = accounts.rename(account_id, payload.name)
    audit.record("rename_account", {"id": account.id, "name": account.name})
    return success_response()


@router.delete("/api/accounts/{account_id}")
def api_delete_account(
    account_id: str,
    accounts: AccountsDep,
    client_factory: ClientFactoryDep,
    audit: AuditDep,
) -> JSONResponse:
    removed = accounts.remove(account_id)
    client_factory.evict(account_id)
    audit.record("delete_account", {"id": removed.id, "name": removed.name})
    return success_response()


@router.get("/api/logs")
def api_logs(audit_log: AuditLogDep) -> dict[str, object]:
    return {"logs": audit_log.list_recent()}
