"""Account-scoped instance listing, lifecycle and IP rotation routes."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gcp_panel.compute.instances import CreateInstanceRequest
from gcp_panel.compute.locations import normalize_location
from gcp_panel.dependencies import (
    AuditDep,
    SettingsDep,
    get_orchestrator_for_account,
    require_session,
)
from gcp_panel.responses import success_response

router = APIRouter(tags=["instances"], dependencies=[Depends(require_session)])


class CreateInstancePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account: str | None = None
    name: str | None = None
    zone: str | None = None
    password: str | None = None
    machine_type: str | None = Field(default=None, alias="machineType")
    image: str | None = None
    disk_size: int | None = Field(default=None, alias="diskSize")
    enable_ipv6: bool = Field(default=False, alias="enableIPv6")

    @field_validator("name", "machine_type", "image", "password")
    @classmethod
    def _normalize_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class InstanceTargetPayload(BaseModel):
    account: str | None = None
    name: str = Field(min_length=1)
    zone: str = Field(min_length=1)

    @field_validator("zone")
    @classmethod
    def _normalize_zone(cls, value: str) -> str:
        normalized = normalize_location(value)
        if not normalized:
            raise ValueError("zone is required")
        return normalized


class ChangeIpPayload(InstanceTargetPayload):
    model_config = ConfigDict(populate_by_name=True)

    ip_type: str = Field(default="ipv4", alias="ipType")

    @field_validator("ip_type")
    @classmethod
    def _normalize_ip_type(cls, value: str) -> str:
        return value.strip().lower()


@router.get("/api/instances")
def api_list_instances(
    request: Request,
    settings: SettingsDep,
    account: str | None = None,
    zone: str | None = None,
) -> JSONResponse:
    orchestrator = get_orchestrator_for_account(request, account)
    instances = orchestrator.list_instances(zone or settings.default_zone)
    return success_response(instances=instances)


@router.post("/api/instances/create")
def api_create_instance(
    request: Request,
    payload: CreateInstancePayload,
    background_tasks: BackgroundTasks,
    audit: AuditDep,
) -> JSONResponse:
    orchestrator = get_orchestrator_for_account(request, payload.account)
    orchestrator = orchestrator.with_detached_runner(background_tasks.add_task)
    result = orchestrator.create_instance(
        CreateInstanceRequest(
            name=payload.name,
            zone=payload.zone,
            machine_type=payload.machine_type,
            image=payload.image,
            disk_size_gb=payload.disk_size,
            password=payload.password,
            enable_ipv6=payload.enable_ipv6,
        )
    )
    audit.record(
        "create_instance",
        {
            "name": payload.name,
            "zone": result.zone,
            "machineType": payload.machine_type,
            "account": orchestrator.bundle.account_name,
        },
    )
    return success_response(operation=result.operation, zone=result.zone)


@router.post("/api/instances/changeip")
def api_change_ip(
    request: Request,
    payload: ChangeIpPayload,
    audit: AuditDep,
) -> JSONResponse:
    orchestrator = get_orchestrator_for_account(request, payload.account)
    operation = orchestrator.change_ip(payload.name, payload.zone, payload.ip_type)
    audit.record(
        "change_ip",
        {
            "name": payload.name,
            "zone": payload.zone,
            "type": payload.ip_type,
            "account": orchestrator.bundle.account_name,
        },
    )
    return success_response(operation=operation)


@router.post("/api/instances/{action}")
def api_instance_action(
    request: Request,
    action: str,
    payload: InstanceTargetPayload,
    audit: AuditDep,
) -> JSONResponse:
    orchestrator = get_orchestrator_for_account(request, payload.account)
    operation = orchestrator.run_action(action, payload.name, payload.zone)
    audit.record(
        f"instance_{action}",
        {"name": payload.name, "zone": payload.zone, "account": orchestrator.bundle.account_name},
    )
    return success_response(message=f"{action} sent", operation=operation)
