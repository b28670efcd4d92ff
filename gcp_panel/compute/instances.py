"""Instance lifecycle and public IP rotation against Compute Engine."""

from __future__ import annotations

import logging
import shlex
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

import requests
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import TransportError
from google.cloud import compute_v1

from gcp_panel.compute.clients import ClientBundle
from gcp_panel.compute.locations import normalize_location, resolve_zone, zone_to_region
from gcp_panel.compute.network import (
    DEFAULT_NETWORK,
    DEFAULT_SUBNETWORK,
    DUAL_STACK,
    ensure_firewall_rules,
    ensure_subnet_ipv6,
)
from gcp_panel.errors import (
    InvalidRequestError,
    RemoteAPIError,
    UnknownActionError,
    describe_remote_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DetachedRunner = Callable[..., None]

INSTANCE_ACTIONS: tuple[str, ...] = ("start", "stop", "delete")
ALL_ZONES = "all"

RETRY_ATTEMPTS = 2
RETRY_BASE_DELAY_SECONDS = 1.0
IPV4_RELEASE_SETTLE_SECONDS = 3.0

DEFAULT_IMAGE_KEY = "debian-11"
IMAGE_FAMILIES: dict[str, str] = {
    "debian-11": "projects/debian-cloud/global/images/family/debian-11",
    "debian-12": "projects/debian-cloud/global/images/family/debian-12",
    "ubuntu-2004": "projects/ubuntu-os-cloud/global/images/family/ubuntu-2004-lts",
    "ubuntu-2204": "projects/ubuntu-os-cloud/global/images/family/ubuntu-2204-lts",
    "centos-7": "projects/centos-cloud/global/images/family/centos-7",
}
DEFAULT_MACHINE_TYPE = "e2-micro"
DEFAULT_DISK_SIZE_GB = 10

EXTERNAL_NAT_NAME = "External NAT"
EXTERNAL_IPV6_NAME = "External IPv6"

# Remote failures plus transport errors the REST client lets escape unwrapped.
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    GoogleAPIError,
    requests.exceptions.RequestException,
    TransportError,
)


@dataclass(frozen=True, slots=True)
class CreateInstanceRequest:
    name: str | None
    zone: str | None
    machine_type: str | None = None
    image: str | None = None
    disk_size_gb: int | None = None
    password: str | None = None
    enable_ipv6: bool = False


@dataclass(frozen=True, slots=True)
class CreateResult:
    operation: str
    zone: str


def call_with_retry(
    fn: Callable[[], T],
    *,
    retries: int = RETRY_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn`` up to ``retries + 1`` times with a linear backoff.

    The n-th retry waits ``base_delay * n`` seconds. The last error is re-raised
    unchanged.
    """
    for attempt in range(retries + 1):
        try:
            return fn()
        except RETRYABLE_ERRORS as exc:
            if attempt == retries:
                raise
            delay = base_delay * (attempt + 1)
            logger.warning(
                "remote call failed (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1,
                retries + 1,
                delay,
                describe_remote_error(exc),
            )
            sleep(delay)
    raise AssertionError("unreachable")


def resolve_image(image_key: str | None) -> str:
    return IMAGE_FAMILIES.get(image_key or "", IMAGE_FAMILIES[DEFAULT_IMAGE_KEY])


def build_root_password_script(password: str) -> str:
    """Startup script that enables password login for root over SSH."""
    credentials = shlex.quote(f"root:{password}")
    return "\n".join(
        [
            "#! /bin/bash",
            f"echo {credentials} | chpasswd",
            "sed -i 's/PermitRootLogin no/PermitRootLogin yes/g' /etc/ssh/sshd_config",
            "sed -i 's/PasswordAuthentication no/PasswordAuthentication yes/g' /etc/ssh/sshd_config",
            "sed -i 's/#PermitRootLogin/PermitRootLogin/g' /etc/ssh/sshd_config",
            "sed -i 's/#PasswordAuthentication/PasswordAuthentication/g' /etc/ssh/sshd_config",
            "service sshd restart",
            "systemctl restart ssh",
        ]
    )


def format_instance(instance: Any, zone: str) -> dict[str, Any]:
    nic = instance.network_interfaces[0] if instance.network_interfaces else None
    access_configs = list(nic.access_configs) if nic is not None else []
    ipv6_configs = list(nic.ipv6_access_configs) if nic is not None else []
    disks = list(instance.disks)
    tags = getattr(instance, "tags", None)

    return {
        "name": instance.name,
        "status": instance.status,
        "machineType": normalize_location(instance.machine_type),
        "internalIp": (nic.network_i_p if nic is not None else "") or "N/A",
        "externalIp": (access_configs[0].nat_i_p if access_configs else "") or "None",
        "ipv6": (ipv6_configs[0].external_ipv6 if ipv6_configs else "") or "None",
        "zone": zone,
        "diskSizeGb": (disks[0].disk_size_gb if disks else 0) or "-",
        "creationTime": instance.creation_timestamp or "-",
        "tags": list(tags.items) if tags is not None else [],
    }


def iter_instances_by_zone(bundle: ClientBundle) -> Iterator[tuple[str, Any]]:
    """Yield ``(zone, instance)`` pairs across every zone of the project.

    Each call starts a fresh aggregated listing, so the sequence can be
    restarted by calling again.
    """
    pager = bundle.instances.aggregated_list(project=bundle.project_id)
    for scope_key, scope in pager:
        zone = normalize_location(scope_key)
        for instance in scope.instances:
            yield zone, instance


def run_in_thread(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    threading.Thread(target=fn, args=args, kwargs=kwargs, daemon=True).start()


class InstanceOrchestrator:
    def __init__(
        self,
        bundle: ClientBundle,
        *,
        sleep: Callable[[float], None] = time.sleep,
        run_detached: DetachedRunner = run_in_thread,
    ) -> None:
        self._bundle = bundle
        self._sleep = sleep
        self._run_detached = run_detached

    @property
    def bundle(self) -> ClientBundle:
        return self._bundle

    def with_detached_runner(self, run_detached: DetachedRunner) -> InstanceOrchestrator:
        return InstanceOrchestrator(self._bundle, sleep=self._sleep, run_detached=run_detached)

    def list_instances(self, zone: str) -> list[dict[str, Any]]:
        if zone == ALL_ZONES:
            return [
                format_instance(instance, instance_zone)
                for instance_zone, instance in iter_instances_by_zone(self._bundle)
            ]
        pager = self._bundle.instances.list(project=self._bundle.project_id, zone=zone)
        return [format_instance(instance, zone) for instance in pager]

    def list_zones(self) -> list[Any]:
        return list(self._bundle.zones.list(project=self._bundle.project_id))

    def create_instance(self, request: CreateInstanceRequest) -> CreateResult:
        name = (request.name or "").strip()
        if not name:
            raise InvalidRequestError("Missing instance name")
        disk_size_gb = request.disk_size_gb or DEFAULT_DISK_SIZE_GB
        if disk_size_gb <= 0:
            raise InvalidRequestError("Invalid disk size")

        zone = resolve_zone(request.zone, self.list_zones)
        region = zone_to_region(zone)

        self._run_detached(_provision_firewall, self._bundle)

        network_interface = compute_v1.NetworkInterface(
            network=DEFAULT_NETWORK,
            subnetwork=(
                f"projects/{self._bundle.project_id}/regions/{region}"
                f"/subnetworks/{DEFAULT_SUBNETWORK}"
            ),
            access_configs=[compute_v1.AccessConfig(type_="ONE_TO_ONE_NAT", name=EXTERNAL_NAT_NAME)],
        )

        if request.enable_ipv6:
            try:
                ensure_subnet_ipv6(self._bundle, zone)
            except GoogleAPIError as exc:
                raise RemoteAPIError(f"Subnet v6 failed: {describe_remote_error(exc)}") from exc
            network_interface.stack_type = DUAL_STACK
            network_interface.ipv6_access_configs = [_external_ipv6_access_config()]

        instance = compute_v1.Instance(
            name=name,
            machine_type=f"zones/{zone}/machineTypes/{request.machine_type or DEFAULT_MACHINE_TYPE}",
            disks=[
                compute_v1.AttachedDisk(
                    boot=True,
                    initialize_params=compute_v1.AttachedDiskInitializeParams(
                        source_image=resolve_image(request.image),
                        disk_size_gb=disk_size_gb,
                    ),
                )
            ],
            network_interfaces=[network_interface],
        )
        if request.password:
            instance.metadata = compute_v1.Metadata(
                items=[
                    compute_v1.Items(
                        key="startup-script",
                        value=build_root_password_script(request.password),
                    )
                ]
            )

        operation = call_with_retry(
            lambda: self._bundle.instances.insert(
                project=self._bundle.project_id,
                zone=zone,
                instance_resource=instance,
            ),
            sleep=self._sleep,
        )
        logger.info("create requested for %s in %s (operation %s)", name, zone, operation.name)
        return CreateResult(operation=operation.name, zone=zone)

    def run_action(self, action: str, name: str, zone: str) -> str:
        if action not in INSTANCE_ACTIONS:
            raise UnknownActionError(action)

        method = getattr(self._bundle.instances, action)
        operation = call_with_retry(
            lambda: method(project=self._bundle.project_id, zone=zone, instance=name),
            sleep=self._sleep,
        )
        logger.info("%s requested for %s in %s (operation %s)", action, name, zone, operation.name)
        return operation.name

    def change_ip(self, name: str, zone: str, ip_type: str) -> str:
        if ip_type == "ipv6":
            return self._rotate_ipv6(name, zone)
        if ip_type == "ipv4":
            return self._rotate_ipv4(name, zone)
        raise InvalidRequestError(f"Unsupported ipType: {ip_type}")

    def _rotate_ipv4(self, name: str, zone: str) -> str:
        nic = self._primary_interface(name, zone)
        if nic.access_configs:
            operation = self._bundle.instances.delete_access_config(
                project=self._bundle.project_id,
                zone=zone,
                instance=name,
                network_interface=nic.name,
                access_config=nic.access_configs[0].name,
            )
            self._wait(zone, operation)

        # the released address is not immediately reusable by the control plane
        self._sleep(IPV4_RELEASE_SETTLE_SECONDS)

        operation = self._bundle.instances.add_access_config(
            project=self._bundle.project_id,
            zone=zone,
            instance=name,
            network_interface=nic.name,
            access_config_resource=compute_v1.AccessConfig(
                name=EXTERNAL_NAT_NAME,
                type_="ONE_TO_ONE_NAT",
            ),
        )
        logger.info("rotated IPv4 address of %s in %s", name, zone)
        return operation.name

    def _rotate_ipv6(self, name: str, zone: str) -> str:
        nic = self._primary_interface(name, zone)
        operation = self._bundle.instances.update_network_interface(
            project=self._bundle.project_id,
            zone=zone,
            instance=name,
            network_interface=nic.name,
            network_interface_resource=compute_v1.NetworkInterface(
                stack_type="IPV4_ONLY",
                fingerprint=nic.fingerprint,
            ),
        )
        self._wait(zone, operation)

        # every mutation changes the fingerprint
        fresh_nic = self._primary_interface(name, zone)
        operation = self._bundle.instances.update_network_interface(
            project=self._bundle.project_id,
            zone=zone,
            instance=name,
            network_interface=nic.name,
            network_interface_resource=compute_v1.NetworkInterface(
                stack_type=DUAL_STACK,
                ipv6_access_type="EXTERNAL",
                fingerprint=fresh_nic.fingerprint,
                ipv6_access_configs=[_external_ipv6_access_config()],
            ),
        )
        logger.info("rotated IPv6 address of %s in %s", name, zone)
        return operation.name

    def _primary_interface(self, name: str, zone: str) -> Any:
        instance = self._bundle.instances.get(
            project=self._bundle.project_id,
            zone=zone,
            instance=name,
        )
        if not instance.network_interfaces:
            raise InvalidRequestError(f"Instance {name} has no network interface")
        return instance.network_interfaces[0]

    def _wait(self, zone: str, operation: Any) -> None:
        self._bundle.zone_operations.wait(
            project=self._bundle.project_id,
            zone=zone,
            operation=operation.name,
        )


def _external_ipv6_access_config() -> compute_v1.AccessConfig:
    return compute_v1.AccessConfig(
        type_="DIRECT_IPV6",
        name=EXTERNAL_IPV6_NAME,
        network_tier="PREMIUM",
    )


def _provision_firewall(bundle: ClientBundle) -> None:
    try:
        ensure_firewall_rules(bundle)
    except Exception:
        logger.exception("firewall provisioning failed for project %s", bundle.project_id)
