from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest
from google.api_core.exceptions import NotFound

from gcp_panel.compute.clients import ClientBundle

type CallLog = list[tuple[str, dict[str, Any]]]


@dataclass(slots=True)
class FakeOperation:
    name: str


def make_instance(
    name: str,
    *,
    status: str = "RUNNING",
    internal_ip: str = "10.128.0.2",
    nat_ip: str | None = "34.1.2.3",
    ipv6: str | None = None,
    fingerprint: str = "fp-0",
    disk_size_gb: int = 10,
    tags: tuple[str, ...] = (),
) -> SimpleNamespace:
    access_configs = [SimpleNamespace(name="External NAT", nat_i_p=nat_ip)] if nat_ip else []
    ipv6_configs = [SimpleNamespace(name="External IPv6", external_ipv6=ipv6)] if ipv6 else []
    nic = SimpleNamespace(
        name="nic0",
        network_i_p=internal_ip,
        access_configs=access_configs,
        ipv6_access_configs=ipv6_configs,
        fingerprint=fingerprint,
    )
    return SimpleNamespace(
        name=name,
        status=status,
        machine_type="https://www.googleapis.com/compute/v1/projects/proj/zones/us-central1-a/machineTypes/e2-micro",
        network_interfaces=[nic],
        disks=[SimpleNamespace(disk_size_gb=disk_size_gb)],
        creation_timestamp="2024-01-01T00:00:00.000-08:00",
        tags=SimpleNamespace(items=list(tags)),
    )


class FakeComputeClient:
    """Records every call into a log shared by all fakes of one bundle."""

    def __init__(self, label: str, calls: CallLog) -> None:
        self._label = label
        self.calls = calls
        self.failures: dict[str, list[Exception]] = {}
        self._operation_counters: dict[str, int] = {}

    def _record(self, method: str, **kwargs: Any) -> FakeOperation:
        self.calls.append((f"{self._label}.{method}", kwargs))
        queued = self.failures.get(method)
        if queued:
            raise queued.pop(0)
        count = self._operation_counters.get(method, 0) + 1
        self._operation_counters[method] = count
        return FakeOperation(name=f"{method}-op-{count}")


class FakeInstancesClient(FakeComputeClient):
    def __init__(self, calls: CallLog) -> None:
        super().__init__("instances", calls)
        self.by_zone: dict[str, list[Any]] = {}
        self.aggregated: list[tuple[str, Any]] = []
        self.instance: Any = make_instance("vm-1")
        self.nic_revision = 0

    def list(self, **kwargs: Any) -> list[Any]:
        self._record("list", **kwargs)
        return self.by_zone.get(kwargs["zone"], [])

    def aggregated_list(self, **kwargs: Any) -> list[tuple[str, Any]]:
        self._record("aggregated_list", **kwargs)
        return self.aggregated

    def get(self, **kwargs: Any) -> Any:
        self._record("get", **kwargs)
        self.instance.network_interfaces[0].fingerprint = f"fp-{self.nic_revision}"
        return self.instance

    def insert(self, **kwargs: Any) -> FakeOperation:
        return self._record("insert", **kwargs)

    def start(self, **kwargs: Any) -> FakeOperation:
        return self._record("start", **kwargs)

    def stop(self, **kwargs: Any) -> FakeOperation:
        return self._record("stop", **kwargs)

    def delete(self, **kwargs: Any) -> FakeOperation:
        return self._record("delete", **kwargs)

    def delete_access_config(self, **kwargs: Any) -> FakeOperation:
        return self._record("delete_access_config", **kwargs)

    def add_access_config(self, **kwargs: Any) -> FakeOperation:
        return self._record("add_access_config", **kwargs)

    def update_network_interface(self, **kwargs: Any) -> FakeOperation:
        operation = self._record("update_network_interface", **kwargs)
        self.nic_revision += 1
        return operation


class FakeOperationsClient(FakeComputeClient):
    def wait(self, **kwargs: Any) -> FakeOperation:
        return self._record("wait", **kwargs)


class FakeSubnetworksClient(FakeComputeClient):
    def __init__(self, calls: CallLog) -> None:
        super().__init__("subnetworks", calls)
        self.subnet = SimpleNamespace(stack_type="IPV4_ONLY", fingerprint="subnet-fp")

    def get(self, **kwargs: Any) -> Any:
        self._record("get", **kwargs)
        return self.subnet

    def patch(self, **kwargs: Any) -> FakeOperation:
        return self._record("patch", **kwargs)


class FakeFirewallsClient(FakeComputeClient):
    def __init__(self, calls: CallLog) -> None:
        super().__init__("firewalls", calls)
        self.existing: set[str] = set()

    def get(self, **kwargs: Any) -> Any:
        self._record("get", **kwargs)
        if kwargs["firewall"] not in self.existing:
            raise NotFound(f"firewall {kwargs['firewall']} not found")
        return SimpleNamespace(name=kwargs["firewall"])

    def insert(self, **kwargs: Any) -> FakeOperation:
        operation = self._record("insert", **kwargs)
        self.existing.add(kwargs["firewall_resource"].name)
        return operation


class FakeZonesClient(FakeComputeClient):
    def __init__(self, calls: CallLog) -> None:
        super().__init__("zones", calls)
        self.zones: list[Any] = []

    def list(self, **kwargs: Any) -> list[Any]:
        self._record("list", **kwargs)
        return self.zones


@dataclass(slots=True)
class FakeCompute:
    calls: CallLog = field(default_factory=list)
    instances: FakeInstancesClient = field(init=False)
    zone_operations: FakeOperationsClient = field(init=False)
    subnetworks: FakeSubnetworksClient = field(init=False)
    region_operations: FakeOperationsClient = field(init=False)
    firewalls: FakeFirewallsClient = field(init=False)
    zones: FakeZonesClient = field(init=False)

    def __post_init__(self) -> None:
        self.instances = FakeInstancesClient(self.calls)
        self.zone_operations = FakeOperationsClient("zone_operations", self.calls)
        self.subnetworks = FakeSubnetworksClient(self.calls)
        self.region_operations = FakeOperationsClient("region_operations", self.calls)
        self.firewalls = FakeFirewallsClient(self.calls)
        self.zones = FakeZonesClient(self.calls)

    def bundle(
        self,
        *,
        project_id: str = "proj",
        account_id: str = "acc1",
        account_name: str = "Prod",
    ) -> ClientBundle:
        return ClientBundle(
            project_id=project_id,
            account_id=account_id,
            account_name=account_name,
            instances=self.instances,
            zone_operations=self.zone_operations,
            subnetworks=self.subnetworks,
            region_operations=self.region_operations,
            firewalls=self.firewalls,
            zones=self.zones,
        )

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def recording_sleep(self) -> Callable[[float], None]:
        def _sleep(seconds: float) -> None:
            self.calls.append(("sleep", {"seconds": seconds}))

        return _sleep


@pytest.fixture()
def fake_compute() -> FakeCompute:
    return FakeCompute()


@pytest.fixture()
def instance_factory() -> Callable[..., SimpleNamespace]:
    return make_instance
