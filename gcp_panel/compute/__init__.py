"""Compute Engine client management and instance orchestration."""

from gcp_panel.compute.clients import ClientBundle, ComputeClientFactory, build_client_bundle
from gcp_panel.compute.instances import (
    CreateInstanceRequest,
    CreateResult,
    InstanceOrchestrator,
    call_with_retry,
    iter_instances_by_zone,
)
from gcp_panel.compute.locations import (
    is_region_name,
    is_zone_name,
    normalize_location,
    resolve_zone,
    zone_to_region,
)
from gcp_panel.compute.network import ensure_firewall_rules, ensure_subnet_ipv6

__all__ = [
    "ClientBundle",
    "ComputeClientFactory",
    "CreateInstanceRequest",
    "CreateResult",
    "InstanceOrchestrator",
    "build_client_bundle",
    "call_with_retry",
    "ensure_firewall_rules",
    "ensure_subnet_ipv6",
    "is_region_name",
    "is_zone_name",
    "iter_instances_by_zone",
    "normalize_location",
    "resolve_zone",
    "zone_to_region",
]
