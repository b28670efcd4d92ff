"""Default firewall rules and dual-stack subnet provisioning."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import compute_v1

from gcp_panel.compute.clients import ClientBundle
from gcp_panel.compute.locations import zone_to_region

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "global/networks/default"
DEFAULT_SUBNETWORK = "default"
DUAL_STACK = "IPV4_IPV6"


@dataclass(frozen=True, slots=True)
class FirewallRuleSpec:
    name: str
    source_range: str
    description: str


DEFAULT_FIREWALL_RULES: tuple[FirewallRuleSpec, ...] = (
    FirewallRuleSpec("default-allow-all-ipv4", "0.0.0.0/0", "Allow all IPv4 traffic"),
    FirewallRuleSpec("default-allow-all-ipv6", "::/0", "Allow all IPv6 traffic"),
)


def build_firewall_resource(rule: FirewallRuleSpec) -> compute_v1.Firewall:
    return compute_v1.Firewall(
        name=rule.name,
        network=DEFAULT_NETWORK,
        direction="INGRESS",
        priority=1000,
        source_ranges=[rule.source_range],
        allowed=[compute_v1.Allowed(I_p_protocol="all")],
        description=rule.description,
    )


def ensure_firewall_rules(bundle: ClientBundle) -> list[str]:
    """Create any missing default ingress rule.

    Best-effort: remote failures are logged and never raised. Returns the names
    of the rules that were inserted.
    """
    created: list[str] = []
    for rule in DEFAULT_FIREWALL_RULES:
        try:
            bundle.firewalls.get(project=bundle.project_id, firewall=rule.name)
            logger.debug("firewall rule %s already exists", rule.name)
            continue
        except GoogleAPICallError:
            pass

        logger.info("creating firewall rule %s in project %s", rule.name, bundle.project_id)
        try:
            bundle.firewalls.insert(
                project=bundle.project_id,
                firewall_resource=build_firewall_resource(rule),
            )
        except GoogleAPICallError as exc:
            logger.warning("could not create firewall rule %s: %s", rule.name, exc)
            continue
        created.append(rule.name)
    return created


def ensure_subnet_ipv6(bundle: ClientBundle, zone: str) -> bool:
    """Switch the region's default subnet to dual-stack if needed.

    Blocks until the patch operation completes. Returns True when a patch was
    issued. Remote errors propagate.
    """
    region = zone_to_region(zone)
    subnet = bundle.subnetworks.get(
        project=bundle.project_id,
        region=region,
        subnetwork=DEFAULT_SUBNETWORK,
    )
    if subnet.stack_type == DUAL_STACK:
        return False

    logger.info("enabling IPv6 on subnet %s/%s", region, DEFAULT_SUBNETWORK)
    operation = bundle.subnetworks.patch(
        project=bundle.project_id,
        region=region,
        subnetwork=DEFAULT_SUBNETWORK,
        subnetwork_resource=compute_v1.Subnetwork(
            stack_type=DUAL_STACK,
            ipv6_access_type="EXTERNAL",
            fingerprint=subnet.fingerprint,
        ),
    )
    bundle.region_operations.wait(
        project=bundle.project_id,
        region=region,
        operation=operation.name,
    )
    return True
