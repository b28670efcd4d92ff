"""Per-account Compute Engine client bundles and their cache."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from google.cloud import compute_v1
from google.oauth2 import service_account

from gcp_panel.repositories.accounts import Account, AccountRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientBundle:
    project_id: str
    account_id: str
    account_name: str
    instances: Any
    zone_operations: Any
    subnetworks: Any
    region_operations: Any
    firewalls: Any
    zones: Any


BundleBuilder = Callable[[Account, dict[str, Any]], ClientBundle]


def build_client_bundle(account: Account, key_data: dict[str, Any]) -> ClientBundle:
    credentials = service_account.Credentials.from_service_account_info(key_data)
    project_id = str(key_data.get("project_id") or account.project_id)
    return ClientBundle(
        project_id=project_id,
        account_id=account.id,
        account_name=account.name,
        instances=compute_v1.InstancesClient(credentials=credentials),
        zone_operations=compute_v1.ZoneOperationsClient(credentials=credentials),
        subnetworks=compute_v1.SubnetworksClient(credentials=credentials),
        region_operations=compute_v1.RegionOperationsClient(credentials=credentials),
        firewalls=compute_v1.FirewallsClient(credentials=credentials),
        zones=compute_v1.ZonesClient(credentials=credentials),
    )


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    bundle: ClientBundle
    mtime_ns: int


class ComputeClientFactory:
    """Builds client bundles lazily and reuses them while the key file is unchanged.

    One entry per account; an entry is replaced whenever the key file's
    modification time differs from the cached one.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        *,
        bundle_builder: BundleBuilder = build_client_bundle,
    ) -> None:
        self._accounts = accounts
        self._bundle_builder = bundle_builder
        self._cache: dict[str, _CacheEntry] = {}

    def get_clients(self, account_id: str) -> ClientBundle | None:
        account = self._accounts.get(account_id)
        if account is None:
            return None

        key_path = self._accounts.key_path(account_id)
        try:
            mtime_ns = key_path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

        cached = self._cache.get(account_id)
        if cached is not None and cached.mtime_ns == mtime_ns:
            return cached.bundle

        bundle = self._build(account, key_path)
        if bundle is None:
            return None
        self._cache[account_id] = _CacheEntry(bundle=bundle, mtime_ns=mtime_ns)
        return bundle

    def evict(self, account_id: str) -> None:
        self._cache.pop(account_id, None)

    def cached_account_ids(self) -> list[str]:
        return sorted(self._cache)

    def _build(self, account: Account, key_path: Path) -> ClientBundle | None:
        try:
            key_data = json.loads(key_path.read_text(encoding="utf-8"))
            if not isinstance(key_data, dict):
                raise ValueError("key file is not a JSON object")
            return self._bundle_builder(account, key_data)
        except (OSError, ValueError, KeyError) as exc:
            logger.error("error loading key for account %s: %s", account.id, exc)
            return None
