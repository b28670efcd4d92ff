"""Repository layer exports."""

from gcp_panel.repositories.accounts import (
    Account,
    AccountRepository,
    normalize_pem_private_key,
    parse_service_account_key,
)
from gcp_panel.repositories.audit_log import AuditEntry, AuditLogRepository
from gcp_panel.repositories.panel_config import PanelConfigRepository

__all__ = [
    "Account",
    "AccountRepository",
    "AuditEntry",
    "AuditLogRepository",
    "PanelConfigRepository",
    "normalize_pem_private_key",
    "parse_service_account_key",
]
