"""Server CLI for account maintenance without going through the HTTP API."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from google.api_core.exceptions import GoogleAPIError

from gcp_panel.compute.clients import ClientBundle, ComputeClientFactory
from gcp_panel.compute.instances import InstanceOrchestrator
from gcp_panel.compute.network import ensure_firewall_rules
from gcp_panel.config import get_settings
from gcp_panel.errors import ConsoleError, describe_remote_error
from gcp_panel.logging_setup import setup_logging
from gcp_panel.repositories.accounts import AccountRepository
from gcp_panel.repositories.audit_log import AuditLogRepository

type ClientFactoryBuilder = Callable[[AccountRepository], ComputeClientFactory]

CLI_AUDIT_IP = "cli"


class CliValidationError(ValueError):
    """Raised when CLI input fails validation."""


def main(
    argv: Sequence[str] | None = None,
    *,
    data_dir: Path | str | None = None,
    client_factory_builder: ClientFactoryBuilder | None = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if data_dir is None:
        settings = get_settings()
        setup_logging(settings.log_level)
        data_dir = settings.data_path
    resolved_dir = Path(data_dir)
    accounts = AccountRepository(resolved_dir)
    audit_log = AuditLogRepository(resolved_dir / "audit.log")
    build_factory = client_factory_builder or ComputeClientFactory

    try:
        if args.command == "list":
            return _run_list(accounts)
        if args.command == "add":
            return _run_add(args, accounts=accounts, audit_log=audit_log)
        if args.command == "rename":
            return _run_rename(args, accounts=accounts, audit_log=audit_log)
        if args.command == "remove":
            return _run_remove(args, accounts=accounts, audit_log=audit_log)
        if args.command == "repair-key":
            return _run_repair_key(args, accounts=accounts)
        if args.command == "ensure-firewall":
            bundle = _require_bundle(build_factory(accounts), args.account)
            created = ensure_firewall_rules(bundle)
            print(f"firewall rules created: {', '.join(created) if created else 'none'}")
            return 0
        if args.command == "instances":
            bundle = _require_bundle(build_factory(accounts), args.account)
            instances = InstanceOrchestrator(bundle).list_instances(args.zone)
            print(json.dumps(instances, indent=2))
            return 0
    except CliValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except ConsoleError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 2
    except GoogleAPIError as exc:
        print(f"error: {describe_remote_error(exc)}", file=sys.stderr)
        return 1

    parser.error(f"unsupported command: {args.command}")
    return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m gcp_panel.cli.accounts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="list configured accounts")

    add_parser = subparsers.add_parser("add", help="register a service-account key")
    add_parser.add_argument("--name")
    key_group = add_parser.add_mutually_exclusive_group(required=True)
    key_group.add_argument("--key-file")
    key_group.add_argument("--key-stdin", action="store_true")

    rename_parser = subparsers.add_parser("rename", help="change an account display name")
    rename_parser.add_argument("account")
    rename_parser.add_argument("name")

    remove_parser = subparsers.add_parser("remove", help="delete an account and its key")
    remove_parser.add_argument("account")

    repair_parser = subparsers.add_parser(
        "repair-key", help="restore line breaks in a flattened private key"
    )
    repair_parser.add_argument("account")

    firewall_parser = subparsers.add_parser(
        "ensure-firewall", help="create the allow-all ingress rules if missing"
    )
    firewall_parser.add_argument("account")

    instances_parser = subparsers.add_parser("instances", help="list instances of an account")
    instances_parser.add_argument("account")
    instances_parser.add_argument("--zone", default="all")
    return parser


def _run_list(accounts: AccountRepository) -> int:
    for account in accounts.list():
        print(f"{account.id}\t{account.project_id}\t{account.name}")
    return 0


def _run_add(
    args: argparse.Namespace,
    *,
    accounts: AccountRepository,
    audit_log: AuditLogRepository,
) -> int:
    raw_key = _read_key(args)
    account_id = accounts.add(args.name, raw_key)
    account = accounts.get(account_id)
    if account is None:
        raise CliValidationError(f"account {account_id} was not stored")
    audit_log.append(
        action="add_account",
        detail={"id": account.id, "name": account.name},
        ip=CLI_AUDIT_IP,
    )
    print(f"added account id={account.id} project={account.project_id} name={account.name}")
    return 0


def _run_rename(
    args: argparse.Namespace,
    *,
    accounts: AccountRepository,
    audit_log: AuditLogRepository,
) -> int:
    if not args.name.strip():
        raise CliValidationError("name is required")
    account = accounts.rename(args.account, args.name)
    audit_log.append(
        action="rename_account",
        detail={"id": account.id, "name": account.name},
        ip=CLI_AUDIT_IP,
    )
    print(f"renamed account id={account.id} name={account.name}")
    return 0


def _run_remove(
    args: argparse.Namespace,
    *,
    accounts: AccountRepository,
    audit_log: AuditLogRepository,
) -> int:
    account = accounts.remove(args.account)
    audit_log.append(
        action="delete_account",
        detail={"id": account.id, "name": account.name},
        ip=CLI_AUDIT_IP,
    )
    print(f"removed account id={account.id}")
    return 0


def _run_repair_key(args: argparse.Namespace, *, accounts: AccountRepository) -> int:
    changed = accounts.repair_private_key(args.account)
    print(f"key for account id={args.account} {'repaired' if changed else 'already well-formed'}")
    return 0


def _read_key(args: argparse.Namespace) -> str:
    if bool(args.key_stdin):
        raw_key = sys.stdin.read()
    else:
        try:
            raw_key = Path(args.key_file).read_text(encoding="utf-8")
        except OSError as exc:
            raise CliValidationError(f"cannot read key file: {args.key_file}") from exc
    if not raw_key.strip():
        raise CliValidationError("key is required")
    return raw_key


def _require_bundle(factory: ComputeClientFactory, account_id: str) -> ClientBundle:
    bundle = factory.get_clients(account_id)
    if bundle is None:
        raise CliValidationError(f"account key not configured: {account_id}")
    return bundle


if __name__ == "__main__":
    raise SystemExit(main())
