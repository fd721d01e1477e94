#!/usr/bin/env python3
"""
API key management CLI.

Keys are provisioned out-of-band; there is no HTTP surface for this.

Usage:
    python manage_keys.py create <app_name> [permissions...]   (default: read write)
    python manage_keys.py list
    python manage_keys.py update <api_key_id> <permissions...>
    python manage_keys.py revoke <api_key_id>

Permissions: read, write, delete, admin
Reads MONGODB_URI / DB_NAME from the environment or .env.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from pymongo import MongoClient
from pymongo.database import Database

from config import AppSettings
from errors import AppError
from repositories.api_key_repository import ApiKeyRepository
from services.key_authority import KeyAuthority
from shared.datetime_utils import ensure_utc
from shared.logging import setup_logging
from shared.permissions import (
    DEFAULT_KEY_PERMISSIONS,
    PERMISSION_NAMES,
    describe_permissions,
    parse_permissions,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="manage_keys",
        description="Provision API keys for the image store.",
        epilog=f"Permissions: {', '.join(PERMISSION_NAMES)}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="create a key for an app (prints the raw key once)")
    create.add_argument("app_name")
    create.add_argument("permissions", nargs="*", help="default: read write")

    sub.add_parser("list", help="list all keys (raw keys are never shown)")

    update = sub.add_parser("update", help="replace a key's permissions")
    update.add_argument("api_key_id", type=int)
    update.add_argument("permissions", nargs="+")

    revoke = sub.add_parser("revoke", help="deactivate a key")
    revoke.add_argument("api_key_id", type=int)

    return parser


def _cmd_create(authority: KeyAuthority, args: argparse.Namespace) -> None:
    permissions = (
        parse_permissions(args.permissions) if args.permissions else DEFAULT_KEY_PERMISSIONS
    )
    record, raw_key = authority.create_key(args.app_name, permissions)
    print(f'API key created for "{record.app_name}" (id {record.api_key_id})')
    print(f"Permissions: {', '.join(describe_permissions(record.permissions))}")
    print(f"Raw key (save this, it won't be shown again):\n  {raw_key}")


def _cmd_list(authority: KeyAuthority, args: argparse.Namespace) -> None:
    keys = authority.list_keys()
    if not keys:
        print("No API keys found.")
        return

    print(f"Found {len(keys)} API key(s):\n")
    for key in keys:
        created = ensure_utc(key.created_at)
        print(f"  [{key.api_key_id}] {key.app_name}")
        print(f"    Prefix: {key.key_prefix}...")
        print(f"    Active: {key.active}")
        print(f"    Permissions: {', '.join(describe_permissions(key.permissions)) or 'NONE'}")
        print(f"    Created: {created.isoformat() if created else '-'}")
        print("")


def _cmd_update(authority: KeyAuthority, args: argparse.Namespace) -> None:
    record = authority.update_permissions(args.api_key_id, parse_permissions(args.permissions))
    print(
        f"API key {record.api_key_id} updated. "
        f"New permissions: {', '.join(describe_permissions(record.permissions)) or 'NONE'}"
    )


def _cmd_revoke(authority: KeyAuthority, args: argparse.Namespace) -> None:
    record = authority.revoke(args.api_key_id)
    print(f"API key {record.api_key_id} has been revoked.")


COMMANDS = {
    "create": _cmd_create,
    "list": _cmd_list,
    "update": _cmd_update,
    "revoke": _cmd_revoke,
}


def main(argv: Optional[Sequence[str]] = None, *, db: Optional[Database] = None) -> int:
    """Run the CLI; returns the process exit code.

    *db* overrides the database built from settings (used by tests).
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # --help exits 0, usage errors exit 1
        return 1 if exc.code else 0

    client: Optional[MongoClient] = None
    if db is None:
        settings = AppSettings()
        setup_logging(settings.logging)
        client = MongoClient(settings.db.mongodb_uri, tz_aware=True)
        db = client[settings.db.db_name]

    try:
        repo = ApiKeyRepository(db)
        repo.ensure_indexes()
        COMMANDS[args.command](KeyAuthority(repo), args)
    except AppError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        if isinstance(e.details, dict) and "valid" in e.details:
            print(f"Valid permissions: {', '.join(e.details['valid'])}", file=sys.stderr)
        return 1
    finally:
        if client is not None:
            client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
