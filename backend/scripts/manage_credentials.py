#!/usr/bin/env python3
"""Manage data feed API keys in the system keychain.

Keys stored here take precedence over ``.env`` and environment variables
when settings are loaded.

Usage:
    python -m scripts.manage_credentials list
    python -m scripts.manage_credentials set TWELVE_DATA_API_KEY <value>
    python -m scripts.manage_credentials delete OPENFIGI_API_KEY
    python -m scripts.manage_credentials import-env [--env-file PATH]
"""

import argparse
import sys
from pathlib import Path

from dotenv import dotenv_values

from services.credential_manager import (
    CREDENTIAL_KEYS,
    delete_credential,
    get_credential,
    list_credentials,
    set_credential,
)


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "*" * len(value)
    return f"{'*' * (len(value) - 4)}{value[-4:]}"


def import_env(env_path: Path) -> dict[str, list[str]]:
    """Copy feed keys from an ``.env`` file into the keychain.

    Returns:
        Keys grouped as ``stored``, ``unchanged``, ``missing`` and ``failed``
    """
    if not env_path.exists():
        print(f"No .env file found at {env_path}")
        sys.exit(1)

    values = dotenv_values(env_path)
    summary: dict[str, list[str]] = {"stored": [], "unchanged": [], "missing": [], "failed": []}

    for key in sorted(CREDENTIAL_KEYS):
        value = values.get(key)
        if not value:
            summary["missing"].append(key)
        elif get_credential(key) == value:
            summary["unchanged"].append(key)
        elif set_credential(key, value):
            summary["stored"].append(key)
        else:
            summary["failed"].append(key)

    for label, keys in summary.items():
        if keys:
            print(f"{label.capitalize()} ({len(keys)}): {', '.join(keys)}")
    return summary


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Manage data feed API keys in the keychain")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="Show which keys are stored (values masked)")

    set_parser = sub.add_parser("set", help="Store a key")
    set_parser.add_argument("key", choices=sorted(CREDENTIAL_KEYS))
    set_parser.add_argument("value")

    delete_parser = sub.add_parser("delete", help="Remove a key")
    delete_parser.add_argument("key", choices=sorted(CREDENTIAL_KEYS))

    import_parser = sub.add_parser("import-env", help="Copy keys from a .env file")
    import_parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(__file__).parent.parent / ".env",
        help="Path to .env file (default: backend/.env)",
    )

    args = parser.parse_args(argv)

    if args.command == "list":
        stored = list_credentials()
        for key in sorted(CREDENTIAL_KEYS):
            value = stored.get(key)
            print(f"{key}: {_mask(value) if value else '(not set)'}")
    elif args.command == "set":
        if not set_credential(args.key, args.value):
            print(f"Failed to store {args.key}")
            sys.exit(1)
        print(f"Stored {args.key}")
    elif args.command == "delete":
        if not delete_credential(args.key):
            print(f"Failed to delete {args.key}")
            sys.exit(1)
        print(f"Deleted {args.key}")
    else:
        summary = import_env(args.env_file)
        if summary["failed"]:
            sys.exit(1)


if __name__ == "__main__":
    main()
