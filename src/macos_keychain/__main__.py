"""macos-keychain -- command-line entry point.

Usage::

    python -m macos_keychain [--config PATH] [--keychain PATH] [--verbose] COMMAND ...

Commands mirror the :class:`~macos_keychain.keychain.Keychain` operations:
``list-keychains``, ``create``, ``delete``, ``add``, ``find``, ``remove``,
``list-items``, ``lock``, ``unlock`` and ``dump``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from macos_keychain.arguments import (
    GenericPasswordItem,
    ItemQuery,
    PreferenceDomain,
    TrustAll,
    TrustApplications,
    TrustNone,
)
from macos_keychain.config import Settings, load_settings
from macos_keychain.errors import KeychainError
from macos_keychain.executor import create_executor
from macos_keychain.keychain import Keychain

logger = logging.getLogger("macos_keychain")

# Exit status when a keychain-bound command has no keychain to act on
EXIT_NO_KEYCHAIN = 2


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--account", "-a", required=True)
    parser.add_argument("--service", "-s", required=True)
    parser.add_argument("--type", choices=["note"], default=None)
    parser.add_argument("--kind", default=None)
    parser.add_argument("--comment", default=None)
    parser.add_argument("--label", default=None)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Parameters
    ----------
    argv:
        Argument list (defaults to ``sys.argv[1:]``).
    """
    parser = argparse.ArgumentParser(
        prog="macos-keychain",
        description="Manage macOS keychains and generic password items",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file")
    parser.add_argument(
        "--keychain", "-k", type=str, default=None,
        help="Keychain file (defaults to keychain.default_keychain)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", default=False)

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list-keychains", help="List keychains in the search list")
    p.add_argument("--domain", "-d", choices=[d.value for d in PreferenceDomain], default=None)
    p.add_argument("--search", nargs="+", default=None, help="Set the search list")

    p = sub.add_parser("create", help="Create a keychain")
    p.add_argument("path")
    p.add_argument("--password", "-p", default=None)

    p = sub.add_parser("delete", help="Delete a keychain")
    p.add_argument("path")

    p = sub.add_parser("add", help="Add a generic password item")
    _add_filter_arguments(p)
    p.add_argument("--password", "-w", required=True)
    trust = p.add_mutually_exclusive_group()
    trust.add_argument("--trust", "-T", action="append", default=None, metavar="APP")
    trust.add_argument("--trust-all", action="store_true", default=False)
    trust.add_argument("--trust-none", action="store_true", default=False)
    p.add_argument("--replace", "-U", action="store_true", default=False)

    p = sub.add_parser("find", help="Print the password of an item")
    _add_filter_arguments(p)

    p = sub.add_parser("remove", help="Delete a generic password item")
    _add_filter_arguments(p)

    sub.add_parser("list-items", help="List account/service of every item")
    sub.add_parser("lock", help="Lock the keychain")

    p = sub.add_parser("unlock", help="Unlock the keychain")
    p.add_argument("--password", "-p", default=None)

    sub.add_parser("dump", help="Print the full keychain dump")

    return parser.parse_args(argv)


def _query(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "account": args.account,
        "service": args.service,
        "type": args.type,
        "kind": args.kind,
        "comment": args.comment,
        "label": args.label,
    }


def _applications(args: argparse.Namespace) -> Any:
    if args.trust_all:
        return TrustAll()
    if args.trust_none:
        return TrustNone()
    if args.trust is not None:
        return TrustApplications(tuple(args.trust))
    return None


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the parsed command and return the process exit status."""
    executor = create_executor(settings)
    security = settings.security.path

    if args.command == "list-keychains":
        for path in await Keychain.list_keychains(
            domain=args.domain, search=args.search, executor=executor, security_path=security,
        ):
            print(path)
        return 0
    if args.command == "create":
        keychain = await Keychain.create(
            args.path, args.password, executor=executor, security_path=security,
        )
        print(keychain.path)
        return 0
    if args.command == "delete":
        await Keychain.delete(args.path, executor=executor, security_path=security)
        return 0

    keychain_path = args.keychain or settings.keychain.default_keychain
    if not keychain_path:
        print(f"{args.command}: no keychain given (use --keychain)", file=sys.stderr)
        return EXIT_NO_KEYCHAIN
    keychain = Keychain.open(keychain_path, executor=executor, security_path=security)

    if args.command == "add":
        await keychain.add_generic_password(
            GenericPasswordItem(
                **_query(args),
                password=args.password,
                applications=_applications(args),
                replace=args.replace,
            )
        )
    elif args.command == "find":
        print(await keychain.find_generic_password(ItemQuery(**_query(args))))
    elif args.command == "remove":
        await keychain.delete_generic_password(ItemQuery(**_query(args)))
    elif args.command == "list-items":
        for item in await keychain.list_items():
            print(f"{item.account}\t{item.service}")
    elif args.command == "lock":
        await keychain.lock()
    elif args.command == "unlock":
        await keychain.unlock(args.password)
    elif args.command == "dump":
        await keychain.dump()
    return 0


def main(argv: list[str] | None = None) -> None:
    """Parse CLI args and run the command."""
    args = parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.logging.level.upper(),
        format=settings.logging.format,
    )

    try:
        status = asyncio.run(run_command(args, settings))
    except KeychainError as exc:
        logger.debug("%s failed with code %d", args.command, exc.code)
        print(str(exc), file=sys.stderr)
        status = exc.code if 0 < exc.code < 256 else 1
    sys.exit(status)


if __name__ == "__main__":
    main()
