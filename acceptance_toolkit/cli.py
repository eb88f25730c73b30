"""Entry points for the acceptance CLI."""

from __future__ import annotations

import argparse
from typing import Sequence

from .presuite import cli as presuite_cli


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acceptance",
        description="Helpers for preparing acceptance-test fleets.",
    )
    parser.set_defaults(handler=None)

    subparsers = parser.add_subparsers(dest="section")

    presuite_parser = subparsers.add_parser(
        "presuite",
        help="Setup steps that run before the acceptance suite.",
    )
    presuite_subparsers = presuite_parser.add_subparsers(dest="command")

    install_parser = presuite_subparsers.add_parser(
        "install",
        help="Install repositories, packages and the gem mirror across the fleet.",
    )
    install_parser.add_argument(
        "--config",
        required=True,
        help="Path to the hosts configuration TOML file.",
    )
    install_parser.add_argument(
        "--check-if-exists",
        action="store_true",
        help="Skip packages that are already installed on a host.",
    )
    install_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview host commands without executing them.",
    )
    install_parser.set_defaults(handler=_handle_presuite_install)

    return parser


def _handle_presuite_install(args: argparse.Namespace) -> int:
    argv: list[str] = ["--config", args.config]
    if args.check_if_exists:
        argv.append("--check-if-exists")
    if args.dry_run:
        argv.append("--dry-run")
    return presuite_cli.main(argv)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    parsed_args = list(argv) if argv is not None else None
    args = parser.parse_args(parsed_args)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 1

    return handler(args)
