"""Command-line entry point for the pre-suite package installation step."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Sequence

import requests

from .. import hosts as inventory
from .. import runner
from . import install as core

ProvisionError = inventory.ProvisionError
InstallSettings = core.InstallSettings
load_hosts_config = inventory.load_hosts_config
run_presuite = core.run_presuite

__all__ = [
    "InstallSettings",
    "ProvisionError",
    "load_hosts_config",
    "run_presuite",
    "parse_args",
    "main",
]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Install agent and server packages on the fleet before a suite runs."
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to the hosts configuration TOML file.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview host commands and downloads without executing them.",
    )
    parser.add_argument(
        "--check-if-exists",
        action="store_true",
        help="Skip packages that are already installed on a host.",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Sequence[str] | None = None) -> int:
    try:
        args = parse_args(argv)
        config_path = Path(args.config).expanduser()
        if not config_path.is_absolute():
            config_path = (Path.cwd() / config_path).resolve()
        config = load_hosts_config(config_path)
        settings = InstallSettings.from_env(os.environ)
        run_presuite(
            config,
            settings,
            dry_run=bool(args.dry_run),
            check_if_exists=bool(args.check_if_exists),
        )
    except (ProvisionError, runner.CommandError, requests.RequestException) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # pragma: no cover - unexpected failures
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0
