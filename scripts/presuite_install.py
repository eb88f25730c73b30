"""Install agent and server packages on the acceptance fleet before a suite runs."""

from __future__ import annotations

import sys

from acceptance_toolkit.presuite import cli as core

InstallSettings = core.InstallSettings
ProvisionError = core.ProvisionError
load_hosts_config = core.load_hosts_config
main = core.main
parse_args = core.parse_args
run_presuite = core.run_presuite

__all__ = [
    "InstallSettings",
    "ProvisionError",
    "load_hosts_config",
    "run_presuite",
    "parse_args",
    "main",
]


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
