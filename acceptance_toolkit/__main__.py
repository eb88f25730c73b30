"""Module entry point for ``python -m acceptance_toolkit``."""

from __future__ import annotations

import sys

from . import cli

if __name__ == "__main__":  # pragma: no cover - exercised via runpy in tests
    sys.exit(cli.main())
