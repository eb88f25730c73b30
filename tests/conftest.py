"""Test fixtures and configuration helpers."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
INSTALL_ENV_KEYS: tuple[str, ...] = ("SHA", "GEM_SOURCE", "DEV_BUILDS_URL", "NIGHTLIES_URL")

# Ensure the project root is importable so ``scripts`` helpers resolve in this
# interpreter while the ``PYTHONPATH`` export keeps child interpreters aligned.
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from acceptance_toolkit.hosts import Host  # noqa: E402


def _export_pythonpath(monkeypatch: pytest.MonkeyPatch) -> None:
    path_str = str(ROOT)
    pythonpath = os.environ.get("PYTHONPATH")
    if not pythonpath:
        monkeypatch.setenv("PYTHONPATH", path_str)
        return
    parts = pythonpath.split(os.pathsep)
    if path_str in parts:
        return
    parts.insert(0, path_str)
    monkeypatch.setenv("PYTHONPATH", os.pathsep.join(parts))


@pytest.fixture(autouse=True)
def isolate_install_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep build variables from the outer shell out of install settings."""

    for key in INSTALL_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    _export_pythonpath(monkeypatch)


@pytest.fixture
def controller() -> Host:
    return Host(name="controller", platform="el-7-x86_64", roles=("master", "agent"))


@pytest.fixture
def agent1() -> Host:
    return Host(name="agent1", platform="el-7-x86_64")


@pytest.fixture
def agent2() -> Host:
    return Host(name="agent2", platform="debian-8-amd64")
