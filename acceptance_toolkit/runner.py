"""Utility helpers for running commands on fleet hosts consistently."""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .hosts import Host

DEFAULT_CONNECT_TIMEOUT = 10


@dataclass(slots=True)
class CommandError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status."""

    command: Sequence[str]
    returncode: int
    stderr: str | None = None

    def __str__(self) -> str:
        message = f"{format_command(self.command)} exited with status {self.returncode}"
        if self.stderr:
            stderr = self.stderr.strip()
            if stderr:
                message = f"{message}\n{stderr}"
        return message


def format_command(command: Sequence[str]) -> str:
    """Render a subprocess command for display or logging."""

    return " ".join(shlex.quote(part) for part in command)


def log(message: str) -> None:
    print(f"==> {message}", flush=True)


def _ssh_options(host: Host, *, connect_timeout: int) -> list[str]:
    options = [
        "-o",
        f"ConnectTimeout={connect_timeout}",
        "-o",
        "BatchMode=yes",
        "-o",
        "StrictHostKeyChecking=no",
    ]
    if host.identity:
        options.extend(["-i", str(host.identity)])
    return options


def _destination(host: Host) -> str:
    address = host.hostname or host.name
    return f"{host.ssh_user}@{address}" if host.ssh_user else address


def build_ssh_command(
    host: Host, remote_command: str, *, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
) -> list[str]:
    command = ["ssh", "-p", str(host.ssh_port)]
    command.extend(_ssh_options(host, connect_timeout=connect_timeout))
    command.append(_destination(host))
    command.append(remote_command)
    return command


def build_scp_command(
    host: Host,
    source: os.PathLike[str] | str,
    target: str,
    *,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
) -> list[str]:
    command = ["scp", "-P", str(host.ssh_port)]
    command.extend(_ssh_options(host, connect_timeout=connect_timeout))
    command.append(str(source))
    command.append(f"{_destination(host)}:{target}")
    return command


class HostRunner:
    """Execute commands on fleet hosts over ssh with optional dry-run support."""

    def __init__(self, *, dry_run: bool, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT):
        self.dry_run = dry_run
        self.connect_timeout = connect_timeout

    def run(self, host: Host, command: str) -> str:
        """Run ``command`` on ``host`` and return its stripped stdout."""

        ssh_command = build_ssh_command(host, command, connect_timeout=self.connect_timeout)
        if self.dry_run:
            log(f"DRY-RUN: {host.name}: {command}")
            return ""
        log(f"{host.name}: {command}")
        result = subprocess.run(ssh_command, check=False, text=True, capture_output=True)
        if result.returncode != 0:
            raise CommandError(ssh_command, result.returncode, stderr=result.stderr)
        return (result.stdout or "").strip()

    def check(self, host: Host, command: str) -> bool:
        """Return whether ``command`` exits zero on ``host``.

        Dry runs report ``False`` so that every install is previewed.
        """

        if self.dry_run:
            log(f"DRY-RUN: {host.name}: {command}")
            return False
        ssh_command = build_ssh_command(host, command, connect_timeout=self.connect_timeout)
        result = subprocess.run(ssh_command, check=False, text=True, capture_output=True)
        return result.returncode == 0

    def copy_to(self, host: Host, source: os.PathLike[str] | str, target: str) -> None:
        scp_command = build_scp_command(
            host, source, target, connect_timeout=self.connect_timeout
        )
        printable = format_command(scp_command)
        if self.dry_run:
            log(f"DRY-RUN: {printable}")
            return
        log(printable)
        result = subprocess.run(scp_command, check=False, text=True, capture_output=True)
        if result.returncode != 0:
            raise CommandError(scp_command, result.returncode, stderr=result.stderr)
