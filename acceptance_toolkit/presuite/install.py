"""Install agent and server packages across the fleet before a suite runs."""

from __future__ import annotations

from collections.abc import Sequence
from shlex import quote as shlex_quote

import requests

from ..hosts import Host, HostsConfig, ProvisionError, agents_of
from ..runner import HostRunner, log
from .install_utils import InstallSettings, InstallUtils
from .manifests import AGENT_MANIFEST, CONTROLLER_MANIFEST

REPO_CONFIGS_DIR = "repo-configs"
AGENT_PACKAGE = "puppet-agent"
SERVER_PACKAGE = "puppetserver"
# Agent build pinned on the controller since the AIO nightlies were introduced.
CONTROLLER_AGENT_VERSION = "0.3.1"
SERVER_CHANNEL = "nightly"
# Server packages do not create the module directories yet.
MODULEDIR_WORKAROUND_TICKET = "PUP-4001"


def step(title: str) -> None:
    log(f"Step: {title}")


def bootstrap(
    hosts: Sequence[Host],
    controller: Host,
    settings: InstallSettings,
    utils: InstallUtils,
    *,
    check_if_exists: bool = False,
) -> None:
    """Install repositories, packages and the gem mirror on every host.

    The first failure propagates unchanged and nothing after it runs.
    """

    fleet = list(hosts)
    if not fleet:
        raise ProvisionError("No hosts supplied for package installation.")
    if controller not in fleet:
        raise ProvisionError(f"Controller {controller.name} is not part of the host list.")
    agents = agents_of(fleet, controller)

    step("Install repositories on target machines")
    for host in fleet:
        version = CONTROLLER_AGENT_VERSION if host == controller else settings.sha
        utils.install_repos(host, AGENT_PACKAGE, version, REPO_CONFIGS_DIR)
    utils.install_repos(controller, SERVER_PACKAGE, SERVER_CHANNEL, REPO_CONFIGS_DIR)

    step("Install packages")
    utils.install_packages([controller], CONTROLLER_MANIFEST, check_if_exists=check_if_exists)
    utils.install_packages(agents, AGENT_MANIFEST, check_if_exists=check_if_exists)

    step("Configure gem mirror")
    utils.configure_mirror(fleet)

    step(f"Work around packaging issue ({MODULEDIR_WORKAROUND_TICKET})")
    utils.run(controller, f"mkdir -p {shlex_quote(controller.distmoduledir)}")
    utils.run(controller, f"mkdir -p {shlex_quote(controller.sitemoduledir)}")


def run_presuite(
    config: HostsConfig,
    settings: InstallSettings,
    *,
    dry_run: bool,
    check_if_exists: bool = False,
) -> None:
    runner = HostRunner(dry_run=dry_run)
    with requests.Session() as session:
        utils = InstallUtils(runner, settings, session=session)
        bootstrap(
            config.hosts,
            config.controller,
            settings,
            utils,
            check_if_exists=check_if_exists,
        )


__all__ = [
    "AGENT_PACKAGE",
    "CONTROLLER_AGENT_VERSION",
    "MODULEDIR_WORKAROUND_TICKET",
    "REPO_CONFIGS_DIR",
    "SERVER_CHANNEL",
    "SERVER_PACKAGE",
    "InstallSettings",
    "bootstrap",
    "run_presuite",
    "step",
]
