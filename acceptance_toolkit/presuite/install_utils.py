"""Host-side installation helpers used by the pre-suite install step."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from shlex import quote as shlex_quote

import requests

from ..hosts import Host, PlatformFamily, ProvisionError, parse_platform
from ..runner import HostRunner, log
from .manifests import PackageManifest

DEFAULT_BUILDS_URL = "http://builds.puppetlabs.lan"
DEFAULT_NIGHTLIES_URL = "http://nightlies.puppetlabs.com"
NIGHTLY = "nightly"
YUM_REPOS_DIR = "/etc/yum.repos.d"
APT_SOURCES_DIR = "/etc/apt/sources.list.d"
REQUEST_TIMEOUT = 30


@dataclass(frozen=True, slots=True)
class InstallSettings:
    """Environment-derived inputs for a pre-suite run, captured once."""

    sha: str | None = None
    gem_source: str | None = None
    builds_url: str = DEFAULT_BUILDS_URL
    nightlies_url: str = DEFAULT_NIGHTLIES_URL

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> InstallSettings:
        return cls(
            sha=env.get("SHA") or None,
            gem_source=env.get("GEM_SOURCE") or None,
            builds_url=(env.get("DEV_BUILDS_URL") or DEFAULT_BUILDS_URL).rstrip("/"),
            nightlies_url=(env.get("NIGHTLIES_URL") or DEFAULT_NIGHTLIES_URL).rstrip("/"),
        )


@dataclass(frozen=True, slots=True)
class RepoDefinition:
    """Location of one repository definition and where it lands on a host."""

    url: str
    filename: str
    remote_dir: str
    refresh_command: str | None = None

    @property
    def remote_path(self) -> str:
        return f"{self.remote_dir}/{self.filename}"


def repo_definition_for(
    host: Host, package: str, version: str, settings: InstallSettings
) -> RepoDefinition | None:
    """Describe the repository definition for ``package`` at ``version`` on ``host``.

    ``nightly`` switches to the ``<package>-latest`` project on the nightlies
    server. Returns ``None`` for families without published repositories.
    """

    if version == NIGHTLY:
        project = f"{package}-latest"
        base_url = f"{settings.nightlies_url}/{project}"
        suffix = ""
    else:
        project = package
        base_url = f"{settings.builds_url}/{project}/{version}"
        suffix = f"-{version}"

    family = host.family
    if family is PlatformFamily.REDHAT:
        variant, release, arch = parse_platform(host.platform)
        if variant in ("centos", "redhat"):
            variant = "el"
        fedora_prefix = "f" if variant == "fedora" and not release.startswith("f") else ""
        filename = f"pl-{project}{suffix}-{variant}-{fedora_prefix}{release}-{arch}.repo"
        return RepoDefinition(
            url=f"{base_url}/repo_configs/rpm/{filename}",
            filename=filename,
            remote_dir=YUM_REPOS_DIR,
        )
    if family is PlatformFamily.DEBIAN:
        codename = parse_platform(host.codename_platform())[1]
        filename = f"pl-{project}{suffix}-{codename}.list"
        return RepoDefinition(
            url=f"{base_url}/repo_configs/deb/{filename}",
            filename=filename,
            remote_dir=APT_SOURCES_DIR,
            refresh_command="apt-get update",
        )
    return None


def build_install_command(host: Host, package: str) -> str:
    family = host.family
    if family is PlatformFamily.REDHAT:
        return f"yum install -y {shlex_quote(package)}"
    if family is PlatformFamily.DEBIAN:
        return (
            "DEBIAN_FRONTEND=noninteractive apt-get install -y "
            f"--allow-unauthenticated {shlex_quote(package)}"
        )
    raise ProvisionError(f"No package installer available for {host.platform} ({host.name}).")


def build_package_query(host: Host, package: str) -> str:
    family = host.family
    if family is PlatformFamily.REDHAT:
        return f"rpm -q {shlex_quote(package)}"
    if family is PlatformFamily.DEBIAN:
        return f"dpkg -s {shlex_quote(package)}"
    raise ProvisionError(f"No package query available for {host.platform} ({host.name}).")


def build_gem_mirror_commands(host: Host, gem_source: str) -> list[str]:
    return [
        f"{host.gem_command} source --clear-all",
        f"{host.gem_command} source --add {shlex_quote(gem_source)}",
    ]


class InstallUtils:
    """Install repositories, packages and mirrors on fleet hosts."""

    def __init__(
        self,
        runner: HostRunner,
        settings: InstallSettings,
        *,
        session: requests.Session | None = None,
    ):
        self.runner = runner
        self.settings = settings
        self.session = session if session is not None else requests.Session()

    def run(self, host: Host, command: str) -> str:
        return self.runner.run(host, command)

    def install_repos(
        self, host: Host, package: str, version: str | None, config_dir: str | Path
    ) -> None:
        if version is None:
            raise ProvisionError(
                f"No build version resolved for {package} on {host.name}; "
                "export SHA with the build to install."
            )
        definition = repo_definition_for(host, package, version, self.settings)
        if definition is None:
            log(f"No repository installation step for {host.platform} yet ({host.name}).")
            return

        local_dir = Path(config_dir) / host.codename_platform()
        local_path = local_dir / definition.filename
        self._fetch(definition.url, local_path)
        self.runner.copy_to(host, local_path, definition.remote_path)
        if definition.refresh_command:
            self.runner.run(host, definition.refresh_command)

    def _fetch(self, url: str, destination: Path) -> None:
        if destination.exists():
            log(f"Reusing repository definition {destination}")
            return
        if self.runner.dry_run:
            log(f"DRY-RUN: download {url} -> {destination}")
            return
        log(f"Downloading {url}")
        response = self.session.get(url, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(response.content)

    def install_packages(
        self,
        hosts: Host | Sequence[Host],
        manifest: PackageManifest,
        *,
        check_if_exists: bool = False,
    ) -> None:
        targets = [hosts] if isinstance(hosts, Host) else list(hosts)
        manifest.validate(targets)
        for host in targets:
            for package in manifest.packages_for(host):
                if check_if_exists and self.runner.check(host, build_package_query(host, package)):
                    log(f"{package} already installed on {host.name}")
                    continue
                log(f"Installing {package} on {host.name}")
                self.runner.run(host, build_install_command(host, package))

    def configure_mirror(self, hosts: Iterable[Host]) -> None:
        gem_source = self.settings.gem_source
        if not gem_source:
            log("GEM_SOURCE not set; leaving gem sources untouched.")
            return
        for host in hosts:
            for command in build_gem_mirror_commands(host, gem_source):
                self.runner.run(host, command)
