"""Fleet model and TOML host inventory loading for acceptance runs."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError as exc:  # pragma: no cover - Python < 3.11 guard
    raise SystemExit("python 3.11+ is required to load TOML host configs") from exc

MASTER_ROLE = "master"
AGENT_ROLE = "agent"
KNOWN_ROLES = frozenset({MASTER_ROLE, AGENT_ROLE})

# All-in-one package layout.
DEFAULT_DISTMODULEDIR = "/etc/puppetlabs/code/modules"
DEFAULT_SITEMODULEDIR = "/opt/puppetlabs/puppet/modules"
DEFAULT_SSH_USER = "root"
DEFAULT_SSH_PORT = 22
DEFAULT_GEM_COMMAND = "gem"

DEBIAN_CODENAMES = {
    "debian": {
        "6": "squeeze",
        "7": "wheezy",
        "8": "jessie",
        "9": "stretch",
    },
    "ubuntu": {
        "1004": "lucid",
        "1204": "precise",
        "1404": "trusty",
        "1504": "vivid",
        "1510": "wily",
        "1604": "xenial",
    },
}

_PLATFORM_RE = re.compile(r"^(?P<variant>[a-z]+)-(?P<release>[^-]+)-(?P<arch>.+)$")


class ProvisionError(RuntimeError):
    """Raised when the fleet cannot be provisioned as configured."""


class PlatformFamily(enum.Enum):
    """Package-manager families a host platform belongs to."""

    REDHAT = "redhat"
    DEBIAN = "debian"
    # Reserved: no repositories or manifests are published for these yet.
    SOLARIS = "solaris"
    WINDOWS = "windows"

    @classmethod
    def from_platform(cls, platform: str) -> PlatformFamily:
        variant = parse_platform(platform)[0]
        family = _VARIANT_FAMILIES.get(variant)
        if family is None:
            raise ProvisionError(f"Unsupported platform '{platform}'.")
        return family


_VARIANT_FAMILIES = {
    "el": PlatformFamily.REDHAT,
    "centos": PlatformFamily.REDHAT,
    "redhat": PlatformFamily.REDHAT,
    "fedora": PlatformFamily.REDHAT,
    "debian": PlatformFamily.DEBIAN,
    "ubuntu": PlatformFamily.DEBIAN,
    "solaris": PlatformFamily.SOLARIS,
    "windows": PlatformFamily.WINDOWS,
}


def parse_platform(platform: str) -> tuple[str, str, str]:
    """Split ``variant-release-arch`` platform strings such as ``el-7-x86_64``."""

    match = _PLATFORM_RE.match(platform)
    if not match:
        raise ProvisionError(
            f"Platform '{platform}' must look like <variant>-<release>-<arch>."
        )
    return match.group("variant"), match.group("release"), match.group("arch")


@dataclass(frozen=True, slots=True)
class Host:
    """A single machine under test."""

    name: str
    platform: str = field(compare=False)
    roles: tuple[str, ...] = field(default=(AGENT_ROLE,), compare=False)
    hostname: str | None = field(default=None, compare=False)
    ssh_user: str | None = field(default=DEFAULT_SSH_USER, compare=False)
    ssh_port: int = field(default=DEFAULT_SSH_PORT, compare=False)
    identity: Path | None = field(default=None, compare=False)
    distmoduledir: str = field(default=DEFAULT_DISTMODULEDIR, compare=False)
    sitemoduledir: str = field(default=DEFAULT_SITEMODULEDIR, compare=False)
    gem_command: str = field(default=DEFAULT_GEM_COMMAND, compare=False)

    @property
    def family(self) -> PlatformFamily:
        return PlatformFamily.from_platform(self.platform)

    @property
    def is_controller(self) -> bool:
        return MASTER_ROLE in self.roles

    def codename_platform(self) -> str:
        """Return the platform with Debian/Ubuntu releases replaced by codenames."""

        variant, release, arch = parse_platform(self.platform)
        codenames = DEBIAN_CODENAMES.get(variant)
        if codenames is None:
            return self.platform
        codename = codenames.get(release.replace(".", ""))
        if codename is None:
            raise ProvisionError(
                f"No release codename known for {variant} {release} ({self.name})."
            )
        return f"{variant}-{codename}-{arch}"

    def __str__(self) -> str:
        return self.name


@dataclass(slots=True)
class HostsConfig:
    """Fully parsed fleet inventory."""

    hosts: list[Host]
    controller: Host


def agents_of(hosts: Iterable[Host], controller: Host) -> list[Host]:
    """Return every host except ``controller``, keeping inventory order."""

    return [host for host in hosts if host != controller]


def _expand_path(value: str, *, base: Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def _load_roles(raw: object, name: str) -> tuple[str, ...]:
    if raw is None:
        return (AGENT_ROLE,)
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not raw:
        raise ProvisionError(f"Host '{name}' must list at least one role.")
    roles = tuple(str(role).strip() for role in raw)
    unknown = sorted(set(roles) - KNOWN_ROLES)
    if unknown:
        raise ProvisionError(f"Host '{name}' has unknown roles: {', '.join(unknown)}")
    return roles


def load_hosts_config(path: Path) -> HostsConfig:
    if not path.exists():
        raise ProvisionError(f"Hosts configuration not found: {path}")

    data = tomllib.loads(path.read_text())
    base_dir = path.parent

    defaults = data.get("defaults", {})
    if not isinstance(defaults, dict):
        raise ProvisionError("[defaults] must be a table.")
    default_identity = defaults.get("identity")

    raw_hosts = data.get("hosts")
    if not isinstance(raw_hosts, list) or not raw_hosts:
        raise ProvisionError("At least one host must be defined under [[hosts]].")

    hosts: list[Host] = []
    seen: set[str] = set()
    for raw_host in raw_hosts:
        if not isinstance(raw_host, dict):
            raise ProvisionError("Host entries must be tables (TOML dictionaries).")
        name = str(raw_host.get("name", "")).strip()
        if not name:
            raise ProvisionError("Each host requires a name.")
        if name in seen:
            raise ProvisionError(f"Host '{name}' is defined more than once.")
        seen.add(name)
        platform = str(raw_host.get("platform", "")).strip()
        if not platform:
            raise ProvisionError(f"Host '{name}' requires a platform (e.g. el-7-x86_64).")
        PlatformFamily.from_platform(platform)

        identity_value = raw_host.get("identity", default_identity)
        host = Host(
            name=name,
            platform=platform,
            roles=_load_roles(raw_host.get("roles"), name),
            hostname=str(raw_host["hostname"]) if raw_host.get("hostname") else None,
            ssh_user=str(raw_host.get("ssh_user", defaults.get("ssh_user", DEFAULT_SSH_USER)))
            or None,
            ssh_port=int(raw_host.get("ssh_port", defaults.get("ssh_port", DEFAULT_SSH_PORT))),
            identity=_expand_path(str(identity_value), base=base_dir) if identity_value else None,
            distmoduledir=str(
                raw_host.get("distmoduledir", defaults.get("distmoduledir", DEFAULT_DISTMODULEDIR))
            ),
            sitemoduledir=str(
                raw_host.get("sitemoduledir", defaults.get("sitemoduledir", DEFAULT_SITEMODULEDIR))
            ),
            gem_command=str(
                raw_host.get("gem_command", defaults.get("gem_command", DEFAULT_GEM_COMMAND))
            ),
        )
        hosts.append(host)

    controllers = [host for host in hosts if host.is_controller]
    if len(controllers) != 1:
        raise ProvisionError(
            f"Exactly one host must have the '{MASTER_ROLE}' role; found {len(controllers)}."
        )

    return HostsConfig(hosts=hosts, controller=controllers[0])


__all__ = [
    "AGENT_ROLE",
    "MASTER_ROLE",
    "Host",
    "HostsConfig",
    "PlatformFamily",
    "ProvisionError",
    "load_hosts_config",
    "parse_platform",
]
