"""Per-role package manifests keyed by platform family."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..hosts import AGENT_ROLE, MASTER_ROLE, Host, PlatformFamily, ProvisionError


class ManifestError(ProvisionError):
    """Raised when a host's platform family has no manifest entry."""


@dataclass(frozen=True, slots=True)
class PackageManifest:
    """Ordered package lists to install for one role."""

    role: str
    packages: Mapping[PlatformFamily, tuple[str, ...]]

    def packages_for(self, target: Host | PlatformFamily) -> tuple[str, ...]:
        family = target.family if isinstance(target, Host) else target
        try:
            return self.packages[family]
        except KeyError:
            where = f" (host {target.name})" if isinstance(target, Host) else ""
            raise ManifestError(
                f"Platform family '{family.value}' is not configured in the "
                f"{self.role} package manifest{where}."
            ) from None

    def validate(self, hosts: Iterable[Host]) -> None:
        for host in hosts:
            self.packages_for(host)


def _manifest(role: str, packages: Mapping[PlatformFamily, tuple[str, ...]]) -> PackageManifest:
    return PackageManifest(role=role, packages=MappingProxyType(dict(packages)))


# Solaris and Windows stay unconfigured until packages are published for them.
CONTROLLER_MANIFEST = _manifest(
    MASTER_ROLE,
    {
        PlatformFamily.REDHAT: ("puppetserver",),
        PlatformFamily.DEBIAN: ("puppetserver",),
    },
)

AGENT_MANIFEST = _manifest(
    AGENT_ROLE,
    {
        PlatformFamily.REDHAT: ("puppet-agent",),
        PlatformFamily.DEBIAN: ("puppet-agent",),
    },
)
