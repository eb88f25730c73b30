"""Pre-suite setup steps run before the acceptance suite."""

from .install import (
    AGENT_PACKAGE,
    CONTROLLER_AGENT_VERSION,
    MODULEDIR_WORKAROUND_TICKET,
    REPO_CONFIGS_DIR,
    SERVER_CHANNEL,
    SERVER_PACKAGE,
    bootstrap,
    run_presuite,
)
from .install_utils import InstallSettings, InstallUtils
from .manifests import AGENT_MANIFEST, CONTROLLER_MANIFEST, ManifestError, PackageManifest

__all__ = [
    "AGENT_MANIFEST",
    "AGENT_PACKAGE",
    "CONTROLLER_AGENT_VERSION",
    "CONTROLLER_MANIFEST",
    "InstallSettings",
    "InstallUtils",
    "MODULEDIR_WORKAROUND_TICKET",
    "ManifestError",
    "PackageManifest",
    "REPO_CONFIGS_DIR",
    "SERVER_CHANNEL",
    "SERVER_PACKAGE",
    "bootstrap",
    "run_presuite",
]
