from __future__ import annotations

from pathlib import Path

import pytest

from acceptance_toolkit import hosts as inventory
from acceptance_toolkit import runner
from acceptance_toolkit.hosts import Host
from acceptance_toolkit.presuite import install, install_utils, manifests
from scripts import presuite_install
from tests.host_runner_fakes import FakeRunner


class RecordingUtils:
    """Collect collaborator calls in order, optionally failing on one of them."""

    def __init__(self, fail_on: str | None = None):
        self.calls: list[tuple] = []
        self.fail_on = fail_on

    def _record(self, call: tuple) -> None:
        self.calls.append(call)
        if call[0] == self.fail_on:
            raise install_utils.ProvisionError(f"{call[0]} failed")

    def install_repos(self, host, package, version, config_dir):
        self._record(("install_repos", host.name, package, version, config_dir))

    def install_packages(self, hosts, manifest, *, check_if_exists=False):
        manifest.validate(hosts)
        self._record(
            ("install_packages", [host.name for host in hosts], manifest.role, check_if_exists)
        )

    def configure_mirror(self, hosts):
        self._record(("configure_mirror", [host.name for host in hosts]))

    def run(self, host, command):
        self._record(("run", host.name, command))
        return ""


def test_bootstrap_orders_calls_for_mixed_fleet(controller, agent1, agent2) -> None:
    utils = RecordingUtils()
    settings = install.InstallSettings.from_env({"SHA": "abc123"})

    install.bootstrap([controller, agent1, agent2], controller, settings, utils)

    assert utils.calls == [
        ("install_repos", "controller", "puppet-agent", "0.3.1", "repo-configs"),
        ("install_repos", "agent1", "puppet-agent", "abc123", "repo-configs"),
        ("install_repos", "agent2", "puppet-agent", "abc123", "repo-configs"),
        ("install_repos", "controller", "puppetserver", "nightly", "repo-configs"),
        ("install_packages", ["controller"], "master", False),
        ("install_packages", ["agent1", "agent2"], "agent", False),
        ("configure_mirror", ["controller", "agent1", "agent2"]),
        ("run", "controller", "mkdir -p /etc/puppetlabs/code/modules"),
        ("run", "controller", "mkdir -p /opt/puppetlabs/puppet/modules"),
    ]


def test_bootstrap_forwards_unresolved_sha(controller, agent1) -> None:
    utils = RecordingUtils()
    settings = install.InstallSettings.from_env({})

    install.bootstrap([controller, agent1], controller, settings, utils)

    repo_calls = [call for call in utils.calls if call[0] == "install_repos"]
    assert repo_calls[1] == ("install_repos", "agent1", "puppet-agent", None, "repo-configs")
    assert utils.calls[-1][0] == "run"


def test_bootstrap_installs_server_repo_once_for_large_fleet(controller) -> None:
    agents = [Host(name=f"agent{i}", platform="ubuntu-1404-amd64") for i in range(5)]
    utils = RecordingUtils()

    install.bootstrap(
        [controller, *agents], controller, install.InstallSettings(sha="deadbeef"), utils
    )

    server_calls = [call for call in utils.calls if call[2:3] == ("puppetserver",)]
    assert server_calls == [
        ("install_repos", "controller", "puppetserver", "nightly", "repo-configs")
    ]
    agent_repo_calls = [call for call in utils.calls if call[2:3] == ("puppet-agent",)]
    assert len(agent_repo_calls) == 6


def test_bootstrap_controller_only_fleet_installs_nothing_for_agents(controller) -> None:
    utils = RecordingUtils()

    install.bootstrap([controller], controller, install.InstallSettings(), utils)

    assert ("install_packages", [], "agent", False) in utils.calls


def test_bootstrap_fails_fast_on_unconfigured_family(controller, agent1) -> None:
    solaris = Host(name="sol", platform="solaris-11-i386")
    utils = RecordingUtils()

    with pytest.raises(manifests.ManifestError, match="solaris"):
        install.bootstrap(
            [controller, agent1, solaris], controller, install.InstallSettings(sha="abc"), utils
        )

    kinds = [call[0] for call in utils.calls]
    assert kinds.count("install_packages") == 1
    assert "configure_mirror" not in kinds
    assert "run" not in kinds


def test_bootstrap_with_real_utils_stops_before_agent_installs(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, controller, agent1, agent2
) -> None:
    monkeypatch.chdir(tmp_path)
    solaris = Host(name="sol", platform="solaris-11-i386")
    host_runner = FakeRunner(dry_run=True)
    utils = install_utils.InstallUtils(host_runner, install.InstallSettings(sha="abc"))

    with pytest.raises(manifests.ManifestError, match=r"agent package manifest \(host sol\)"):
        install.bootstrap(
            [controller, agent1, agent2, solaris],
            controller,
            install.InstallSettings(sha="abc"),
            utils,
        )

    installs = [
        (name, command)
        for name, command in host_runner.commands
        if command.startswith(("yum install", "DEBIAN_FRONTEND"))
    ]
    assert installs == [("controller", "yum install -y puppetserver")]
    assert ("agent2", "apt-get update") in host_runner.commands
    assert not any(
        command.startswith(("gem ", "mkdir ")) for _name, command in host_runner.commands
    )
    assert not (tmp_path / "repo-configs").exists()


def test_bootstrap_propagates_collaborator_failure(controller, agent1) -> None:
    utils = RecordingUtils(fail_on="configure_mirror")

    with pytest.raises(install_utils.ProvisionError, match="configure_mirror failed"):
        install.bootstrap([controller, agent1], controller, install.InstallSettings(), utils)

    assert utils.calls[-1][0] == "configure_mirror"


def test_bootstrap_rejects_controller_outside_fleet(controller, agent1) -> None:
    utils = RecordingUtils()

    with pytest.raises(inventory.ProvisionError, match="not part of the host list"):
        install.bootstrap([agent1], controller, install.InstallSettings(), utils)
    with pytest.raises(inventory.ProvisionError, match="No hosts"):
        install.bootstrap([], controller, install.InstallSettings(), utils)

    assert utils.calls == []


def test_bootstrap_quotes_module_directories(agent1) -> None:
    controller = Host(
        name="controller",
        platform="el-7-x86_64",
        roles=("master",),
        distmoduledir="/srv/puppet modules",
        sitemoduledir="/opt/site",
    )
    utils = RecordingUtils()

    install.bootstrap([controller, agent1], controller, install.InstallSettings(), utils)

    assert utils.calls[-2:] == [
        ("run", "controller", "mkdir -p '/srv/puppet modules'"),
        ("run", "controller", "mkdir -p /opt/site"),
    ]


def test_bootstrap_passes_check_if_exists(controller, agent1) -> None:
    utils = RecordingUtils()

    install.bootstrap(
        [controller, agent1], controller, install.InstallSettings(), utils, check_if_exists=True
    )

    package_calls = [call for call in utils.calls if call[0] == "install_packages"]
    assert all(call[3] is True for call in package_calls)


def test_bootstrap_logs_step_banners(controller, capsys: pytest.CaptureFixture[str]) -> None:
    install.bootstrap([controller], controller, install.InstallSettings(), RecordingUtils())

    out = capsys.readouterr().out
    assert "==> Step: Install repositories on target machines" in out
    assert "==> Step: Work around packaging issue (PUP-4001)" in out


def _write_config(tmp_path: Path) -> Path:
    config_path = tmp_path / "hosts.toml"
    config_path.write_text(
        """
[[hosts]]
name = "controller"
platform = "el-7-x86_64"
roles = ["master", "agent"]

[[hosts]]
name = "agent1"
platform = "debian-8-amd64"
"""
    )
    return config_path


def test_main_dry_run_previews_commands(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = _write_config(tmp_path)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SHA", "abc123")

    def fail_run(*_args, **_kwargs):  # pragma: no cover - dry runs must not execute
        raise AssertionError("subprocess.run should not be called during dry runs")

    monkeypatch.setattr(runner.subprocess, "run", fail_run)

    exit_code = presuite_install.main(["--config", str(config_path), "--dry-run"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "pl-puppet-agent-0.3.1-el-7-x86_64.repo" in out
    assert "pl-puppet-agent-abc123-jessie.list" in out
    assert "pl-puppetserver-latest-el-7-x86_64.repo" in out
    assert "DRY-RUN: controller: mkdir -p /etc/puppetlabs/code/modules" in out
    assert not (tmp_path / "repo-configs").exists()


def test_main_reports_missing_sha(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = _write_config(tmp_path)
    monkeypatch.chdir(tmp_path)

    exit_code = presuite_install.main(["--config", str(config_path), "--dry-run"])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "error: No build version resolved for puppet-agent on agent1" in captured.err


def test_main_reports_missing_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = presuite_install.main(["--config", str(tmp_path / "missing.toml")])

    assert exit_code == 1
    assert "Hosts configuration not found" in capsys.readouterr().err
