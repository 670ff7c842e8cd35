"""Shared fixtures: an emulated OpenWrt router.

The `router` fixture patches subprocess.run and shutil.which in
openwrt_tailscale.system so opkg, uci, the init script and the tailscale
binaries act on in-memory state, while config files live under tmp_path.
"""

import subprocess
from collections.abc import Iterator, Sequence
from pathlib import Path
from unittest.mock import patch

import pytest

from openwrt_tailscale.config import Settings

INIT_SCRIPT = """#!/bin/sh /etc/rc.common

USE_PROCD=1
START=80

start_service() {
\tlocal state_file port

\tconfig_load tailscale
\tconfig_get port "settings" port 41641
\tconfig_get state_file "settings" state_file /etc/tailscale/tailscaled.state

\tprocd_open_instance
\tprocd_set_param command /usr/sbin/tailscaled

\t# Set the port to listen on for incoming VPN packets.
\tprocd_append_param command --port "$port"
\tprocd_append_param command --state "$state_file"

\tprocd_set_param respawn
\tprocd_close_instance
}
"""

NETWORK_CONFIG = """config interface 'loopback'
\toption device 'lo'
\toption proto 'static'
"""

FIREWALL_CONFIG = """config defaults
\toption input 'ACCEPT'
\toption forward 'ACCEPT'
"""


class FakeRouter:
    """In-memory stand-in for the commands the installer drives."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.installed: set[str] = {"base-files", "tailscale-extra"}
        self.available: set[str] = {"tailscale", "iptables-nft"}
        self.commands: set[str] = {"opkg", "uci", "sed", "grep", "tailscaled"}
        self.pending: dict[str, str | list[str]] = {
            "firewall.@defaults[0].forward": "ACCEPT",
            "firewall.@zone[0].dest_zone": ["wan"],
        }
        self.committed: dict[str, str | list[str]] = dict(self.pending)
        self.calls: list[list[str]] = []
        self.failures: list[tuple[str, ...]] = []

    # -- helpers for tests -------------------------------------------------

    def fail(self, *prefix: str) -> None:
        """Make any command starting with prefix exit 1."""
        self.failures.append(prefix)

    def ran(self, *prefix: str) -> bool:
        """Check if a command starting with prefix was run."""
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)

    def mutating_calls(self) -> list[list[str]]:
        """Calls other than read-only queries."""
        return [
            call
            for call in self.calls
            if call[:2] != ["opkg", "list-installed"] and "get" not in call[:3]
        ]

    def sections(self, prefix: str) -> dict[str, str | list[str]]:
        """Committed keys under a section prefix."""
        return {
            key: value
            for key, value in self.committed.items()
            if key == prefix or key.startswith(f"{prefix}.")
        }

    # -- patched entry points ---------------------------------------------

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.commands else None

    def run(self, cmd: Sequence[str], **kwargs: object) -> subprocess.CompletedProcess:
        cmd = list(cmd)
        self.calls.append(cmd)
        if any(tuple(cmd[: len(prefix)]) == prefix for prefix in self.failures):
            return self._result(cmd, 1, stderr="simulated failure")

        program = cmd[0]
        if program == "opkg":
            return self._opkg(cmd)
        if program == "uci":
            return self._uci(cmd)
        return self._result(cmd, 0)

    # -- emulation ---------------------------------------------------------

    @staticmethod
    def _result(
        cmd: list[str], code: int, stdout: str = "", stderr: str = ""
    ) -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(cmd, code, stdout=stdout, stderr=stderr)

    def _opkg(self, cmd: list[str]) -> subprocess.CompletedProcess:
        action = cmd[1]
        if action == "list-installed":
            listing = "".join(f"{name} - 1.0-1\n" for name in sorted(self.installed))
            return self._result(cmd, 0, stdout=listing)
        if action == "update":
            return self._result(cmd, 0)
        name = cmd[2]
        if action == "install":
            if name not in self.available:
                return self._result(cmd, 255, stderr=f"Unknown package '{name}'.")
            self.installed.add(name)
            if name == "tailscale" and not self.settings.init_script.exists():
                self.settings.init_script.write_text(INIT_SCRIPT)
            return self._result(cmd, 0)
        if action in ("upgrade", "remove"):
            if name not in self.installed:
                return self._result(cmd, 255, stderr=f"{name} is not installed")
            if action == "remove":
                self.installed.discard(name)
            return self._result(cmd, 0)
        return self._result(cmd, 1, stderr=f"unknown opkg action {action}")

    def _uci(self, cmd: list[str]) -> subprocess.CompletedProcess:
        args = [arg for arg in cmd[1:] if arg != "-q"]
        action = args[0]
        if action == "commit":
            if len(args) > 1:
                prefix = f"{args[1]}."
                self.committed = {
                    key: value
                    for key, value in self.committed.items()
                    if not key.startswith(prefix)
                }
                self.committed.update(
                    {k: v for k, v in self.pending.items() if k.startswith(prefix)}
                )
            else:
                self.committed = dict(self.pending)
            return self._result(cmd, 0)

        if action == "get":
            value = self.pending.get(args[1])
            if value is None:
                return self._result(cmd, 1)
            text = " ".join(value) if isinstance(value, list) else value
            return self._result(cmd, 0, stdout=f"{text}\n")

        if action == "delete":
            key = args[1]
            doomed = [k for k in self.pending if k == key or k.startswith(f"{key}.")]
            for k in doomed:
                del self.pending[k]
            return self._result(cmd, 0 if doomed else 1)

        key, _, value = args[1].partition("=")
        if action == "set":
            self.pending[key] = value
            return self._result(cmd, 0)
        if action == "add_list":
            current = self.pending.get(key, [])
            if isinstance(current, str):
                current = [current]
            self.pending[key] = [*current, value]
            return self._result(cmd, 0)
        if action == "del_list":
            current = self.pending.get(key)
            if not isinstance(current, list) or value not in current:
                return self._result(cmd, 1)
            self.pending[key] = [item for item in current if item != value]
            return self._result(cmd, 0)
        return self._result(cmd, 1, stderr=f"unknown uci action {action}")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every host path into tmp_path."""
    etc = tmp_path / "etc"
    (etc / "config").mkdir(parents=True)
    (etc / "init.d").mkdir()
    (etc / "config" / "network").write_text(NETWORK_CONFIG)
    (etc / "config" / "firewall").write_text(FIREWALL_CONFIG)
    (etc / "openwrt_version").write_text("23.05.3\n")

    return Settings(
        log_file=tmp_path / "tailscale_install.log",
        version_file=etc / "openwrt_version",
        backup_files=[etc / "config" / "network", etc / "config" / "firewall"],
        init_script=etc / "init.d" / "tailscale",
        state_dir=tmp_path / "var" / "lib" / "tailscale",
        exit_node_state_file=etc / "tailscale_installer.json",
        dispatcher_dir=etc / "networkd-dispatcher",
        require_root=False,
    )


@pytest.fixture
def router(settings: Settings) -> Iterator[FakeRouter]:
    """Emulated router with subprocess.run and shutil.which patched."""
    fake = FakeRouter(settings)
    with (
        patch("openwrt_tailscale.system.subprocess.run", side_effect=fake.run),
        patch("openwrt_tailscale.system.shutil.which", side_effect=fake.which),
    ):
        yield fake


@pytest.fixture
def init_script_text() -> str:
    """Stock tailscale init script contents."""
    return INIT_SCRIPT
