"""Tests for opkg.py and uci.py against the emulated router."""

import pytest

from openwrt_tailscale import opkg, uci
from openwrt_tailscale.errors import CommandFailedError


class TestOpkg:
    """Tests for package manager helpers."""

    def test_list_installed(self, router):
        assert opkg.list_installed() == ["base-files", "tailscale-extra"]

    def test_exact_name_match(self, router):
        """A package sharing a prefix is not a match."""
        assert opkg.is_installed("tailscale") is False
        assert opkg.is_installed("tailscale-extra") is True

    def test_install(self, router):
        opkg.install("iptables-nft")

        assert "iptables-nft" in router.installed

    def test_install_unknown_package(self, router):
        with pytest.raises(CommandFailedError) as exc_info:
            opkg.install("nope")

        assert exc_info.value.exit_code == 255
        assert "install nope" in exc_info.value.message

    def test_update_lists_failure(self, router):
        router.fail("opkg", "update")

        with pytest.raises(CommandFailedError) as exc_info:
            opkg.update_lists()

        assert "update package lists" in exc_info.value.message

    def test_remove(self, router):
        router.installed.add("tailscale")

        opkg.remove("tailscale")

        assert "tailscale" not in router.installed


class TestUci:
    """Tests for config store helpers."""

    def test_set_and_commit(self, router):
        uci.set_value("network.ts0", "interface")
        assert "network.ts0" not in router.committed

        uci.commit()

        assert router.committed["network.ts0"] == "interface"

    def test_commit_single_config(self, router):
        """Committing one config leaves the others pending."""
        uci.set_value("network.ts0", "interface")
        uci.set_value("firewall.ts", "zone")

        uci.commit("firewall")

        assert router.committed["firewall.ts"] == "zone"
        assert "network.ts0" not in router.committed

    def test_set_failure_raises(self, router):
        router.fail("uci", "set")

        with pytest.raises(CommandFailedError) as exc_info:
            uci.set_value("network.ts0.proto", "unmanaged")

        assert "set UCI option network.ts0.proto" in exc_info.value.message

    def test_quiet_deletes_tolerate_absent(self, router):
        """delete and del_list on missing keys do not raise."""
        uci.delete("network.absent")
        uci.del_list("firewall.absent.dest_zone", "lan")

        assert ["uci", "-q", "delete", "network.absent"] in router.calls

    def test_get(self, router):
        assert uci.get("firewall.@defaults[0].forward") == "ACCEPT"
        assert uci.get("firewall.@zone[0].dest_zone") == "wan"
        assert uci.get("network.absent") is None

    def test_configure_and_remove(self, router):
        """Provisioning then removing leaves nothing behind."""
        uci.configure_interface("ts0")
        uci.configure_zone("vpn", "ts0")
        uci.commit()
        assert router.sections("firewall.vpn")

        uci.remove_interface_and_zone("ts0", "vpn")
        uci.commit()

        assert router.sections("network.ts0") == {}
        assert router.sections("firewall.vpn") == {}

    def test_edges_removed_individually(self, router):
        """Each lan/wan edge is deleted with del_list."""
        uci.remove_interface_and_zone("ts0", "vpn")

        for option, target in uci.ZONE_EDGES:
            assert [
                "uci",
                "-q",
                "del_list",
                f"firewall.vpn.{option}={target}",
            ] in router.calls
