"""Post-install helpers: bring-up, exit node routing, network tuning.

All three run only after a successful install:
- configure_tailscale: collects bring-up flags (prompting for anything not
  given on the command line) and runs a single `tailscale up`
- apply_exit_node_firewall / restore_exit_node_firewall: tighten the
  firewall when advertising as an exit node, and undo it on uninstall
- optimize_network_settings: installs an ethtool offload hook when
  networkd-dispatcher is present
"""

import logging
from dataclasses import replace
from pathlib import Path

import typer
from pydantic import BaseModel

from openwrt_tailscale import uci
from openwrt_tailscale.config import Settings
from openwrt_tailscale.errors import InstallerError
from openwrt_tailscale.system import run_command, tailscale_up
from openwrt_tailscale.types import BringUpOptions

logger = logging.getLogger(__name__)

DEFAULTS_FORWARD_KEY = "firewall.@defaults[0].forward"
FIRST_ZONE_DEST_KEY = "firewall.@zone[0].dest_zone"

ETHTOOL_HOOK_NAME = "ethtool-config-udp-gro"
ETHTOOL_HOOK = """#!/bin/sh

ethtool --offload $IFACE rx-checksum off
ethtool --offload $IFACE tx-checksum-ip-generic off
ethtool --change $IFACE tso off gro off
"""


class ExitNodeState(BaseModel):
    """Firewall values saved before exit node routing changed them."""

    defaults_forward: str | None = None
    first_zone_forwards_wan: bool = False


def parse_routes(value: str) -> tuple[str, ...]:
    """Split a comma-separated route list, dropping blanks."""
    return tuple(route.strip() for route in value.split(",") if route.strip())


def prompt_missing_options(options: BringUpOptions) -> BringUpOptions:
    """Prompt for every bring-up option not given on the command line.

    Args:
        options: Options from the command line (None = not given).

    Returns:
        Fully resolved options.
    """
    auth_key = options.auth_key
    if auth_key is None:
        auth_key = typer.prompt(
            "Enter your Tailscale auth key",
            default="",
            show_default=False,
            hide_input=True,
        )

    routes = options.advertise_routes
    if routes is None:
        routes = parse_routes(
            typer.prompt(
                "Enter the routes to advertise (comma-separated, "
                "e.g., 10.0.0.0/24,192.168.1.0/24)",
                default="",
                show_default=False,
            )
        )

    accept_routes = options.accept_routes
    if accept_routes is None:
        accept_routes = bool(routes) and typer.confirm(
            "Do you want to set up this device as a subnet router?", default=False
        )

    exit_node = options.exit_node
    advertise_exit_node = options.advertise_exit_node
    if advertise_exit_node is None:
        # Routing through an exit node rules out being one
        advertise_exit_node = not exit_node and typer.confirm(
            "Do you want to set up this device as an exit node?", default=False
        )

    if advertise_exit_node and exit_node:
        raise InstallerError(
            "Cannot advertise an exit node and use one at the same time",
            error_code="conflicting_options",
        )

    if exit_node is None and not advertise_exit_node:
        exit_node = typer.prompt(
            "Enter the hostname of the exit node you want to use "
            "(leave blank to skip)",
            default="",
            show_default=False,
        )

    return replace(
        options,
        auth_key=auth_key or None,
        advertise_routes=routes,
        accept_routes=accept_routes,
        advertise_exit_node=advertise_exit_node,
        exit_node=exit_node or None,
    )


def build_up_flags(options: BringUpOptions) -> list[str]:
    """Compose the `tailscale up` flags for resolved options.

    --accept-routes is only passed together with advertised routes.
    """
    flags = ["--netfilter-mode=off"]
    if options.auth_key:
        flags.append(f"--authkey={options.auth_key}")
    if options.advertise_routes:
        flags.append(f"--advertise-routes={','.join(options.advertise_routes)}")
        if options.accept_routes:
            flags.append("--accept-routes")
    if options.advertise_exit_node:
        flags.append("--advertise-exit-node")
    if options.exit_node:
        flags.append(f"--exit-node={options.exit_node}")
        flags.append("--exit-node-allow-lan-access=true")
    return flags


def apply_exit_node_firewall(settings: Settings) -> None:
    """Reject default forwarding and stop the first zone forwarding to wan.

    The values in place beforehand are saved to the state file so
    uninstall can restore them. An existing state file is kept as is, so
    re-running never records the already-tightened values.
    """
    logger.info("Setting up exit node routing...")
    state_file = settings.exit_node_state_file
    if not state_file.exists():
        dest_zones = (uci.get(FIRST_ZONE_DEST_KEY) or "").split()
        state = ExitNodeState(
            defaults_forward=uci.get(DEFAULTS_FORWARD_KEY),
            first_zone_forwards_wan="wan" in dest_zones,
        )
        try:
            state_file.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            raise InstallerError(
                f"Failed to save firewall state to {state_file}: {e}",
                error_code="state_file",
            ) from e

    uci.set_value(DEFAULTS_FORWARD_KEY, "REJECT")
    uci.del_list(FIRST_ZONE_DEST_KEY, "wan")
    uci.commit("firewall")
    logger.info("Exit node routing configured.")


def restore_exit_node_firewall(settings: Settings) -> Path | None:
    """Stage the firewall values saved by apply_exit_node_firewall.

    Changes are left uncommitted and the state file is left in place; the
    caller removes it once its commit succeeds.

    Returns:
        Path of the state file that was restored from, or None if there
        was nothing saved.
    """
    state_file = settings.exit_node_state_file
    if not state_file.exists():
        return None

    logger.info("Restoring firewall settings changed for exit node routing...")
    try:
        raw = state_file.read_text(encoding="utf-8")
        state = ExitNodeState.model_validate_json(raw)
    except (OSError, ValueError) as e:
        raise InstallerError(
            f"Failed to read firewall state from {state_file}: {e}",
            error_code="state_file",
        ) from e

    if state.defaults_forward is None:
        uci.delete(DEFAULTS_FORWARD_KEY)
    else:
        uci.set_value(DEFAULTS_FORWARD_KEY, state.defaults_forward)
    if state.first_zone_forwards_wan:
        dest_zones = (uci.get(FIRST_ZONE_DEST_KEY) or "").split()
        if "wan" not in dest_zones:
            uci.add_list(FIRST_ZONE_DEST_KEY, "wan")

    return state_file


def configure_tailscale(settings: Settings, options: BringUpOptions) -> BringUpOptions:
    """Resolve bring-up options and run `tailscale up` once.

    Returns:
        The resolved options.
    """
    logger.info("Configuring Tailscale...")
    resolved = prompt_missing_options(options)

    if resolved.advertise_exit_node:
        apply_exit_node_firewall(settings)
    else:
        logger.info("Not setting up as an exit node.")

    tailscale_up(settings, build_up_flags(resolved))
    logger.info("Tailscale configuration completed.")
    return resolved


def optimize_network_settings(settings: Settings) -> Path | None:
    """Install the ethtool offload hook for networkd-dispatcher.

    Returns:
        Path of the installed hook, or None if networkd-dispatcher is absent.
    """
    if not settings.dispatcher_dir.is_dir():
        logger.info(
            "Network dispatcher not found. Skipping network settings optimization."
        )
        return None

    logger.info("Optimizing network settings for Tailscale performance...")
    hook_dir = settings.dispatcher_dir / "routable.d" / "pre-up.d"
    hook_path = hook_dir / ETHTOOL_HOOK_NAME
    try:
        hook_dir.mkdir(parents=True, exist_ok=True)
        hook_path.write_text(ETHTOOL_HOOK, encoding="utf-8")
        hook_path.chmod(0o755)
    except OSError as e:
        raise InstallerError(
            f"Failed to write {hook_path}: {e}", error_code="network_tuning"
        ) from e

    run_command(
        [settings.systemctl_command, "restart", "networkd-dispatcher"],
        description="restart networkd-dispatcher",
    )
    logger.info("Network settings optimized.")
    return hook_path


__all__ = [
    "ETHTOOL_HOOK",
    "ExitNodeState",
    "apply_exit_node_firewall",
    "build_up_flags",
    "configure_tailscale",
    "optimize_network_settings",
    "parse_routes",
    "prompt_missing_options",
    "restore_exit_node_firewall",
]
