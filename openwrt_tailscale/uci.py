"""UCI config store operations.

Keys are dotted paths: `config.section` or `config.section.option`.
Edits are staged by uci and only persisted by commit(). `set` and
`add_list` are fatal on failure; `delete` and `del_list` run quietly and
tolerate entries that do not exist.
"""

import logging

from openwrt_tailscale.system import run_command

logger = logging.getLogger(__name__)

UCI = "uci"

# Zone lists linking the tailscale zone to the stock lan/wan zones
ZONE_EDGES: tuple[tuple[str, str], ...] = (
    ("dest_zone", "lan"),
    ("dest_zone", "wan"),
    ("src_zone", "lan"),
)


def get(key: str) -> str | None:
    """Return the value at key, or None if it does not exist."""
    result = run_command(
        [UCI, "-q", "get", key], description=f"get UCI {key}", check=False
    )
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def set_value(key: str, value: str) -> None:
    """Set a section type or option value."""
    run_command([UCI, "set", f"{key}={value}"], description=f"set UCI option {key}")


def add_list(key: str, value: str) -> None:
    """Append a value to a list option."""
    run_command(
        [UCI, "add_list", f"{key}={value}"],
        description=f"add {value} to UCI list {key}",
    )


def del_list(key: str, value: str) -> None:
    """Remove a value from a list option; absent values are ignored."""
    run_command(
        [UCI, "-q", "del_list", f"{key}={value}"],
        description=f"remove {value} from UCI list {key}",
        check=False,
    )


def delete(key: str) -> None:
    """Delete a section or option; absent keys are ignored."""
    run_command(
        [UCI, "-q", "delete", key], description=f"delete UCI {key}", check=False
    )


def commit(config: str | None = None) -> None:
    """Persist all pending changes (or only those of one config)."""
    cmd = [UCI, "commit"]
    if config:
        cmd.append(config)
    run_command(cmd, description="commit UCI changes")


def configure_interface(interface: str) -> None:
    """Create (or overwrite) the unmanaged network interface section."""
    logger.info("Configuring network interface...")
    section = f"network.{interface}"
    delete(section)
    set_value(section, "interface")
    set_value(f"{section}.proto", "unmanaged")
    set_value(f"{section}.device", interface)


def configure_zone(zone: str, interface: str) -> None:
    """Create (or overwrite) the firewall zone for the interface."""
    logger.info("Configuring firewall...")
    section = f"firewall.{zone}"
    delete(section)
    set_value(section, "zone")
    set_value(f"{section}.name", zone)
    set_value(f"{section}.input", "ACCEPT")
    set_value(f"{section}.output", "ACCEPT")
    set_value(f"{section}.forward", "ACCEPT")
    set_value(f"{section}.masq", "1")
    set_value(f"{section}.mtu_fix", "1")
    add_list(f"{section}.network", interface)
    for option, target in ZONE_EDGES:
        add_list(f"{section}.{option}", target)


def remove_interface_and_zone(interface: str, zone: str) -> None:
    """Delete the interface section, each zone edge, then the zone."""
    logger.info("Removing Tailscale configurations...")
    delete(f"network.{interface}")
    for option, target in ZONE_EDGES:
        del_list(f"firewall.{zone}.{option}", target)
    delete(f"firewall.{zone}")


__all__ = [
    "UCI",
    "ZONE_EDGES",
    "add_list",
    "commit",
    "configure_interface",
    "configure_zone",
    "del_list",
    "delete",
    "get",
    "remove_interface_and_zone",
    "set_value",
]
