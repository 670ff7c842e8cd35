"""Install, update, and uninstall flows.

This module handles:
- install_tailscale: package install, UCI interface/zone, init script patch
- update_tailscale: package list refresh, upgrade, restart
- uninstall_tailscale: service stop, cleanup, package and config removal
- run: the full pipeline (pre-flight checks, then the requested mode)

Failures raise InstallerError subclasses and abort the run; earlier
changes are not rolled back. A mode whose precondition is not met (e.g.
uninstall with nothing installed) returns a "noop" result instead.
"""

import logging
import shutil

from openwrt_tailscale import initscript, opkg, uci
from openwrt_tailscale.bringup import (
    configure_tailscale,
    optimize_network_settings,
    restore_exit_node_firewall,
)
from openwrt_tailscale.config import Settings
from openwrt_tailscale.errors import InstallerError
from openwrt_tailscale.preflight import run_preflight
from openwrt_tailscale.system import daemon_cleanup, service_action
from openwrt_tailscale.types import OperationResult, RunConfig, RunMode

logger = logging.getLogger(__name__)

NOOP = "noop"


def install_tailscale(settings: Settings, config: RunConfig) -> OperationResult:
    """Install the package and wire it into network, firewall and procd.

    Args:
        settings: Host settings.
        config: Run configuration (interface, zone, small binary flag).

    Returns:
        OperationResult with code "installed", or "noop" if the package
        is already installed.

    Raises:
        CommandFailedError: If an opkg, uci or service command fails.
        InitScriptError: If the init script cannot be patched.
    """
    package = settings.package_name
    if opkg.is_installed(package):
        message = "Tailscale is already installed. Use --update to upgrade."
        logger.info(message)
        return OperationResult(success=True, message=message, code=NOOP)

    opkg.update_lists()

    logger.info("Installing Tailscale...")
    if config.small_binary:
        logger.info("Installing smaller Tailscale binary...")
        logger.info("Small binary installation not implemented yet.")
    else:
        opkg.install(package)

    # Interface before zone; all edits before the single commit
    uci.configure_interface(config.interface)
    uci.configure_zone(config.zone, config.interface)
    uci.commit()

    initscript.insert_tun_param(settings.init_script, config.interface)

    for extra in settings.extra_packages:
        opkg.install(extra)

    logger.info("Restarting Tailscale service...")
    service_action(settings, "restart")

    message = "Tailscale has been installed."
    logger.info(message)
    return OperationResult(
        success=True,
        message=message,
        code="installed",
        details={"interface": config.interface, "zone": config.zone},
    )


def update_tailscale(settings: Settings, config: RunConfig) -> OperationResult:
    """Refresh package lists, upgrade the package and restart the service.

    Returns:
        OperationResult with code "updated", or "noop" if not installed.
    """
    logger.info("Updating Tailscale...")
    package = settings.package_name
    if not opkg.is_installed(package):
        message = "Tailscale is not installed. Please install it first."
        logger.info(message)
        return OperationResult(success=True, message=message, code=NOOP)

    opkg.update_lists()
    opkg.upgrade(package)

    logger.info("Restarting Tailscale service...")
    service_action(settings, "restart")

    message = "Tailscale has been updated."
    logger.info(message)
    return OperationResult(success=True, message=message, code="updated")


def uninstall_tailscale(settings: Settings, config: RunConfig) -> OperationResult:
    """Remove the package and everything install added.

    Stopping the service and daemon cleanup are best effort; package
    removal, the UCI commit and file removal are fatal on failure.

    Returns:
        OperationResult with code "uninstalled", or "noop" if not installed.
    """
    logger.info("Uninstalling Tailscale...")
    package = settings.package_name
    if not opkg.is_installed(package):
        message = "Tailscale is not installed. Nothing to uninstall."
        logger.info(message)
        return OperationResult(success=True, message=message, code=NOOP)

    logger.info("Stopping Tailscale service...")
    service_action(settings, "stop", check=False)
    daemon_cleanup(settings)

    opkg.remove(package)

    uci.remove_interface_and_zone(config.interface, config.zone)
    saved_state = restore_exit_node_firewall(settings)
    uci.commit()
    if saved_state is not None:
        saved_state.unlink()

    initscript.remove_tun_param(settings.init_script, config.interface)

    logger.info("Removing Tailscale state directory...")
    try:
        shutil.rmtree(settings.state_dir)
    except FileNotFoundError:
        logger.debug("State directory %s already absent", settings.state_dir)
    except OSError as e:
        raise InstallerError(
            f"Failed to remove {settings.state_dir}: {e}", error_code="state_dir"
        ) from e

    message = "Tailscale has been uninstalled and configurations removed."
    logger.info(message)
    return OperationResult(success=True, message=message, code="uninstalled")


def run(settings: Settings, config: RunConfig) -> OperationResult:
    """Run pre-flight checks and the requested mode.

    Post-install steps (bring-up, network tuning) only follow an install
    that actually happened.

    Raises:
        InstallerError: On the first fatal failure.
    """
    logger.info("Starting Tailscale installation and configuration script...")
    version = run_preflight(settings)

    if config.mode is RunMode.UNINSTALL:
        result = uninstall_tailscale(settings, config)
    elif config.mode is RunMode.UPDATE:
        result = update_tailscale(settings, config)
    else:
        result = install_tailscale(settings, config)
        if result.code != NOOP:
            if config.configure:
                configure_tailscale(settings, config.bring_up)
            if config.tune_network:
                optimize_network_settings(settings)

    result.details["openwrt_version"] = version
    logger.info("Script execution completed.")
    return result


__all__ = [
    "NOOP",
    "install_tailscale",
    "run",
    "uninstall_tailscale",
    "update_tailscale",
]
