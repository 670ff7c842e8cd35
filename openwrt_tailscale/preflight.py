"""Pre-flight checks run before any mode touches the system.

This module handles:
- Root privilege check
- Required executables on PATH
- Reading the OpenWrt version
- Backing up the network and firewall configs to .bak siblings

Every check is fatal: the first failure raises and nothing is mutated
afterwards.
"""

import logging
import os
import shutil
from pathlib import Path

from openwrt_tailscale.config import Settings
from openwrt_tailscale.errors import (
    BackupError,
    EnvironmentUnreadableError,
    MissingDependencyError,
    PermissionDeniedError,
)
from openwrt_tailscale.system import command_exists

logger = logging.getLogger(__name__)


def check_root(settings: Settings) -> None:
    """Raise PermissionDeniedError unless running as root."""
    if settings.require_root and os.geteuid() != 0:
        raise PermissionDeniedError()


def check_dependencies(settings: Settings) -> None:
    """Verify every required command is on PATH.

    Raises:
        MissingDependencyError: For the first missing command.
    """
    for command in settings.required_commands:
        if not command_exists(command):
            raise MissingDependencyError(command)
        logger.debug("Found required command: %s", command)
    logger.info("All required dependencies are available")


def read_openwrt_version(settings: Settings) -> str:
    """Read the OpenWrt version identifier.

    Raises:
        EnvironmentUnreadableError: If the file is missing, unreadable,
            or empty.
    """
    path = settings.version_file
    try:
        version = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise EnvironmentUnreadableError(str(path), e.strerror or str(e)) from e
    if not version:
        raise EnvironmentUnreadableError(str(path), "file is empty")
    logger.info("OpenWrt version: %s", version)
    return version


def backup_path(path: Path) -> Path:
    """Return the .bak sibling of a config file."""
    return path.with_name(f"{path.name}.bak")


def backup_config(settings: Settings) -> list[Path]:
    """Copy each config file to its .bak sibling, overwriting old backups.

    Returns:
        Paths of the written backups.

    Raises:
        BackupError: If any copy fails.
    """
    backups: list[Path] = []
    for path in settings.backup_files:
        target = backup_path(path)
        try:
            shutil.copyfile(path, target)
        except OSError as e:
            raise BackupError(str(path), e.strerror or str(e)) from e
        logger.debug("Backed up %s to %s", path, target)
        backups.append(target)
    logger.info("Configuration files backed up")
    return backups


def run_preflight(settings: Settings) -> str:
    """Run all pre-flight checks in order.

    Returns:
        The OpenWrt version.
    """
    check_root(settings)
    check_dependencies(settings)
    version = read_openwrt_version(settings)
    backup_config(settings)
    return version


__all__ = [
    "backup_config",
    "backup_path",
    "check_dependencies",
    "check_root",
    "read_openwrt_version",
    "run_preflight",
]
