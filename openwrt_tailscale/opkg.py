"""Package manager (opkg) operations.

Every mutating call is fatal on failure: a non-zero opkg exit raises
CommandFailedError.
"""

import logging

from openwrt_tailscale.system import run_command

logger = logging.getLogger(__name__)

OPKG = "opkg"


def list_installed() -> list[str]:
    """Return the names of installed packages.

    `opkg list-installed` prints one `name - version` line per package.
    """
    result = run_command(
        [OPKG, "list-installed"], description="list installed packages"
    )
    return [line.split(" ", 1)[0] for line in result.stdout.splitlines() if line]


def is_installed(name: str) -> bool:
    """Check if a package is installed, matching the exact name.

    Only the leading name field of each line is compared, so
    `tailscale-extra` never counts as `tailscale`.
    """
    return name in list_installed()


def update_lists() -> None:
    """Refresh the package index."""
    logger.info("Updating package lists...")
    run_command([OPKG, "update"], description="update package lists")


def install(name: str) -> None:
    """Install a package."""
    logger.info("Installing %s...", name)
    run_command([OPKG, "install", name], description=f"install {name}")


def upgrade(name: str) -> None:
    """Upgrade an installed package."""
    logger.info("Upgrading %s...", name)
    run_command([OPKG, "upgrade", name], description=f"upgrade {name}")


def remove(name: str) -> None:
    """Remove a package."""
    logger.info("Removing %s package...", name)
    run_command([OPKG, "remove", name], description=f"remove {name}")


__all__ = [
    "OPKG",
    "install",
    "is_installed",
    "list_installed",
    "remove",
    "update_lists",
    "upgrade",
]
