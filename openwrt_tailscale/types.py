"""Shared type definitions for openwrt_tailscale.

This module contains dataclasses and enums shared across modules to avoid
circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_INTERFACE = "tailscale0"
DEFAULT_ZONE = "tailscale"


class RunMode(str, Enum):
    """Action requested on the command line."""

    INSTALL = "install"
    UPDATE = "update"
    UNINSTALL = "uninstall"


@dataclass(frozen=True)
class BringUpOptions:
    """Flags for `tailscale up` after a successful install.

    Attributes:
        auth_key: Pre-authentication key (None means prompt for it).
        advertise_routes: Subnets to advertise (None means prompt for them).
        accept_routes: Subnet router opt-in (None means prompt).
        advertise_exit_node: Exit node opt-in (None means prompt).
        exit_node: Hostname of an exit node to route through.
    """

    auth_key: str | None = None
    advertise_routes: tuple[str, ...] | None = None
    accept_routes: bool | None = None
    advertise_exit_node: bool | None = None
    exit_node: str | None = None


@dataclass(frozen=True)
class RunConfig:
    """Immutable configuration for one run, built once from CLI flags."""

    interface: str = DEFAULT_INTERFACE
    zone: str = DEFAULT_ZONE
    mode: RunMode = RunMode.INSTALL
    verbose: bool = False
    small_binary: bool = False
    configure: bool = False
    tune_network: bool = True
    bring_up: BringUpOptions = field(default_factory=BringUpOptions)


@dataclass
class OperationResult:
    """Result of an operation (install, update, uninstall, ...)."""

    success: bool
    message: str
    code: str | None = None
    details: dict[str, object] = field(default_factory=dict)


__all__ = [
    "DEFAULT_INTERFACE",
    "DEFAULT_ZONE",
    "BringUpOptions",
    "OperationResult",
    "RunConfig",
    "RunMode",
]
