"""Thin CLI wrapper for openwrt_tailscale.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
import re
from typing import Annotated, Any

import click
import typer
from rich.console import Console
from typer.core import TyperCommand

from openwrt_tailscale import __version__
from openwrt_tailscale.bringup import parse_routes
from openwrt_tailscale.config import get_settings, print_settings_json
from openwrt_tailscale.errors import InstallerError
from openwrt_tailscale.installer import run
from openwrt_tailscale.logs import configure_logging
from openwrt_tailscale.types import (
    DEFAULT_INTERFACE,
    DEFAULT_ZONE,
    BringUpOptions,
    RunConfig,
    RunMode,
)

app = typer.Typer(
    name="openwrt-tailscale",
    help="Install, update, or uninstall Tailscale on OpenWrt",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

# UCI section names: letters, digits and underscores
_UCI_NAME = re.compile(r"^[A-Za-z0-9_]+$")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"openwrt-tailscale version {__version__}")
        raise typer.Exit()


def validate_name(value: str) -> str:
    """Reject interface/zone names that are not valid UCI section names."""
    if not _UCI_NAME.match(value):
        raise typer.BadParameter(
            f"'{value}' is not a valid name (letters, digits and underscores only)"
        )
    return value


class LoggedCommand(TyperCommand):
    """Command that also writes usage errors to the log file."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            log_usage_error(e)
            raise

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            log_usage_error(e)
            raise


def log_usage_error(error: click.UsageError) -> None:
    """Log a rejected command line to the console and the log file."""
    configure_logging(get_settings())
    logger.error("Invalid command line: %s", error.format_message())


@app.command(cls=LoggedCommand)
def main(
    ctx: typer.Context,
    interface: Annotated[
        str,
        typer.Option(
            "--interface",
            metavar="NAME",
            help="Set interface name",
            callback=validate_name,
        ),
    ] = DEFAULT_INTERFACE,
    zone: Annotated[
        str,
        typer.Option(
            "--zone",
            metavar="NAME",
            help="Set zone name",
            callback=validate_name,
        ),
    ] = DEFAULT_ZONE,
    small: Annotated[
        bool,
        typer.Option("--small", help="Use smaller Tailscale binary"),
    ] = False,
    uninstall: Annotated[
        bool,
        typer.Option("--uninstall", help="Uninstall Tailscale"),
    ] = False,
    update: Annotated[
        bool,
        typer.Option("--update", help="Update Tailscale"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    configure: Annotated[
        bool,
        typer.Option(
            "--configure",
            help="Run 'tailscale up' after install, prompting for missing values",
        ),
    ] = False,
    auth_key: Annotated[
        str | None,
        typer.Option("--auth-key", help="Tailscale auth key for --configure"),
    ] = None,
    advertise_routes: Annotated[
        str | None,
        typer.Option(
            "--advertise-routes",
            metavar="CIDRS",
            help="Comma-separated routes to advertise",
        ),
    ] = None,
    accept_routes: Annotated[
        bool | None,
        typer.Option(
            "--accept-routes/--no-accept-routes",
            help="Set up this device as a subnet router",
        ),
    ] = None,
    advertise_exit_node: Annotated[
        bool | None,
        typer.Option(
            "--advertise-exit-node/--no-advertise-exit-node",
            help="Set up this device as an exit node",
        ),
    ] = None,
    exit_node: Annotated[
        str | None,
        typer.Option("--exit-node", metavar="HOST", help="Exit node to route through"),
    ] = None,
    tune_network: Annotated[
        bool,
        typer.Option(
            "--tune-network/--no-tune-network",
            help="Install ethtool offload tuning if networkd-dispatcher exists",
        ),
    ] = True,
    show_config: Annotated[
        bool,
        typer.Option("--show-config", help="Show effective settings as JSON and exit"),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Install Tailscale on OpenWrt (default), or update/uninstall it.

    Installs the package, adds an unmanaged network interface and a
    firewall zone through UCI, and patches the init script to use the
    interface. Configuration files are backed up to .bak before any change.
    """
    if update and uninstall:
        raise typer.BadParameter(
            "--update and --uninstall are mutually exclusive", ctx=ctx
        )
    if advertise_exit_node and exit_node:
        raise typer.BadParameter(
            "--advertise-exit-node and --exit-node are mutually exclusive", ctx=ctx
        )

    settings = get_settings()
    if show_config:
        console.print(print_settings_json(settings), soft_wrap=True, markup=False)
        raise typer.Exit()

    if uninstall:
        mode = RunMode.UNINSTALL
    elif update:
        mode = RunMode.UPDATE
    else:
        mode = RunMode.INSTALL

    config = RunConfig(
        interface=interface,
        zone=zone,
        mode=mode,
        verbose=verbose,
        small_binary=small,
        configure=configure,
        tune_network=tune_network,
        bring_up=BringUpOptions(
            auth_key=auth_key,
            advertise_routes=(
                parse_routes(advertise_routes) if advertise_routes is not None else None
            ),
            accept_routes=accept_routes,
            advertise_exit_node=advertise_exit_node,
            exit_node=exit_node,
        ),
    )

    configure_logging(settings, verbose=verbose)
    try:
        run(settings, config)
    except InstallerError as e:
        logger.error("%s", e.message)
        raise typer.Exit(code=1) from None


__all__ = ["LoggedCommand", "app", "log_usage_error", "main", "validate_name"]
