"""Configuration settings for openwrt_tailscale.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.

Settings describe the router (paths, package and command names); the
per-run choices such as interface and zone live in RunConfig.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_backup_files() -> list[Path]:
    """Return the UCI config files backed up before every run."""
    return [Path("/etc/config/network"), Path("/etc/config/firewall")]


class Settings(BaseSettings):
    """Host settings.

    Settings are loaded from environment variables with the OWRT_TS_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="OWRT_TS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_file: Path = Field(
        default=Path("/tmp/tailscale_install.log"),
        description="Log file appended with every operator-visible message",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level (--verbose forces DEBUG)",
    )

    # Packages
    package_name: str = Field(
        default="tailscale",
        description="opkg package providing the VPN daemon",
    )
    extra_packages: list[str] = Field(
        default_factory=lambda: ["iptables-nft"],
        description="Packet filtering dependencies installed after configuration",
    )
    required_commands: list[str] = Field(
        default_factory=lambda: ["opkg", "uci"],
        description="Executables that must be on PATH before anything runs",
    )

    # Host paths
    version_file: Path = Field(
        default=Path("/etc/openwrt_version"),
        description="File holding the OpenWrt version identifier",
    )
    backup_files: list[Path] = Field(
        default_factory=_default_backup_files,
        description="Config files copied to .bak siblings before any change",
    )
    init_script: Path = Field(
        default=Path("/etc/init.d/tailscale"),
        description="procd init script of the daemon",
    )
    state_dir: Path = Field(
        default=Path("/var/lib/tailscale"),
        description="Daemon state directory, removed on uninstall",
    )
    exit_node_state_file: Path = Field(
        default=Path("/etc/tailscale_installer.json"),
        description="Firewall values saved before exit node routing changed them",
    )
    dispatcher_dir: Path = Field(
        default=Path("/etc/networkd-dispatcher"),
        description="networkd-dispatcher root; tuning is skipped if absent",
    )

    # Commands
    daemon_command: str = Field(default="tailscaled")
    client_command: str = Field(default="tailscale")
    systemctl_command: str = Field(default="systemctl")

    require_root: bool = Field(
        default=True,
        description="Refuse to run unless the effective UID is 0",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
