"""OpenWrt Tailscale installer - opinionated setup for Tailscale on OpenWrt.

This package installs, updates, and removes the Tailscale package on an
OpenWrt router and keeps the related UCI network/firewall configuration and
init script patch in a consistent state.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
