"""Patching of the tailscale procd init script.

The stock init script starts tailscaled without a TUN name. Install adds
one `procd_append_param command --tun <interface>` line after the first
`procd_append_param command` line; uninstall removes that exact line.
Both operations are idempotent.
"""

import logging
import os
import shutil
from pathlib import Path

from openwrt_tailscale.errors import InitScriptError

logger = logging.getLogger(__name__)

ANCHOR = "procd_append_param command"


def tun_param_line(interface: str) -> str:
    """Return the init script line passing the TUN interface name."""
    return f"{ANCHOR} --tun {interface}"


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines(keepends=True)
    except OSError as e:
        raise InitScriptError(str(path), e.strerror or str(e)) from e


def _write_lines(path: Path, lines: list[str]) -> None:
    """Replace the file contents atomically, keeping its permissions."""
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_text("".join(lines), encoding="utf-8")
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise InitScriptError(str(path), e.strerror or str(e)) from e


def insert_tun_param(path: Path, interface: str) -> bool:
    """Insert the --tun line after the first anchor line.

    Args:
        path: Init script path.
        interface: TUN interface name.

    Returns:
        True if the line was inserted, False if it was already present.

    Raises:
        InitScriptError: If the script cannot be read or written, or has
            no anchor line.
    """
    logger.info("Modifying Tailscale init script...")
    lines = _read_lines(path)
    target = tun_param_line(interface)

    if any(line.strip() == target for line in lines):
        logger.info("Init script already passes --tun %s", interface)
        return False

    for index, line in enumerate(lines):
        if ANCHOR in line:
            indent = line[: len(line) - len(line.lstrip())]
            if not line.endswith("\n"):
                lines[index] = f"{line}\n"
            lines.insert(index + 1, f"{indent}{target}\n")
            break
    else:
        raise InitScriptError(str(path), f"no '{ANCHOR}' line found")

    _write_lines(path, lines)
    logger.debug("Inserted '%s' into %s", target, path)
    return True


def remove_tun_param(path: Path, interface: str) -> int:
    """Remove every --tun line for the interface.

    A missing init script (already removed with the package) is not an
    error.

    Returns:
        Number of lines removed.
    """
    logger.info("Removing Tailscale init script modifications...")
    if not path.exists():
        logger.info("Init script %s not found, nothing to remove", path)
        return 0

    lines = _read_lines(path)
    target = tun_param_line(interface)
    kept = [line for line in lines if line.strip() != target]
    removed = len(lines) - len(kept)
    if removed:
        _write_lines(path, kept)
    return removed


__all__ = [
    "ANCHOR",
    "insert_tun_param",
    "remove_tun_param",
    "tun_param_line",
]
