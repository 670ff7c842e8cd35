"""External process helpers.

This module handles:
- Running external commands from argument lists (never through a shell)
- Checking that executables are available on PATH
- Driving the procd init script (service manager)
- Invoking the tailscale/tailscaled command line tools

Command failures raise CommandFailedError naming the failed operation.
"""

import logging
import shlex
import shutil
import subprocess
from collections.abc import Sequence

from openwrt_tailscale.config import Settings
from openwrt_tailscale.errors import CommandFailedError

logger = logging.getLogger(__name__)

# Options whose values must never reach the log
_SECRET_OPTIONS = ("--authkey",)


def redact_command(cmd: Sequence[str]) -> list[str]:
    """Return a copy of cmd with secret option values masked.

    Args:
        cmd: Command as a list of arguments.

    Returns:
        Command safe to log.
    """
    redacted: list[str] = []
    for arg in cmd:
        for option in _SECRET_OPTIONS:
            if arg.startswith(f"{option}="):
                arg = f"{option}=***"
        redacted.append(arg)
    return redacted


def command_exists(name: str) -> bool:
    """Check if an executable is resolvable on PATH."""
    return shutil.which(name) is not None


def run_command(
    cmd: Sequence[str],
    *,
    description: str,
    check: bool = True,
    capture: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run an external command, capturing its output by default.

    Args:
        cmd: Command as a list of arguments.
        description: What the command does, used in error messages
            (e.g. "update package lists").
        check: Raise on a non-zero exit status.
        capture: Capture stdout/stderr. When False the command writes
            straight to the terminal and the result carries no output.

    Returns:
        The completed process (text stdout/stderr when captured).

    Raises:
        CommandFailedError: If the command cannot be started, or exits
            non-zero while check is True.
    """
    safe_cmd = redact_command(cmd)
    logger.debug("Executing: %s", shlex.join(safe_cmd))

    try:
        result = subprocess.run(
            list(cmd),
            capture_output=capture,
            text=True,
            check=False,
        )
    except OSError as e:
        raise CommandFailedError(description, safe_cmd, stderr=str(e)) from e

    for line in (result.stdout or "").splitlines():
        logger.debug("  %s", line)

    if check and result.returncode != 0:
        raise CommandFailedError(
            description,
            safe_cmd,
            exit_code=result.returncode,
            stderr=result.stderr,
        )
    return result


def service_action(settings: Settings, action: str, *, check: bool = True) -> bool:
    """Run an action (stop, restart, ...) on the daemon's init script.

    Args:
        settings: Settings providing the init script path.
        action: procd init script action.
        check: Raise on failure instead of returning False.

    Returns:
        True if the action succeeded.
    """
    result = run_command(
        [str(settings.init_script), action],
        description=f"{action} {settings.package_name} service",
        check=check,
    )
    if result.returncode != 0:
        logger.warning(
            "%s %s service exited with %d",
            action.capitalize(),
            settings.package_name,
            result.returncode,
        )
        return False
    return True


def daemon_cleanup(settings: Settings) -> bool:
    """Run `tailscaled --cleanup` if the daemon binary is present.

    Returns:
        True if cleanup ran successfully, False if skipped or failed.
    """
    if not command_exists(settings.daemon_command):
        logger.info("%s not found, skipping cleanup...", settings.daemon_command)
        return False

    logger.info("Running Tailscale cleanup...")
    result = run_command(
        [settings.daemon_command, "--cleanup"],
        description="clean up tailscale daemon state",
        check=False,
    )
    if result.returncode != 0:
        logger.warning("Tailscale cleanup exited with %d", result.returncode)
        return False
    return True


def tailscale_up(settings: Settings, flags: Sequence[str]) -> None:
    """Run `tailscale up` with the given flags.

    Output is not captured: without an auth key tailscale prints a login
    URL and waits for the operator to authenticate.

    Raises:
        CommandFailedError: If tailscale up fails.
    """
    run_command(
        [settings.client_command, "up", *flags],
        description="bring up tailscale",
        capture=False,
    )


__all__ = [
    "command_exists",
    "daemon_cleanup",
    "redact_command",
    "run_command",
    "service_action",
    "tailscale_up",
]
