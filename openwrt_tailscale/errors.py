"""Error definitions for openwrt_tailscale.

Every fatal condition is an InstallerError subclass carrying a stable
error code. Steps raise them; the CLI logs the message and exits non-zero.
"""

from collections.abc import Sequence


class InstallerError(Exception):
    """Base exception for installer errors."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class PermissionDeniedError(InstallerError):
    """The script is not running as root."""

    def __init__(self) -> None:
        super().__init__("This script must be run as root", error_code="not_root")


class MissingDependencyError(InstallerError):
    """A required executable is not on PATH."""

    def __init__(self, command: str) -> None:
        super().__init__(
            f"Required command '{command}' not found",
            error_code="missing_dependency",
        )
        self.command = command


class EnvironmentUnreadableError(InstallerError):
    """The OpenWrt version could not be determined."""

    def __init__(self, path: str, reason: str | None = None) -> None:
        message = f"Unable to determine OpenWrt version from {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, error_code="environment_unreadable")
        self.path = path


class BackupError(InstallerError):
    """A config file could not be backed up."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"Failed to back up {path}: {reason}", error_code="backup_failed"
        )
        self.path = path


class CommandFailedError(InstallerError):
    """An external command could not be run or returned non-zero."""

    def __init__(
        self,
        description: str,
        command: Sequence[str],
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        message = f"Failed to {description}"
        if exit_code is not None:
            message = f"{message} (exit code {exit_code})"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message, error_code="command_failed")
        self.description = description
        self.command = list(command)
        self.exit_code = exit_code
        self.stderr = stderr


class InitScriptError(InstallerError):
    """The init script could not be read, patched, or written."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"Cannot patch init script {path}: {reason}", error_code="init_script"
        )
        self.path = path


__all__ = [
    "BackupError",
    "CommandFailedError",
    "EnvironmentUnreadableError",
    "InitScriptError",
    "InstallerError",
    "MissingDependencyError",
    "PermissionDeniedError",
]
