"""
Error taxonomy of the launcher.

Every stage raises a subclass of :class:`LauncherError`; the CLI turns any of
them into exit code 1.
"""

from __future__ import annotations
from typing import Optional


class LauncherError(RuntimeError):
    """Base class for all launcher failures."""


class ConfigurationError(LauncherError):
    """Missing required value or malformed configuration (e.g. CONFIG_PATCHES)."""


class PathSafetyError(LauncherError):
    """A relative target path is absolute or escapes its root."""


class LauncherIOError(LauncherError):
    """Filesystem, download or extraction failure."""


class CommandFailedError(LauncherError):
    """An external tool exited non-zero."""

    def __init__(self, name: str, returncode: Optional[int], stderr: str = ""):
        self.name = name
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip()
        msg = f"{name} failed (rc={returncode})"
        if detail:
            msg += f": {detail[-2000:]}"
        super().__init__(msg)


class ReadinessTimeoutError(LauncherError):
    """The server never answered the readiness probe within the bound."""


class ServerCrashedError(LauncherError):
    """The server exited before it became ready."""

    def __init__(self, returncode: Optional[int], stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        msg = f"server exited before becoming ready (rc={returncode})"
        if stderr.strip():
            msg += f": {stderr.strip()[-2000:]}"
        super().__init__(msg)


class PatchApplyError(LauncherError):
    """One or more config files could not be patched."""

    def __init__(self, message: str, failed: int = 1):
        self.failed = failed
        super().__init__(message)


class PrivilegeError(LauncherError):
    """Identity reconciliation or privilege drop failed."""
