"""Exception hierarchy for devsetup.

All exceptions inherit from DevSetupError (single catch point).
Messages are written to be shown to the user as-is -- clear, actionable, no stack traces.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devsetup.models import CommandResult


class DevSetupError(Exception):
    """Base exception for all devsetup errors."""


class CatalogError(DevSetupError):
    """Tool catalog could not be read, parsed, or validated."""


class SelectionError(DevSetupError):
    """Bad request: empty selection, unknown tool ID, or missing credential."""


class CredentialError(DevSetupError):
    """The privilege credential was rejected by the probe command."""


class ExecutionError(DevSetupError):
    """A privileged command could not run or exited non-zero while streaming."""

    def __init__(self, message: str, result: CommandResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class ProfileError(DevSetupError):
    """Profile not found, invalid, or unreadable."""


class ConfigManagementError(DevSetupError):
    """Config-file management is unavailable for a tool or an operation failed."""


class ServiceError(DevSetupError):
    """A system service could not be controlled."""
