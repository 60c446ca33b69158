"""Port: OS package backend -- one implementation per package manager."""

from __future__ import annotations

from typing import Protocol

from devsetup.models import PackageResult


class PackageBackendPort(Protocol):
    """Protocol for package-manager-specific install logic."""

    def resolve_package_name(self, package: str) -> str:
        """Apply platform overrides to a space-delimited package string."""
        ...

    async def is_installed(self, package: str) -> bool:
        """True only if every package in the string is installed."""
        ...

    async def install(self, package: str, credential: str) -> PackageResult:
        """Install packages. Returns result even on failure (never raises)."""
        ...

    async def uninstall(self, package: str, credential: str) -> PackageResult:
        """Remove packages. Returns result even on failure (never raises)."""
        ...
