"""apt/dpkg package backend."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from devsetup.models import PackageResult
from devsetup.privilege.base import PrivilegedExecutorPort
from devsetup.privilege.subprocess import run_command

logger = logging.getLogger(__name__)

_QUERY_TIMEOUT = 30.0
_QUERY_OUTPUT_LIMIT = 1_000_000
_APT_ENV = ["env", "DEBIAN_FRONTEND=noninteractive"]

# Debian package names: lowercase alnum plus + - . and an optional :arch suffix.
_PACKAGE_NAME = re.compile(r"^[a-z0-9][a-z0-9+.\-]*(:[a-z0-9\-]+)?$")


def _invalid_names(names: list[str]) -> list[str]:
    return [name for name in names if not _PACKAGE_NAME.match(name)]


@dataclass(frozen=True, slots=True)
class AptBackend:
    """Installs Debian/Ubuntu packages through the privileged executor.

    ``overrides`` maps a catalog package name to the name used on this
    platform (e.g. ``docker.io`` -> ``docker-ce``).
    """

    executor: PrivilegedExecutorPort
    overrides: dict[str, str] = field(default_factory=dict)

    def resolve_package_name(self, package: str) -> str:
        return " ".join(self.overrides.get(name, name) for name in package.split())

    async def is_installed(self, package: str) -> bool:
        names = package.split()
        if not names or _invalid_names(names):
            return False
        for name in names:
            try:
                returncode, stdout, _ = await run_command(
                    ["dpkg-query", "-W", "-f=${Status}", name],
                    timeout=_QUERY_TIMEOUT,
                )
            except OSError:
                logger.debug("dpkg-query unavailable", exc_info=True)
                return False
            if returncode != 0 or "install ok installed" not in stdout:
                return False
        return True

    async def update_package_list(self, credential: str) -> PackageResult:
        """Run ``apt-get update``. Callers treat failure as non-fatal."""
        result = await self.executor.run(["apt-get", "update"], credential)
        if not result.success:
            logger.warning("apt-get update failed: %s", result.error)
            return PackageResult(
                success=False,
                package="",
                message="Failed to update package list",
                output=result.stderr,
            )
        return PackageResult(
            success=True, package="", message="Package list updated", output=result.stdout
        )

    async def install(self, package: str, credential: str) -> PackageResult:
        """Install via apt-get; success requires dpkg to report it installed afterwards."""
        names = package.split()
        invalid = _invalid_names(names)
        if not names or invalid:
            return PackageResult(
                success=False,
                package=package,
                message=f"Invalid package name(s): {', '.join(invalid) or '(empty)'}",
            )

        await self.update_package_list(credential)

        logger.info("Installing package(s): %s", package)
        result = await self.executor.run([*_APT_ENV, "apt-get", "install", "-y", *names], credential)

        if result.success and await self.is_installed(package):
            return PackageResult(
                success=True,
                package=package,
                message=f"Successfully installed {package}",
                output=result.stdout,
            )
        detail = result.error or "package not reported as installed"
        return PackageResult(
            success=False,
            package=package,
            message=f"Failed to install {package}: {detail}",
            output=result.stderr or result.stdout,
        )

    async def uninstall(self, package: str, credential: str) -> PackageResult:
        """Remove via apt-get; success requires dpkg to no longer report it installed."""
        names = package.split()
        invalid = _invalid_names(names)
        if not names or invalid:
            return PackageResult(
                success=False,
                package=package,
                message=f"Invalid package name(s): {', '.join(invalid) or '(empty)'}",
            )

        logger.info("Removing package(s): %s", package)
        result = await self.executor.run([*_APT_ENV, "apt-get", "remove", "-y", *names], credential)

        if not await self.is_installed(package):
            return PackageResult(
                success=True,
                package=package,
                message=f"Successfully uninstalled {package}",
                output=result.stdout,
            )
        detail = result.error or "package still installed"
        return PackageResult(
            success=False,
            package=package,
            message=f"Failed to uninstall {package}: {detail}",
            output=result.stderr or result.stdout,
        )

    async def autoremove(self, credential: str) -> PackageResult:
        result = await self.executor.run([*_APT_ENV, "apt-get", "autoremove", "-y"], credential)
        return PackageResult(
            success=result.success,
            package="",
            message="Autoremove completed" if result.success else f"Autoremove failed: {result.error}",
            output=result.stdout if result.success else result.stderr,
        )

    # ── Unprivileged queries ─────────────────────────────────────

    async def get_package_info(self, name: str) -> dict[str, str]:
        """Fields from ``apt-cache show``; empty if the package is unknown."""
        if _invalid_names([name]):
            return {}
        try:
            returncode, stdout, _ = await run_command(
                ["apt-cache", "show", name], timeout=_QUERY_TIMEOUT, limit=_QUERY_OUTPUT_LIMIT
            )
        except OSError:
            return {}
        if returncode != 0:
            return {}

        info: dict[str, str] = {}
        for line in stdout.splitlines():
            if not line.strip():
                # apt-cache prints one stanza per available version; keep the first.
                if info:
                    break
                continue
            key, sep, value = line.partition(":")
            if sep and not line.startswith(" "):
                info[key.strip()] = value.strip()
        return info

    async def get_dependencies(self, name: str) -> list[str]:
        """Direct ``Depends:`` entries from ``apt-cache depends``."""
        if _invalid_names([name]):
            return []
        try:
            returncode, stdout, _ = await run_command(
                ["apt-cache", "depends", name], timeout=_QUERY_TIMEOUT, limit=_QUERY_OUTPUT_LIMIT
            )
        except OSError:
            return []
        if returncode != 0:
            return []
        return [
            line.strip().removeprefix("Depends:").strip()
            for line in stdout.splitlines()
            if line.strip().startswith("Depends:")
        ]

    async def search(self, term: str) -> list[dict[str, str]]:
        """``apt-cache search`` results as ``{name, description}`` entries."""
        if not term.strip() or term.startswith("-"):
            return []
        try:
            returncode, stdout, _ = await run_command(
                ["apt-cache", "search", "--", term], timeout=_QUERY_TIMEOUT, limit=_QUERY_OUTPUT_LIMIT
            )
        except OSError:
            return []
        if returncode != 0:
            return []

        packages: list[dict[str, str]] = []
        for line in stdout.splitlines():
            if not line.strip():
                continue
            name, _, description = line.partition(" - ")
            packages.append({"name": name.strip(), "description": description.strip()})
        return packages
