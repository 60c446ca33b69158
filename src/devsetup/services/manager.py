"""systemd service control."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from devsetup.errors import ServiceError
from devsetup.models import CommandResult
from devsetup.privilege.base import PrivilegedExecutorPort
from devsetup.privilege.subprocess import run_command

logger = logging.getLogger(__name__)

ACTIONS = ("start", "stop", "restart")

_SERVICE_NAME = re.compile(r"^[A-Za-z0-9@._\-]+$")
_STATUS_TIMEOUT = 10.0


def _check_service(name: str) -> str:
    if not _SERVICE_NAME.match(name) or name.startswith("-"):
        raise ServiceError(f"Invalid service name: {name!r}")
    return name


@dataclass(frozen=True, slots=True)
class ServiceManager:
    executor: PrivilegedExecutorPort

    async def status(self, name: str) -> str:
        """``systemctl is-active`` state; anything unexpected reads as "inactive"."""
        try:
            returncode, stdout, _ = await run_command(
                ["systemctl", "is-active", _check_service(name)], timeout=_STATUS_TIMEOUT
            )
        except OSError:
            logger.debug("systemctl unavailable", exc_info=True)
            return "inactive"
        if returncode != 0:
            return "inactive"
        return stdout.strip() or "inactive"

    async def control(self, name: str, action: str, credential: str) -> CommandResult:
        if action not in ACTIONS:
            raise ServiceError(f"Unknown action {action!r}; expected one of {', '.join(ACTIONS)}")
        result = await self.executor.run(["systemctl", action, _check_service(name)], credential)
        logger.info("systemctl %s %s: %s", action, name, "ok" if result.success else result.error)
        return result

    async def start(self, name: str, credential: str) -> CommandResult:
        return await self.control(name, "start", credential)

    async def stop(self, name: str, credential: str) -> CommandResult:
        return await self.control(name, "stop", credential)

    async def restart(self, name: str, credential: str) -> CommandResult:
        return await self.control(name, "restart", credential)
