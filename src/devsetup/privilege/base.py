"""Port: Privileged command execution."""

from __future__ import annotations

from typing import Protocol

from devsetup.models import CommandResult
from devsetup.privilege.subprocess import ChunkCallback


class PrivilegedExecutorPort(Protocol):
    """Port for running commands with elevated rights.

    Credentials are accepted per call and never stored.
    """

    async def verify_credential(self, credential: str) -> bool:
        """Probe with a harmless privileged command. Timeouts count as invalid."""
        ...

    async def run(
        self,
        command: list[str],
        credential: str,
        *,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run one command. Returns a result even on failure (never raises)."""
        ...

    async def run_streaming(
        self,
        command: list[str],
        credential: str,
        on_chunk: ChunkCallback | None = None,
    ) -> CommandResult:
        """Run one command, delivering output as it is produced.

        Raises ExecutionError (carrying the partial result) on non-zero exit.
        """
        ...

    async def run_sequential(
        self,
        commands: list[list[str]],
        credential: str,
    ) -> list[CommandResult]:
        """Run commands in order, stopping after the first failure."""
        ...
