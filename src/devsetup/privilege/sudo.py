"""sudo-backed privileged executor.

Security invariants:
- The credential is written to ``sudo -S`` stdin only, never to argv or a shell string
- ``-k`` ignores cached credentials, so every call re-validates
- The credential is never logged and never stored on the executor
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

from devsetup.errors import ExecutionError
from devsetup.models import CommandResult, CredentialStrength
from devsetup.privilege.subprocess import ChunkCallback, run_command, stream_command
from devsetup.settings import DEFAULT_COMMAND_TIMEOUT, DEFAULT_VERIFY_TIMEOUT

logger = logging.getLogger(__name__)

_BAD_CREDENTIAL_MARKERS = ("sorry, try again", "incorrect password")
_PROBE_MARKER = "devsetup-privilege-ok"
_MISSING_CREDENTIAL = "A credential is required for privileged operations."

# Commands that normally need root; used for display hints only.
SUDO_COMMANDS: frozenset[str] = frozenset(
    {
        "apt-get",
        "apt",
        "dpkg",
        "systemctl",
        "service",
        "mount",
        "umount",
        "reboot",
        "shutdown",
        "adduser",
        "deluser",
        "usermod",
        "groupadd",
        "groupdel",
    }
)


def _is_root() -> bool:
    return os.geteuid() == 0


def _looks_like_bad_credential(output: str) -> bool:
    lowered = output.lower()
    return any(marker in lowered for marker in _BAD_CREDENTIAL_MARKERS)


def requires_sudo(command: str | list[str]) -> bool:
    """Whether the command's program is one that normally needs root."""
    words = command.split() if isinstance(command, str) else command
    return bool(words) and words[0] in SUDO_COMMANDS


def check_credential_strength(credential: str) -> CredentialStrength:
    """Rough strength rating for a credential, with warnings."""
    if not credential:
        return CredentialStrength(valid=False, strength="weak", warnings=["Credential cannot be empty"])

    warnings: list[str] = []
    if len(credential) < 8:
        strength = "weak"
        warnings.append("Credential is shorter than 8 characters")
    elif len(credential) >= 12:
        strength = "strong"
    else:
        strength = "medium"

    if re.fullmatch(r"[0-9]+", credential):
        warnings.append("Credential contains only numbers")
        strength = "weak"
    if re.fullmatch(r"[a-z]+", credential):
        warnings.append("Credential contains only lowercase letters")
        strength = "weak"

    return CredentialStrength(valid=True, strength=strength, warnings=warnings)


async def has_sudo_access(timeout: float = DEFAULT_VERIFY_TIMEOUT) -> bool:
    """True if the user can use sudo at all, with or without a password."""
    if _is_root():
        return True
    try:
        returncode, _stdout, stderr = await run_command(["sudo", "-n", "true"], timeout=timeout)
    except OSError:
        return False
    return returncode == 0 or "password is required" in stderr.lower()


@dataclass(frozen=True, slots=True)
class SudoExecutor:
    """Adapter for PrivilegedExecutorPort using ``sudo -S``.

    When the process already runs as root, commands run directly and the
    credential is ignored.
    """

    timeout: float = DEFAULT_COMMAND_TIMEOUT
    verify_timeout: float = DEFAULT_VERIFY_TIMEOUT

    def _wrap(self, command: list[str], credential: str) -> tuple[list[str], str | None]:
        if _is_root():
            return list(command), None
        return ["sudo", "-S", "-k", "-p", "", "--", *command], credential + "\n"

    async def verify_credential(self, credential: str) -> bool:
        if not credential:
            return False
        result = await self.run(["echo", _PROBE_MARKER], credential, timeout=self.verify_timeout)
        if _looks_like_bad_credential(result.stdout + result.stderr):
            return False
        return result.success and _PROBE_MARKER in result.stdout

    async def run(
        self,
        command: list[str],
        credential: str,
        *,
        timeout: float | None = None,
    ) -> CommandResult:
        if not credential and not _is_root():
            return CommandResult(command=command, success=False, exit_code=-1, error=_MISSING_CREDENTIAL)

        argv, stdin = self._wrap(command, credential)
        logger.debug("Running privileged command: %s", command)
        try:
            returncode, stdout, stderr = await run_command(
                argv, timeout=timeout or self.timeout, input_text=stdin
            )
        except OSError as exc:
            return CommandResult(
                command=command,
                success=False,
                exit_code=-1,
                error=f"Failed to start {argv[0]}: {exc}",
            )

        if returncode == 0:
            return CommandResult(command=command, success=True, stdout=stdout, stderr=stderr)
        return CommandResult(
            command=command,
            success=False,
            stdout=stdout,
            stderr=stderr,
            exit_code=returncode,
            error=_describe_failure(returncode, stderr),
        )

    async def run_streaming(
        self,
        command: list[str],
        credential: str,
        on_chunk: ChunkCallback | None = None,
    ) -> CommandResult:
        if not credential and not _is_root():
            raise ExecutionError(_MISSING_CREDENTIAL)

        argv, stdin = self._wrap(command, credential)
        logger.debug("Streaming privileged command: %s", command)
        try:
            returncode, stdout, stderr = await stream_command(
                argv, on_chunk, timeout=self.timeout, input_text=stdin
            )
        except OSError as exc:
            raise ExecutionError(f"Failed to start {argv[0]}: {exc}") from exc

        result = CommandResult(
            command=command,
            success=returncode == 0,
            stdout=stdout.strip(),
            stderr=stderr.strip(),
            exit_code=returncode,
            error="" if returncode == 0 else _describe_failure(returncode, stderr),
        )
        if not result.success:
            raise ExecutionError(result.error, result)
        return result

    async def run_sequential(
        self,
        commands: list[list[str]],
        credential: str,
    ) -> list[CommandResult]:
        results: list[CommandResult] = []
        for command in commands:
            result = await self.run(command, credential)
            results.append(result)
            if not result.success:
                logger.warning("Stopping command sequence at %s: %s", command, result.error)
                break
        return results


def _describe_failure(returncode: int, stderr: str) -> str:
    if _looks_like_bad_credential(stderr):
        return "Invalid credential"
    if returncode == -1 and "timed out" in stderr:
        return stderr.strip()
    return f"Command exited with code {returncode}"
