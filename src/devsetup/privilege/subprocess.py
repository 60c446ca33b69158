"""Safe async subprocess execution for privileged commands."""

from __future__ import annotations

import asyncio
import codecs
import inspect
import os
import signal
from collections.abc import Awaitable, Callable

from devsetup.models import StreamChunk

_OUTPUT_LIMIT = 4000
_READ_SIZE = 4096

ChunkCallback = Callable[[StreamChunk], Awaitable[None] | None]


async def run_command(
    cmd: list[str],
    env: dict[str, str] | None = None,
    timeout: float = 60.0,
    input_text: str | None = None,
    limit: int = _OUTPUT_LIMIT,
) -> tuple[int, str, str]:
    """Run a subprocess with timeout, return (returncode, stdout, stderr).

    Uses asyncio.create_subprocess_exec -- never shell=True.
    ``input_text`` is written to stdin and never appears in argv.
    Output keeps the last ``limit`` chars, where apt puts its errors.
    Uses start_new_session=True so child processes can be killed as a group.
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=env,
        start_new_session=True,
    )
    stdin_bytes = input_text.encode() if input_text is not None else None
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            proc.communicate(stdin_bytes), timeout=timeout
        )
    except TimeoutError:
        await _kill_group(proc)
        return (-1, "", f"Command timed out after {timeout}s")
    except BaseException:
        await _kill_group(proc)
        raise

    return (
        proc.returncode or 0,
        stdout_bytes.decode(errors="replace")[-limit:],
        stderr_bytes.decode(errors="replace")[-limit:],
    )


async def stream_command(
    cmd: list[str],
    on_chunk: ChunkCallback | None,
    timeout: float = 60.0,
    input_text: str | None = None,
) -> tuple[int, str, str]:
    """Run a subprocess and hand stdout/stderr to ``on_chunk`` as they arrive.

    Returns only when the process exits. On timeout the process group is
    killed and (-1, partial stdout, partial stderr + timeout note) is returned.
    If ``on_chunk`` raises or the caller is cancelled, the process group is
    killed before the exception propagates.
    ``on_chunk`` may be a plain function or a coroutine function.
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    if input_text is not None and proc.stdin is not None:
        proc.stdin.write(input_text.encode())
        await proc.stdin.drain()
        proc.stdin.close()

    stdout_parts: list[str] = []
    stderr_parts: list[str] = []

    async def pump(reader: asyncio.StreamReader, name: str, parts: list[str]) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await reader.read(_READ_SIZE)
            text = decoder.decode(data, final=not data)
            if text:
                parts.append(text)
                if on_chunk is not None:
                    outcome = on_chunk(StreamChunk(stream=name, data=text))
                    if inspect.isawaitable(outcome):
                        await outcome
            if not data:
                return

    async def drain() -> int:
        await asyncio.gather(
            pump(proc.stdout, "stdout", stdout_parts),
            pump(proc.stderr, "stderr", stderr_parts),
        )
        return await proc.wait()

    try:
        returncode = await asyncio.wait_for(drain(), timeout=timeout)
    except TimeoutError:
        await _kill_group(proc)
        stderr_parts.append(f"\nCommand timed out after {timeout}s")
        return (-1, "".join(stdout_parts), "".join(stderr_parts))
    except BaseException:
        await _kill_group(proc)
        raise

    return (returncode or 0, "".join(stdout_parts), "".join(stderr_parts))


async def _kill_group(proc: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
    except (ProcessLookupError, OSError):
        proc.kill()
    await proc.wait()
