"""Run STDIO tool install and health-check commands without a shell."""

from __future__ import annotations

import asyncio
import os
import shlex
import signal

_OUTPUT_LIMIT = 2000
_COMMAND_NOT_FOUND = 127


def split_command(command: str) -> list[str]:
    """Tokenize a catalog command string (``"npx -y pkg"`` -> ``["npx", "-y", "pkg"]``)."""
    try:
        return shlex.split(command)
    except ValueError:
        return command.split()


async def run_command(
    cmd: list[str],
    env: dict[str, str] | None = None,
    timeout: float = 60.0,
) -> tuple[int, str, str]:
    """Run a subprocess with timeout, return (returncode, stdout, stderr).

    Uses asyncio.create_subprocess_exec -- never shell=True. A missing
    executable is reported as return code 127 instead of raising.
    Uses start_new_session=True so child processes can be killed as a group.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            start_new_session=True,
        )
    except FileNotFoundError:
        return (_COMMAND_NOT_FOUND, "", f"Command not found: {cmd[0] if cmd else ''}")
    except PermissionError as exc:
        return (_COMMAND_NOT_FOUND, "", f"Cannot execute {cmd[0] if cmd else ''}: {exc}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        try:
            os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
        except (ProcessLookupError, OSError):
            proc.kill()
        await proc.wait()
        return (-1, "", f"Command timed out after {timeout}s")

    return (
        proc.returncode or 0,
        stdout_bytes.decode(errors="replace")[:_OUTPUT_LIMIT],
        stderr_bytes.decode(errors="replace")[:_OUTPUT_LIMIT],
    )
