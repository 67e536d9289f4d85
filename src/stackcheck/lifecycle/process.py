"""Subprocess execution for the lifecycle harness.

Runs an external command, captures stdout and stderr as one combined
stream and maps a non-zero exit status to ``CommandFailed``.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from ..errors import CommandFailed
from ..shared import get_logger

logger = get_logger(__name__)


async def run_command(
    command: str,
    args: list[str] | tuple[str, ...] = (),
    *,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
) -> str:
    """Run ``command args...`` and return its combined output.

    No timeout is enforced here. Cancelling the awaiting task kills the
    subprocess before the cancellation propagates.

    Args:
        command: Executable name or path, resolved on PATH.
        args: Command arguments.
        cwd: Working directory for the subprocess.
        env: Variables merged over the inherited environment.

    Returns:
        Combined stdout/stderr text.

    Raises:
        CommandFailed: On non-zero exit status, or when the process
            cannot be started.
    """
    proc_env = None
    if env:
        proc_env = {**os.environ, **env}

    logger.debug("running command", command=command, args=list(args), cwd=str(cwd or "."))

    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=str(cwd) if cwd is not None else None,
            env=proc_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise CommandFailed(command=command, output=str(e), returncode=None) from e

    try:
        raw, _ = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
        logger.warning("command cancelled", command=command)
        raise

    output = raw.decode("utf-8", errors="replace") if raw else ""
    if proc.returncode != 0:
        raise CommandFailed(command=command, output=output.strip(), returncode=proc.returncode)

    return output
