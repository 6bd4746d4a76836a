"""Child process execution bound to the caller's cancellation.

The child inherits stdin, stdout and stderr from this process. If the
awaiting task is cancelled, the child is terminated, then killed if it does
not exit within TERMINATE_GRACE_SECONDS, and reaped before the cancellation
propagates.
"""

import asyncio
from typing import List, Mapping

import structlog

from .errors import CommandError

logger = structlog.get_logger(__name__)

TERMINATE_GRACE_SECONDS = 5.0


def normalize_returncode(returncode: int) -> int:
    """Map a child return code to a shell-style exit status.

    asyncio reports death by signal N as ``-N``; shells report ``128 + N``.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode


async def run_command(argv: List[str], env: Mapping[str, str]) -> int:
    """Run a command to completion and return its normalized exit status.

    Args:
        argv: Executable followed by its arguments
        env: Complete environment for the child

    Returns:
        Exit status of the child (``128 + N`` if killed by signal N)

    Raises:
        ValueError: If argv is empty
        CommandError: If the executable cannot be launched
        asyncio.CancelledError: If cancelled; the child has been stopped and reaped
    """
    if not argv:
        raise ValueError("argv must contain at least the executable")

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=None,
            stdout=None,
            stderr=None,
            env=dict(env),
        )
    except FileNotFoundError as e:
        raise CommandError(f"exec: {argv[0]!r}: executable file not found", suggestion=str(e)) from e
    except PermissionError as e:
        raise CommandError(f"exec: {argv[0]!r}: permission denied", suggestion=str(e)) from e
    except OSError as e:
        raise CommandError(f"exec: {argv[0]!r}: {e}") from e

    logger.debug("Command started", executable=argv[0], pid=proc.pid)

    try:
        returncode = await proc.wait()
    except asyncio.CancelledError:
        await _stop(proc)
        raise

    status = normalize_returncode(returncode)
    logger.debug("Command exited", executable=argv[0], pid=proc.pid, status=status)
    return status


async def _stop(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return

    logger.info("Terminating command", pid=proc.pid)
    try:
        proc.terminate()
    except ProcessLookupError:
        pass

    try:
        await asyncio.wait_for(proc.wait(), timeout=TERMINATE_GRACE_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("Command did not exit after SIGTERM, killing", pid=proc.pid)
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
