"""Assume a role, then run a command with the temporary credentials.

A single cancellation scope spans the whole run: SIGINT or SIGTERM cancels
the main task, which abandons a pending STS request or stops a running
child, and the run ends with ``Interrupted``.
"""

import asyncio
import signal
from typing import Any, Iterable, List, Optional, Sequence

import structlog

from .config import AssumeRoleConfig
from .credentials import RoleAssumer
from .environ import build_environ, current_environ, environ_to_mapping
from .errors import CommandError, Interrupted
from .runner import run_command

logger = structlog.get_logger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def execute(
    config: AssumeRoleConfig,
    command: Sequence[str],
    environ: Optional[Iterable[str]] = None,
    sts_client: Optional[Any] = None,
) -> int:
    """Run the assume-role pipeline once.

    Args:
        config: Validated configuration
        command: Executable followed by its arguments; may be empty
        environ: Parent environment entries (default: this process's environment)
        sts_client: STS client to use instead of one from boto3's default chain

    Returns:
        0 when the command succeeds or when no command was given

    Raises:
        CredentialRequestError: If STS does not issue credentials
        InvalidEnvironError: If the parent environment holds a malformed entry
        CommandError: If the command cannot be launched or exits non-zero
    """
    credentials = await RoleAssumer(config, sts_client=sts_client).fetch()

    if environ is None:
        environ = current_environ()
    env = build_environ(credentials, environ)

    argv: List[str] = list(command)
    if not argv:
        logger.warning("no commands")
        return 0

    status = await run_command(argv, environ_to_mapping(env))
    if status != 0:
        raise CommandError(f"{argv[0]}: exit status {status}", return_code=status)
    return 0


async def _execute_until_signalled(
    config: AssumeRoleConfig,
    command: Sequence[str],
    environ: Optional[Iterable[str]],
    sts_client: Optional[Any],
) -> int:
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    received: List[int] = []

    def _on_signal(signum: int) -> None:
        logger.info("Received signal, cancelling", signal=signal.Signals(signum).name)
        if not received:
            received.append(signum)
            task.cancel()

    for signum in HANDLED_SIGNALS:
        loop.add_signal_handler(signum, _on_signal, signum)

    try:
        return await execute(config, command, environ=environ, sts_client=sts_client)
    except asyncio.CancelledError:
        if not received:
            raise
        raise Interrupted(received[0]) from None
    finally:
        for signum in HANDLED_SIGNALS:
            loop.remove_signal_handler(signum)


def run(
    config: AssumeRoleConfig,
    command: Sequence[str],
    environ: Optional[Iterable[str]] = None,
    sts_client: Optional[Any] = None,
) -> int:
    """Run the pipeline with SIGINT and SIGTERM wired to cancellation.

    Must be called from the main thread.

    Raises:
        AssumeRoleError: Any pipeline failure, or Interrupted on SIGINT/SIGTERM
    """
    return asyncio.run(_execute_until_signalled(config, command, environ, sts_client))
