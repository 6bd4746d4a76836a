"""Child process environment construction.

The child receives the temporary credentials followed by the parent's
environment with every pre-existing AWS credential variable removed, so
stale or conflicting credentials can never leak through.
"""

import os
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from .credentials import Credentials
from .errors import InvalidEnvironError

logger = structlog.get_logger(__name__)

ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
SESSION_TOKEN = "AWS_SESSION_TOKEN"

INJECTED_KEYS = (ACCESS_KEY_ID, SECRET_ACCESS_KEY, SESSION_TOKEN)

DENYLIST = frozenset(
    {
        "AWS_ROLE_ARN",
        ACCESS_KEY_ID,
        SECRET_ACCESS_KEY,
        SESSION_TOKEN,
        "AWS_WEB_IDENTITY_TOKEN_FILE",
    }
)


def build_environ(credentials: Credentials, parent: Iterable[str]) -> List[str]:
    """Build the child environment as a list of ``KEY=VALUE`` entries.

    The three credential entries always come first, exactly once. Parent
    entries follow in their original order, minus any denylisted key.

    Args:
        credentials: Temporary credentials to inject
        parent: Parent environment entries, each of the form ``KEY=VALUE``

    Returns:
        Child environment entries

    Raises:
        InvalidEnvironError: If a parent entry contains no ``=``
    """
    env = [
        f"{ACCESS_KEY_ID}={credentials.access_key_id}",
        f"{SECRET_ACCESS_KEY}={credentials.secret_access_key}",
        f"{SESSION_TOKEN}={credentials.session_token}",
    ]

    stripped = []
    for entry in parent:
        key, sep, _ = entry.partition("=")
        if not sep:
            raise InvalidEnvironError("invalid environ", details=f"entry without '=': {key[:64]!r}")
        if key in DENYLIST:
            stripped.append(key)
            continue
        env.append(entry)

    if stripped:
        logger.debug("Stripped credential variables from parent environment", keys=stripped)

    return env


def current_environ(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Return the process environment as ``KEY=VALUE`` entries."""
    if environ is None:
        environ = os.environ
    return [f"{key}={value}" for key, value in environ.items()]


def environ_to_mapping(entries: Iterable[str]) -> Dict[str, str]:
    """Convert ``KEY=VALUE`` entries into the mapping subprocess expects."""
    env: Dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep:
            raise InvalidEnvironError("invalid environ", details=f"entry without '=': {key[:64]!r}")
        env[key] = value
    return env
