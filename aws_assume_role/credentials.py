"""Temporary credentials from AWS STS AssumeRole.

This module requests a single set of temporary credentials for the configured
role, using boto3's default credential chain for the calling identity.
Credentials are held in memory only and are never cached or refreshed.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import boto3
import structlog
from botocore.config import Config as BotocoreConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import AssumeRoleConfig
from .errors import CredentialRequestError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Temporary credentials issued by STS.

    Attributes:
        access_key_id: Temporary access key ID
        secret_access_key: Temporary secret access key (sensitive)
        session_token: Session token (sensitive)
        expiration: When the credentials stop working, if STS reported it
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str = field(repr=False)
    expiration: Optional[datetime] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> "Credentials":
        """Build Credentials from an AssumeRole response."""
        creds = response["Credentials"]
        return cls(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            expiration=creds.get("Expiration"),
        )


def build_assume_role_params(config: AssumeRoleConfig) -> Dict[str, Any]:
    """Build keyword arguments for ``sts.assume_role``.

    RoleArn and RoleSessionName are always sent. Every other parameter is
    omitted when it is zero or empty, so STS applies its own default instead
    of rejecting an empty string.
    """
    params: Dict[str, Any] = {
        "RoleArn": config.role_arn,
        "RoleSessionName": config.role_session_name,
    }

    optional = {
        "DurationSeconds": config.duration_seconds,
        "ExternalId": config.external_id,
        "SerialNumber": config.serial_number,
        "TokenCode": config.token_code,
        "SourceIdentity": config.source_identity,
    }
    for key, value in optional.items():
        if value:
            params[key] = value

    return params


class RoleAssumer:
    """Assumes the configured IAM role through STS.

    Usage:
        assumer = RoleAssumer(config)
        credentials = assumer.assume_role()

        # or, from a coroutine that may be cancelled
        credentials = await assumer.fetch()

    Attributes:
        config: Validated configuration for the role assumption
    """

    def __init__(self, config: AssumeRoleConfig, sts_client: Optional[Any] = None):
        """Initialize RoleAssumer.

        Args:
            config: Validated configuration for the role assumption
            sts_client: Pre-built STS client (default: created from boto3's default chain)
        """
        self.config = config
        self._sts_client = sts_client

    def _client(self):
        """Return the STS client, creating it on first use."""
        if self._sts_client is None:
            session = boto3.Session(region_name=self.config.region)
            self._sts_client = session.client(
                "sts",
                config=BotocoreConfig(
                    connect_timeout=5,
                    read_timeout=10,
                ),
            )
        return self._sts_client

    def assume_role(self) -> Credentials:
        """Call STS AssumeRole and return the temporary credentials.

        Raises:
            CredentialRequestError: If credential resolution, the network call,
                or the AssumeRole request itself fails
        """
        params = build_assume_role_params(self.config)

        logger.debug(
            "Assuming IAM role",
            role_arn=self.config.role_arn,
            session_name=self.config.role_session_name,
            parameters=sorted(params),
        )

        try:
            response = self._client().assume_role(**params)
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "")
            logger.error(
                "Failed to assume role",
                role_arn=self.config.role_arn,
                error_code=code,
                error=error.get("Message", str(e)),
            )
            raise CredentialRequestError(
                f"failed to assume role {self.config.role_arn}: {e}",
                code=code,
                suggestion=_suggestion_for(code),
            ) from e
        except BotoCoreError as e:
            logger.error(
                "Failed to assume role",
                role_arn=self.config.role_arn,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise CredentialRequestError(
                f"failed to assume role {self.config.role_arn}: {e}",
                suggestion="Check your AWS credentials with 'aws sts get-caller-identity'",
            ) from e

        credentials = Credentials.from_response(response)

        logger.info(
            "Role assumed successfully",
            role_arn=self.config.role_arn,
            access_key_id=credentials.access_key_id,
            expires_at=credentials.expiration.isoformat() if credentials.expiration else None,
        )
        return credentials

    async def fetch(self) -> Credentials:
        """Assume the role without blocking the event loop.

        The request runs on a daemon thread, so cancelling the awaiting task
        returns immediately and an abandoned request never delays exit.
        """
        return await _run_in_daemon_thread(self.assume_role, name="sts-assume-role")


def _suggestion_for(code: str) -> str:
    if code == "AccessDenied":
        return "Check that the role's trust policy allows your identity to assume it"
    if code == "ExpiredTokenException":
        return "Your source credentials have expired; refresh them and try again"
    if code == "ValidationError":
        return "Check the duration, session name and MFA parameters"
    return ""


async def _run_in_daemon_thread(func: Callable[[], Any], name: str) -> Any:
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def _resolve(result: Any = None, error: Optional[BaseException] = None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def _target() -> None:
        try:
            result = func()
        except BaseException as e:
            outcome = {"error": e}
        else:
            outcome = {"result": result}
        try:
            loop.call_soon_threadsafe(lambda: _resolve(**outcome))
        except RuntimeError:
            # Loop already closed: the awaiting task was cancelled and the run is over
            logger.debug("Discarding result of abandoned call", thread=name)

    threading.Thread(target=_target, name=name, daemon=True).start()
    return await future
