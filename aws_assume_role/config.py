"""Command line configuration for aws-assume-role.

The configuration is parsed once at startup into a frozen
``AssumeRoleConfig`` and passed explicitly to every later step.

Usage:
    from aws_assume_role.config import load_config

    config = load_config(role_arn="arn:aws:iam::123456789012:role/Deploy")
    print(config.role_session_name, config.duration_seconds)
"""

import re
import time
from datetime import timedelta
from typing import Optional

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_DURATION = timedelta(seconds=900)

# Units accepted by parse_duration, expressed in seconds
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def default_session_name() -> str:
    """Return the current time in nanoseconds as a decimal string."""
    return str(time.time_ns())


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``900s``, ``15m``, ``1h30m`` or ``1.5h``.

    A bare integer is taken as a number of seconds, and ``0`` needs no unit.

    Raises:
        ValueError: If the text is not a valid duration
    """
    value = text.strip()
    if not value:
        raise ValueError("empty duration")

    if re.fullmatch(r"[+-]?\d+", value):
        return timedelta(seconds=int(value))

    sign = 1
    if value[0] in "+-":
        sign = -1 if value[0] == "-" else 1
        value = value[1:]

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        number, unit = match.groups()
        total += float(number) * _DURATION_UNITS[unit]
        pos = match.end()

    if pos == 0:
        raise ValueError(f"invalid duration {text!r}")

    return timedelta(seconds=sign * total)


class AssumeRoleConfig(BaseModel):
    """Immutable settings for a single role assumption and command run.

    Optional string fields are stored as None when empty so they can be
    left out of the STS request entirely.
    """

    role_arn: str = Field(..., min_length=1, description="ARN of the IAM role to assume")
    role_session_name: str = Field(
        default_factory=default_session_name, description="Role session name (default: unix nano timestamp)"
    )
    duration: timedelta = Field(DEFAULT_DURATION, description="Requested role session duration")
    external_id: Optional[str] = Field(None, description="External ID for cross-account trust")
    serial_number: Optional[str] = Field(None, description="MFA device serial number")
    token_code: Optional[str] = Field(None, description="MFA token code provided by the MFA device")
    source_identity: Optional[str] = Field(None, description="Source identity recorded in CloudTrail")
    region: Optional[str] = Field(None, description="Region for the STS client (default: SDK chain)")

    class Config:
        frozen = True

    @field_validator("role_session_name", mode="before")
    @classmethod
    def default_empty_session_name(cls, v: Optional[str]) -> str:
        if not v:
            return default_session_name()
        return v

    @field_validator("external_id", "serial_number", "token_code", "source_identity", "region", mode="before")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Normalize empty strings to None"""
        if v == "":
            return None
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, v):
        if isinstance(v, str):
            return parse_duration(v)
        return v

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError(f"duration must not be negative, got {v}")
        return v

    @property
    def duration_seconds(self) -> int:
        """Session duration truncated to whole seconds."""
        return int(self.duration.total_seconds())


def load_config(**values) -> AssumeRoleConfig:
    """Build the configuration, raising ConfigurationError on invalid input.

    Args:
        **values: AssumeRoleConfig field values; None and missing values take the defaults

    Returns:
        Validated, frozen AssumeRoleConfig

    Raises:
        ConfigurationError: If the role ARN is missing or any field is invalid
    """
    values = {key: value for key, value in values.items() if value is not None}

    if not values.get("role_arn"):
        raise ConfigurationError(
            "role-arn is required",
            suggestion="Usage: aws-assume-role -role-arn [ROLE ARN] -- [COMMANDS...]",
        )

    try:
        config = AssumeRoleConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from e

    logger.debug(
        "Configuration loaded",
        role_arn=config.role_arn,
        role_session_name=config.role_session_name,
        duration_seconds=config.duration_seconds,
        has_external_id=config.external_id is not None,
        has_mfa=config.serial_number is not None,
        has_source_identity=config.source_identity is not None,
        region=config.region,
    )
    return config
