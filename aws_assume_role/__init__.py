"""Assume an AWS IAM role and run a command with its temporary credentials."""

from .config import AssumeRoleConfig, load_config, parse_duration
from .credentials import Credentials, RoleAssumer, build_assume_role_params
from .environ import DENYLIST, INJECTED_KEYS, build_environ
from .errors import (
    AssumeRoleError,
    CommandError,
    ConfigurationError,
    CredentialRequestError,
    Interrupted,
    InvalidEnvironError,
)
from .version import __version__

__all__ = [
    "AssumeRoleConfig",
    "AssumeRoleError",
    "CommandError",
    "ConfigurationError",
    "CredentialRequestError",
    "Credentials",
    "DENYLIST",
    "INJECTED_KEYS",
    "Interrupted",
    "InvalidEnvironError",
    "RoleAssumer",
    "__version__",
    "build_assume_role_params",
    "build_environ",
    "load_config",
    "parse_duration",
]
