"""Error types raised by aws-assume-role.

Library code raises these; only the CLI turns them into a diagnostic on
stderr and a process exit status.
"""

import signal
from typing import Optional


class AssumeRoleError(Exception):
    """Base class for all aws-assume-role failures."""

    def __init__(self, message: str, suggestion: str = "", details: str = ""):
        # Include all parts in the base exception message for better error reporting
        full_message = message
        if suggestion:
            full_message += f"\n\n{suggestion}"
        if details:
            full_message += f"\n\n{details}"
        super().__init__(full_message)
        self.message = message
        self.suggestion = suggestion
        self.details = details

    @property
    def exit_code(self) -> int:
        return 1

    def format(self) -> str:
        """Format error for console output with suggestions."""
        output = f"Error: {self.message}"
        if self.suggestion:
            output += f"\n  hint: {self.suggestion}"
        if self.details:
            output += f"\n  details: {self.details}"
        return output


class ConfigurationError(AssumeRoleError):
    """Raised when command line configuration is missing or invalid."""


class CredentialRequestError(AssumeRoleError):
    """Raised when STS refuses or fails to issue temporary credentials."""

    def __init__(self, message: str, code: str = "", suggestion: str = "", details: str = ""):
        super().__init__(message, suggestion=suggestion, details=details)
        self.code = code


class InvalidEnvironError(AssumeRoleError):
    """Raised when a parent environment entry is not of the form KEY=VALUE."""


class CommandError(AssumeRoleError):
    """Raised when the child command cannot be launched or exits unsuccessfully.

    Attributes:
        return_code: Normalized exit status of the child, or None if it never started
    """

    def __init__(self, message: str, return_code: Optional[int] = None, suggestion: str = ""):
        super().__init__(message, suggestion=suggestion)
        self.return_code = return_code

    @property
    def exit_code(self) -> int:
        if self.return_code:
            return self.return_code
        return 1


class Interrupted(AssumeRoleError):
    """Raised when SIGINT or SIGTERM cancels the run."""

    def __init__(self, signum: int):
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = f"signal {signum}"
        super().__init__(f"interrupted by {name}")
        self.signum = signum

    @property
    def exit_code(self) -> int:
        return 128 + self.signum
