"""Command line interface for aws-assume-role.

Usage:
    aws-assume-role -role-arn [ROLE ARN] -- [COMMANDS...]

Flags are accepted with one dash (``-role-arn``) or two (``--role-arn``).
Everything after ``--``, or after the first non-flag argument, is the
command to run.

Exit status:
    0          the command succeeded, or no command was given
    1          configuration, credential, environment or launch failure
    N          the command exited with status N
    128 + N    interrupted by signal N
"""

import sys
import traceback
from datetime import timedelta

import click

from .app import run
from .config import load_config, parse_duration
from .errors import AssumeRoleError
from .logs import LOG_FORMATS, LOG_LEVELS, configure_logging
from .version import __version__

CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "-help", "--help"],
    "allow_interspersed_args": False,
}


class DurationParamType(click.ParamType):
    """Click parameter type for durations such as ``900s``, ``15m`` or ``1h``."""

    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, timedelta):
            return value
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationParamType()


def handle_error(error: AssumeRoleError, verbose: bool = False) -> None:
    """Print the error to stderr and exit with its status"""
    click.echo(error.format(), err=True)
    if verbose:
        traceback.print_exception(type(error), error, error.__traceback__)
    sys.exit(error.exit_code)


@click.command(
    context_settings=CONTEXT_SETTINGS,
    options_metavar="-role-arn [ROLE ARN] [OPTIONS] --",
)
@click.option("-role-arn", "--role-arn", "role_arn", default="", metavar="ARN", help="role ARN (required)")
@click.option(
    "-role-session-name",
    "--role-session-name",
    "role_session_name",
    default="",
    metavar="NAME",
    help="role session name (default unix nano timestamp)",
)
@click.option(
    "-duration",
    "--duration",
    "duration",
    type=DURATION,
    default="900s",
    show_default=True,
    help="role session duration",
)
@click.option("-external-id", "--external-id", "external_id", default="", metavar="ID", help="external ID")
@click.option("-serial-number", "--serial-number", "serial_number", default="", metavar="SERIAL", help="MFA serial number")
@click.option(
    "-token-code",
    "--token-code",
    "token_code",
    default="",
    metavar="CODE",
    help="MFA token code provided by MFA device",
)
@click.option("-source-identity", "--source-identity", "source_identity", default="", metavar="ID", help="source identity")
@click.option("-region", "--region", "region", default="", metavar="REGION", help="STS region (default from AWS config)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    envvar="LOG_LEVEL",
    show_default=True,
    help="Logging level",
)
@click.option(
    "--log-format",
    type=click.Choice(LOG_FORMATS, case_sensitive=False),
    default="console",
    envvar="LOG_FORMAT",
    show_default=True,
    help="Log output format",
)
@click.version_option(version=__version__, prog_name="aws-assume-role")
@click.argument("command", nargs=-1, type=click.UNPROCESSED, metavar="[COMMANDS...]")
def cli(
    role_arn: str,
    role_session_name: str,
    duration: timedelta,
    external_id: str,
    serial_number: str,
    token_code: str,
    source_identity: str,
    region: str,
    log_level: str,
    log_format: str,
    command: tuple,
):
    """Assume an IAM role and run COMMANDS with its temporary credentials.

    AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY and AWS_SESSION_TOKEN are set
    for the command; AWS_ROLE_ARN and AWS_WEB_IDENTITY_TOKEN_FILE are removed.

    Examples:
        aws-assume-role -role-arn arn:aws:iam::123456789012:role/Deploy -- aws s3 ls
        aws-assume-role -role-arn ARN -duration 1h -serial-number SERIAL -token-code 123456 -- env
    """
    configure_logging(log_level, log_format)
    verbose = log_level.upper() == "DEBUG"

    try:
        config = load_config(
            role_arn=role_arn,
            role_session_name=role_session_name,
            duration=duration,
            external_id=external_id,
            serial_number=serial_number,
            token_code=token_code,
            source_identity=source_identity,
            region=region,
        )
        run(config, command)
    except AssumeRoleError as e:
        handle_error(e, verbose)


def main() -> None:
    cli(prog_name="aws-assume-role")


if __name__ == "__main__":
    main()
