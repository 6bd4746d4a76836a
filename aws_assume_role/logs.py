"""structlog configuration for aws-assume-role.

All log output goes to stderr so stdout belongs to the child command.
"""

import logging
import sys

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("console", "json")


def configure_logging(level: str = "WARNING", log_format: str = "console") -> None:
    """Configure stdlib logging and structlog.

    Args:
        level: Minimum level name, e.g. "INFO"
        log_format: "json" for one JSON object per line, "console" for human-friendly output
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        stream=sys.stderr,
        format="%(message)s",
        force=True,
    )

    # Use human-friendly console output by default, JSON for log collectors
    use_json_logs = log_format.lower() == "json"

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if use_json_logs else structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
