"""structlog setup for the CLI."""

import logging
import sys

import structlog

CONSOLE_HANDLER = "planboard-console"


def configure_logging(level: str = "WARNING") -> None:
    """Render key-value logs through the stdlib ``planboard`` logger to stderr.

    Each call replaces the console handler, so output goes to whatever
    ``sys.stderr`` is current. Write failures are handled by ``logging`` and
    never reach the caller.
    """
    package_logger = logging.getLogger("planboard")
    for handler in list(package_logger.handlers):
        if handler.get_name() == CONSOLE_HANDLER:
            package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(CONSOLE_HANDLER)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(level.upper())
    package_logger.propagate = False

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
