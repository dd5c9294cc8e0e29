"""structlog setup.

Modules log through ``structlog.get_logger()`` with event-style names and
key/value context; this module only decides level and rendering.
"""

import logging
import sys

import structlog

from billcycle.core.config import BillcycleSettings, LogFormat


def configure_logging(settings: BillcycleSettings) -> None:
    """Configure structlog once at process start.

    Args:
        settings: Process settings providing level and output format.
    """
    level = logging.getLevelName(settings.log_level)

    renderer: structlog.types.Processor
    if settings.log_format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
