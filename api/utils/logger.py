"""
Structured logging configuration shared by the web service and the CLI
"""
import logging
import sys
from typing import List, Optional, TextIO

import structlog
from structlog.stdlib import LoggerFactory

# Third-party loggers that are noisy below WARNING
QUIET_LOGGERS = ("asyncio", "multipart", "python_multipart", "uvicorn.access")


def _renderer(json_logs: bool):
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(level: str = "INFO", json_logs: bool = True,
                  stream: Optional[TextIO] = None) -> None:
    """
    Configure structlog over stdlib logging.

    The server logs JSON to stdout; the CLI passes ``json_logs=False`` and
    ``sys.stderr`` so that stdout stays free for its progress bar.
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=log_level,
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors: List = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _renderer(json_logs),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
