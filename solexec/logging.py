"""Log routing for solexec.

Everything goes to stderr so it never draws over the terminal UI on stdout.
Console lines by default, JSON lines with ``--log-json``.
"""

from __future__ import annotations

import logging
import sys
from typing import List

import structlog

# third-party loggers kept at WARNING even with --verbose
QUIET_LOGGERS = ("aiohttp", "asyncio")


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install one stderr handler rendering both structlog and stdlib records.

    Args:
        verbose: DEBUG for solexec's own loggers (poll attempts, RPC calls).
            When False, only warnings and errors are shown.
        log_json: Render JSON lines instead of console lines.
    """
    processors: List[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("solexec").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
