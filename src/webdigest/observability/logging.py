"""
Configures structured logging for webdigest using structlog.

Records from the standard library (aiohttp, readability, trafilatura) and
from structlog loggers go through the same processor chain, so the activity
id bound by the pipeline shows up on both.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

import structlog

if TYPE_CHECKING:
    from webdigest.config.config import MonitoringConfig

MAX_VALUE_LENGTH = 500

# Libraries that log every parse at INFO or DEBUG.
NOISY_LOGGERS = ("readability.readability", "trafilatura", "charset_normalizer", "htmldate", "courlan")


def clip_long_values(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Shorten string fields such as error messages that may embed page text."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
            event_dict[key] = value[:MAX_VALUE_LENGTH] + "..."
    return event_dict


def _output(config: MonitoringConfig) -> Tuple[Any, logging.Handler]:
    if config.log_file:
        return structlog.processors.JSONRenderer(), logging.FileHandler(config.log_file, encoding="utf-8")
    # stdout carries command output (JSON results), so console logs go to stderr.
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()), logging.StreamHandler(sys.stderr)


def configure_logging(config: MonitoringConfig) -> None:
    """Route stdlib and structlog records through one handler at ``config.log_level``."""
    pre_chain: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        clip_long_values,
    ]

    renderer, handler = _output(config)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))

    level = config.log_level.upper()
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).debug("Logging configured", level=level, output=config.log_file or "stderr")
