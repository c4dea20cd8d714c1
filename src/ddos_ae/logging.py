"""Structured logging for training runs."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

import structlog


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def configure_logging(level: Union[int, str] = logging.INFO, json_output: bool = True) -> None:
    """Configure structlog; JSON lines by default, key=value console output otherwise."""

    numeric_level = _resolve_level(level)
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=numeric_level)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(name)


def log_config(logger: structlog.stdlib.BoundLogger, config: Dict[str, Any]) -> None:
    """Emit one event carrying the resolved run configuration."""

    logger.info("run_config", **config)
