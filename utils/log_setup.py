"""Structured logging setup."""
from __future__ import annotations

import logging

import structlog

from config.settings import Settings, get_settings


def configure_logging(settings: Settings = None) -> None:
    """Configure structlog processors and the minimum level from settings."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.logging.level)
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging.json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
