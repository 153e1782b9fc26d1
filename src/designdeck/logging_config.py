"""Logging configuration for designdeck."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from designdeck.config.models import LoggingSettings

PACKAGE_LOGGER = "designdeck"

_installed: list[logging.Handler] = []


def configure_logging(
    settings: LoggingSettings,
    log_path: Optional[Path] = None,
    *,
    console: Optional[Console] = None,
) -> list[logging.Handler]:
    """Install console and rotating-file handlers on the package logger.

    Handlers installed by a previous call are replaced, so the function can be
    called once per CLI invocation.

    Args:
        settings: Logging section of the configuration.
        log_path: Rotating log file; only the console handler is installed when omitted.
        console: Console the rich handler writes to; stderr by default.

    Returns:
        list[logging.Handler]: The handlers that were installed.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _installed:
        logger.removeHandler(handler)
        handler.close()
    _installed.clear()

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(logging.DEBUG)

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    rich_handler.setLevel(level)
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    handlers: list[logging.Handler] = [rich_handler]

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_path),
            maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(min(level, logging.INFO))
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handlers.append(file_handler)

    for handler in handlers:
        logger.addHandler(handler)
    _installed.extend(handlers)
    return handlers


__all__ = ["PACKAGE_LOGGER", "configure_logging"]
