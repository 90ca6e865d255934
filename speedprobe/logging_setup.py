"""Centralized logging configuration."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import AppConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def log_file_path(config: AppConfig) -> Path:
    return config.paths.logs_dir / config.logging.file_name


def configure_logging(config: AppConfig) -> None:
    settings = config.logging
    log_path = log_file_path(config)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.level.upper(), logging.INFO))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    handlers = [
        RotatingFileHandler(
            log_path,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
    ]
    if settings.console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # Connection pool and event loop chatter drowns out latency and batch logs.
    for name in settings.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
