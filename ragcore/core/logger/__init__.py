"""
ragcore logger: console + rotating JSON file.

Usage:
    from ragcore.core.logger import configure, LoggerConfig

    configure()                                   # LOG_* env vars
    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/ragcore"))

Modules keep using ``logging.getLogger(__name__)``; names under ``ragcore``
inherit the configured handlers.
"""
from ragcore.core.logger.config import LoggerConfig
from ragcore.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from ragcore.core.logger.setup import (
    build_console_handler,
    build_rotating_file_handler,
    configure,
    get_logger,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
    "build_rotating_file_handler",
    "build_console_handler",
]
