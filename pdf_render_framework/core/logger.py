"""
Centralized logging setup for the PDF Render Framework.

This module provides functions to configure and obtain logger instances
throughout the application. It leverages the `ConfigurationManager` to
load logging settings from YAML configuration files, supporting
console and rotating file handlers.

Key Functions:
- `setup_logging()`: Initializes the logging system based on external configuration.
                     Should be called once at application startup.
- `get_logger(name)`: Returns a logger instance for the specified module name.
- `log_duration(logger, label)`: Async context manager that reports how long a block took.
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Any, AsyncIterator, Dict, Optional

from pdf_render_framework.core.config import ConfigurationManager

# PROJECT_ROOT: resolves relative log file paths from the configuration.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_logging_initialized = False


def setup_logging(config: Optional[ConfigurationManager] = None) -> None:
    """
    Sets up centralized logging using the 'logging' section of the configuration.

    Configures the root logger with a console handler and/or a rotating file
    handler. Falls back to `logging.basicConfig` when no usable configuration
    is available.

    Args:
        config (Optional[ConfigurationManager]): The application's configuration manager.
            If None, the global `config_manager` is used.
    """
    global _logging_initialized
    if _logging_initialized:
        logging.getLogger(__name__).debug("setup_logging: already initialized.")
        return

    current_config = config
    if current_config is None:
        from pdf_render_framework.core.config import config_manager as global_config_manager
        current_config = global_config_manager

    log_settings: Optional[Dict[str, Any]] = current_config.get("logging") if current_config else None
    if not log_settings:
        logging.basicConfig(level=logging.INFO, format=DEFAULT_FORMAT)
        logging.warning("Logging setup: 'logging' section not found in configuration. Using basicConfig.")
        _logging_initialized = True
        return

    log_level_str = str(log_settings.get("level", "INFO")).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    log_format = log_settings.get("format", DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)
    formatter = logging.Formatter(log_format)

    handlers = log_settings.get("handlers", {})
    console_settings = handlers.get("console", {})
    if console_settings.get("enabled", False):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    file_settings = handlers.get("file", {})
    if file_settings.get("enabled", False):
        log_file_path = file_settings.get("path", "logs/pdf_render_framework.log")
        if not os.path.isabs(log_file_path):
            log_file_path = os.path.join(PROJECT_ROOT, log_file_path)
        try:
            os.makedirs(os.path.dirname(log_file_path), exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=log_file_path,
                maxBytes=int(file_settings.get("max_bytes", 10 * 1024 * 1024)),
                backupCount=int(file_settings.get("backup_count", 5)),
                encoding='utf-8',
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logging.error(f"Logging setup: Failed to configure file logging at '{log_file_path}': {e}. File logging disabled.", exc_info=True)

    _logging_initialized = True
    logging.info(f"Logging system initialized. Level: {log_level_str}.")


def get_logger(name: str) -> logging.Logger:
    """
    Retrieves a logger instance with the specified name, initializing
    logging with the global configuration first if nobody has yet.

    Args:
        name (str): The name for the logger, typically `__name__` of the calling module.
    """
    if not _logging_initialized:
        setup_logging()
    return logging.getLogger(name)


@asynccontextmanager
async def log_duration(logger: logging.Logger, label: str, enabled: bool = True) -> AsyncIterator[None]:
    """
    Times the wrapped block and logs "<label> took <n>ms" once it completes.

    The duration is reported only when the block finishes normally; a block that
    raises propagates its error untouched.

    Args:
        logger (logging.Logger): Logger receiving the timing line.
        label (str): Human-readable name of the timed scope.
        enabled (bool): When False the timing line is not emitted.
    """
    start = time.perf_counter()
    yield
    if enabled:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{label} took {round(elapsed_ms)}ms")
