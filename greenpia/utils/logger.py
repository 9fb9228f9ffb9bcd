"""
Logging system for Greenpia

Provides unified logging across all modules with:
- File rotation
- Per-module log levels
- Console (rich) + file output
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    log_file: str = "logs/greenpia.log",
    log_level: str = "INFO",
    max_bytes: int = 10_485_760,  # 10MB
    backup_count: int = 5,
    module_levels: Optional[dict] = None
) -> logging.Logger:
    """
    Setup Greenpia logging system

    Args:
        log_file: Path to log file
        log_level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep
        module_levels: Per-module log levels (e.g. {'greenpia.rotation': 'DEBUG'})

    Returns:
        Root logger instance

    Example:
        >>> from greenpia.utils import setup_logging, get_logger
        >>> setup_logging(log_level='INFO')
        >>> logger = get_logger(__name__)
        >>> logger.info("Portal started")
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, filter in handlers
    root_logger.handlers.clear()

    # =========================================================================
    # FILE HANDLER (All logs -> file)
    # =========================================================================
    file_formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = RotatingFileHandler(
        filename=log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(getattr(logging, log_level.upper()))
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    # =========================================================================
    # CONSOLE HANDLER (Rich output for terminal)
    # =========================================================================
    console_handler = RichHandler(
        console=Console(),
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_time=False,  # Time already in file logs
        show_path=False
    )
    console_handler.setLevel(getattr(logging, log_level.upper()))
    root_logger.addHandler(console_handler)

    # =========================================================================
    # PER-MODULE LOG LEVELS
    # =========================================================================
    if module_levels:
        for module_name, level in module_levels.items():
            logging.getLogger(module_name).setLevel(getattr(logging, level.upper()))

    # =========================================================================
    # SILENCE NOISY LIBRARIES
    # =========================================================================
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('multipart').setLevel(logging.WARNING)

    logger = get_logger("greenpia.setup")
    logger.info(f"Logging system initialized - Log file: {log_file}")
    logger.info(f"Log level: {log_level} | File rotation: {max_bytes} bytes | Backups: {backup_count}")

    if module_levels:
        logger.debug(f"Per-module log levels: {module_levels}")

    return root_logger


def setup_logging_from_config(config, log_file: Optional[str] = None) -> logging.Logger:
    """Configure logging from the `logging` section of a loaded Config."""
    return setup_logging(
        log_file=log_file or config.get('logging.file', 'logs/greenpia.log'),
        log_level=config.get('logging.level', 'INFO'),
        max_bytes=config.get('logging.max_bytes', 10_485_760),
        backup_count=config.get('logging.backup_count', 5),
        module_levels=config.get('logging.modules'),
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance for a module

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
