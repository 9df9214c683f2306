"""Logging setup for probe agents and the enqueue command."""

import os
import sys
import logging
import logging.handlers
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    name: str = "",
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure logging.

    Args:
        name: Logger name, the root logger by default
        level: Log level name
        log_file: Path of a rotating log file; no file handler when None
        max_bytes: Maximum size of a single log file
        backup_count: Number of rotated files kept
        console_output: Whether to log to stderr

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Avoid configuring twice
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(log_level)
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"Cannot create log file handler: {e}")
            # Keep at least console output available
            if not console_output:
                console_handler = logging.StreamHandler(sys.stderr)
                console_handler.setLevel(log_level)
                console_handler.setFormatter(formatter)
                logger.addHandler(console_handler)

    return logger
