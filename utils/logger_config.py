import os
import logging
import threading
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

from config import LogConfig

# Thread safety lock for logger setup
_logger_lock = threading.Lock()

# Handlers installed by setup_logging, per logger name
_installed_handlers = {}


def get_log_directory(base_dir: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """
    Build (and create) the <base>/<year>/<MM-Month> log directory

    Args:
        base_dir: Base logs directory, defaults to LogConfig.LOG_DIR
        now: Timestamp that picks the year and month, defaults to now
    """
    now = now or datetime.now()
    logs_base_dir = base_dir or LogConfig.LOG_DIR

    # Month directory (01-January, 02-February, etc.)
    month_dir = os.path.join(logs_base_dir, str(now.year), now.strftime("%m-%B"))
    os.makedirs(month_dir, exist_ok=True)
    return month_dir


def setup_logging(logger_name=None, base_dir=None, console=True):
    """
    Setup logging with year/month directory structure.
    Thread-safe implementation.

    Args:
        logger_name: The name of the logger to configure, root logger if None
        base_dir: Base logs directory, defaults to LogConfig.LOG_DIR
        console: Also log to the console

    Returns:
        Configured logger instance
    """
    with _logger_lock:
        month_dir = get_log_directory(base_dir)
        log_file = os.path.join(month_dir, LogConfig.LOG_FILE_NAME)
        stderr_log = os.path.join(month_dir, "stderr.log")

        level = getattr(logging, LogConfig.LOG_LEVEL, logging.INFO)

        # Configure logger
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)

        # Replace handlers from an earlier call, leave anyone else's alone
        for handler in _installed_handlers.pop(logger_name, []):
            logger.removeHandler(handler)
            handler.close()

        existing = list(logger.handlers)
        formatter = logging.Formatter(LogConfig.LOG_FORMAT)

        # File handler with rotation
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LogConfig.LOG_FILE_MAX_BYTES,
            backupCount=LogConfig.LOG_FILE_BACKUP_COUNT
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # Errors get their own file
        stderr_handler = RotatingFileHandler(
            stderr_log,
            maxBytes=LogConfig.LOG_FILE_MAX_BYTES,
            backupCount=LogConfig.LOG_FILE_BACKUP_COUNT
        )
        stderr_handler.setLevel(logging.ERROR)
        stderr_handler.setFormatter(formatter)
        logger.addHandler(stderr_handler)

        if console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        _installed_handlers[logger_name] = [h for h in logger.handlers if h not in existing]
        return logger
