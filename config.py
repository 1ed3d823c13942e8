"""
Centralized Configuration Module

Daemon settings read from the environment (and an optional .env file).
Import from here instead of hardcoding values.
"""

import os
from dotenv import load_dotenv

# Load .env before any class below reads the environment
load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class AppConfig:
    """Application-wide configuration constants"""

    APP_NAME = "Availability Zone Daemon"
    APP_VERSION = "1.0.0"
    APP_DESCRIPTION = "Track availability zones and pick zones for automatic VM placement"

    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")


class ZoneConfig:
    """Zone state location"""

    DATA_DIR = os.getenv("AZ_DATA_DIR", os.path.join(BASE_DIR, "data"))

    @classmethod
    def get_data_dir(cls) -> str:
        """Data directory, re-read from the environment so tests can override it"""
        return os.getenv("AZ_DATA_DIR", cls.DATA_DIR)


class LogConfig:
    """Logging configuration"""

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))
    LOG_FILE_NAME = "az_daemon.log"
    LOG_FILE_MAX_BYTES = int(os.getenv("LOG_FILE_MAX_BYTES", "10485760"))  # 10MB
    LOG_FILE_BACKUP_COUNT = int(os.getenv("LOG_FILE_BACKUP_COUNT", "5"))


class OperationLogConfig:
    """Zone operation audit log location"""

    BASE_DIR = os.getenv("OPERATIONS_LOG_DIR", os.path.join(LogConfig.LOG_DIR, "operations"))


__all__ = [
    'AppConfig',
    'ZoneConfig',
    'LogConfig',
    'OperationLogConfig',
]
