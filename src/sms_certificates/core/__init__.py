"""
Core module - Configuration, database, Redis, logging and file storage.
"""

from sms_certificates.core.config import get_settings, settings
from sms_certificates.core.database import Base, close_db, get_db, init_db
from sms_certificates.core.logging import setup_logging
from sms_certificates.core.redis import close_redis, get_redis, init_redis
from sms_certificates.core.storage import FileStorage

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Logging
    "setup_logging",
    # Storage
    "FileStorage",
]
