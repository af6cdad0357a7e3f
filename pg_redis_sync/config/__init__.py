"""
Configuration Package
-------------------
Contains settings and configuration management for PostgreSQL to Redis synchronization.
"""

from .settings import (
    DBSettings,
    RedisSettings,
    WorkerSettings,
    load_settings,
    settings_from_env,
    validate_settings,
)

__all__ = [
    "DBSettings",
    "RedisSettings",
    "WorkerSettings",
    "load_settings",
    "settings_from_env",
    "validate_settings",
]
