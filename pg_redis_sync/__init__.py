"""
PostgreSQL Redis Sync Package
"""

from .config.settings import load_settings
from .core.runner import SyncRunner

__version__ = "0.1.0"


__all__ = [
    "SyncRunner",
    "load_settings",
]
