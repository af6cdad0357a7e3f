"""
Utils Package
-----------
Utility modules for PostgreSQL to Redis synchronization.
"""

from .metrics import Metrics

__all__ = [
    "Metrics",
]
