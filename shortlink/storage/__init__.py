"""
Click storage module for analytics data.

Separates transactional data (url mappings) from analytical data (click rows).
"""

from .strategies import ClickStorageStrategy, SQLClickStorage

__all__ = [
    "ClickStorageStrategy",
    "SQLClickStorage",
]
