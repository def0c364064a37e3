"""
Database models for the shortlink redirector.

Note: Click rows live on AnalyticsBase so they can be moved to a separate
analytics database without touching the mapping table.
"""

from .url import UrlMapping
from .click import Click

__all__ = ["UrlMapping", "Click"]
