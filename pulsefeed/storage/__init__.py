"""
PulseFeed Storage Layer
=======================

Repository pattern implementations for data access abstraction.
"""

from .news_repository import NewsRepository

__all__ = ["NewsRepository"]
