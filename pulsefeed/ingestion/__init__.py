"""
PulseFeed Ingestion Module
==========================

RSS feed polling, per-ticker news fetching and content cleaning.
"""

from .content_cleaner import ContentCleaner
from .feed_poller import FeedPoller, FetchResult, PollResult

__all__ = ["ContentCleaner", "FeedPoller", "FetchResult", "PollResult"]
