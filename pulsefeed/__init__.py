"""
PulseFeed - Tiered News Aggregation
===================================

RSS news ingestion across crypto, stocks and sports with content-hash
deduplication, delay-gated delivery per subscription tier and optional
LLM sentiment analysis.

Main Components:
- Ingestion: concurrent feed polling and on-demand ticker news
- Deduplication: in-memory LRU in front of a Redis store with TTL
- Storage: SQLite with connection pooling and schema management
- Retrieval: delay filtering and diversity shuffling for the HTTP API
- Enrichment: flagged items analysed by a background Groq sweep
"""

__version__ = "1.0.0"
__author__ = "PulseFeed Development Team"
__description__ = "Tiered RSS news aggregation with deduplication and AI enrichment"

from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import PulseFeedError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "PulseFeedError",
]
