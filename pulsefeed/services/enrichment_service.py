"""
Enrichment Service
==================

On-demand analysis requests. A request only flags the row; the background
sweep in ``scheduler.enrichment_worker`` performs the analysis.
"""

from enum import Enum
from typing import Optional

from ..database.models import PersistedNewsItem
from ..storage.news_repository import NewsRepository
from ..utils.logging import get_logger_for_component


class EnrichmentStatus(str, Enum):
    """Outcome of an analysis request."""
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"
    PROCESSING = "processing"


class EnrichmentService:
    """Flags items for analysis and reports their enrichment state."""

    def __init__(self, repository: NewsRepository):
        self.repository = repository
        self.logger = get_logger_for_component("enrichment_service")

    def request_enrichment(self, item_id: int) -> EnrichmentStatus:
        """Request analysis of an item; returns without waiting for it.

        Raises:
            DatabaseError: If the store cannot be read or updated
        """
        item = self.repository.get_by_id(item_id)
        if item is None:
            return EnrichmentStatus.NOT_FOUND
        if item.ai_processed:
            return EnrichmentStatus.ALREADY_PROCESSED

        if self.repository.mark_analysis_requested(item_id):
            self.logger.info(f"Analysis requested for item {item_id}")
        return EnrichmentStatus.PROCESSING

    def get_item(self, item_id: int) -> Optional[PersistedNewsItem]:
        return self.repository.get_by_id(item_id)
