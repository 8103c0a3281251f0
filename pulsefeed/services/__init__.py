"""
PulseFeed Services
==================

Retrieval, subscription tier and enrichment request services used by the
HTTP API.
"""

from .enrichment_service import EnrichmentService, EnrichmentStatus
from .retrieval_service import RetrievalService
from .tier_service import TierService

__all__ = ["EnrichmentService", "EnrichmentStatus", "RetrievalService", "TierService"]
