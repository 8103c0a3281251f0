"""
Ingestion Pipeline
==================

Single path by which canonical items enter the store: duplicate gate check,
conflict-ignoring insert, then the hash is recorded as processed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..database.models import CanonicalNewsItem
from ..dedup.duplicate_gate import DuplicateGate
from ..storage.news_repository import NewsRepository
from ..utils.exceptions import DatabaseError, DeduplicationError
from ..utils.logging import get_logger_for_component


@dataclass
class IngestResult:
    """Outcome of ingesting one item.

    ``stored`` is True when the item passed the duplicate gate and was
    written (or already present under the same hash). ``inserted`` is True
    only when this call created the row.
    """

    hash: str
    stored: bool
    inserted: bool = False


@dataclass
class IngestBatchResult:
    """Counters for a batch of ingested items."""

    received: int = 0
    stored: int = 0
    inserted: int = 0
    duplicates: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "received": self.received,
            "stored": self.stored,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "failed": self.failed,
        }


class IngestionPipeline:
    """Dedup-then-persist pipeline shared by every ingestion caller."""

    def __init__(self, gate: DuplicateGate, repository: NewsRepository):
        self.gate = gate
        self.repository = repository
        self.logger = get_logger_for_component("pipeline")

    async def ingest(
        self, item: CanonicalNewsItem, metadata: Optional[Dict[str, Any]] = None
    ) -> IngestResult:
        """Ingest one item.

        Args:
            item: Canonical item
            metadata: Free-form metadata stored with the row

        Returns:
            IngestResult; ``stored`` is False for duplicates

        Raises:
            DeduplicationError: If the durable dedup store is unavailable
            DatabaseError: If the insert fails
        """
        if await self.gate.is_duplicate(item.hash):
            self.logger.debug(f"Duplicate skipped: {item.hash[:12]} ({item.source})")
            return IngestResult(hash=item.hash, stored=False)

        inserted = self.repository.insert_item(item, metadata=metadata)
        await self.gate.mark_processed(item.hash)

        if inserted:
            self.logger.debug(
                f"Stored [{item.vertical.value}] {item.title[:60]}",
                extra={"vertical": item.vertical.value, "source": item.source},
            )
        return IngestResult(hash=item.hash, stored=True, inserted=inserted)

    async def ingest_many(self, items: Iterable[CanonicalNewsItem]) -> IngestBatchResult:
        """Ingest items in order; a failing item is counted and skipped."""
        batch = IngestBatchResult()

        for item in items:
            batch.received += 1
            try:
                result = await self.ingest(item)
            except (DeduplicationError, DatabaseError) as e:
                batch.failed += 1
                batch.errors.append(f"{item.source}: {e}")
                self.logger.warning(f"Ingestion failed for {item.hash[:12]}: {e}")
                continue

            if result.stored:
                batch.stored += 1
                if result.inserted:
                    batch.inserted += 1
            else:
                batch.duplicates += 1

        if batch.received:
            self.logger.info(
                f"Ingested batch: {batch.inserted} new, {batch.duplicates} duplicates, "
                f"{batch.failed} failed of {batch.received}"
            )
        return batch
