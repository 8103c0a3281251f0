"""
News Repository
===============

Repository pattern implementation for ``news_items`` with proper error
handling and data access abstraction. Timestamps are written in the fixed
UTC format from ``database.models`` so range filters compare correctly.
"""

import json
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import (
    AIAnalysis,
    CanonicalNewsItem,
    PersistedNewsItem,
    Vertical,
    to_db_timestamp,
    utc_now,
)
from ..utils.exceptions import DatabaseError, ErrorCode
from ..utils.logging import get_logger_for_component

NEWS_COLUMNS = (
    "id, source, category, ticker, title, content, url, hash, published_at, "
    "fetched_at, delivered_at, metadata, ai_processed, ai_analysis_requested, "
    "ai_sentiment, ai_price_impact, ai_summary, ai_processed_at"
)


class NewsRepository:
    """Repository for news item persistence and enrichment state."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize news repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("news_repository")

    def insert_item(
        self,
        item: CanonicalNewsItem,
        metadata: Optional[Dict[str, Any]] = None,
        fetched_at: Optional[datetime] = None,
    ) -> bool:
        """Insert an item unless its hash is already stored.

        Args:
            item: Canonical item to persist
            metadata: Free-form JSON metadata
            fetched_at: Fetch time (default: now)

        Returns:
            True if a row was written, False on hash conflict

        Raises:
            DatabaseError: If the insert fails
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO news_items
                        (source, category, ticker, title, content, url, hash,
                         published_at, fetched_at, metadata)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        item.source,
                        item.vertical.value,
                        item.ticker,
                        item.title,
                        item.content,
                        item.url,
                        item.hash,
                        to_db_timestamp(item.published_at),
                        to_db_timestamp(fetched_at or utc_now()),
                        json.dumps(metadata or {}),
                    ),
                )
                conn.commit()
                inserted = cursor.rowcount > 0

            if not inserted:
                self.logger.debug(f"Hash conflict, row already stored: {item.hash[:12]}")
            return inserted

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to insert news item: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def get_by_id(self, item_id: int) -> Optional[PersistedNewsItem]:
        try:
            row = self.db.execute_one(
                f"SELECT {NEWS_COLUMNS} FROM news_items WHERE id = ?", (item_id,)
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to load news item {item_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return PersistedNewsItem.from_db_row(dict(row)) if row else None

    def get_by_hash(self, content_hash: str) -> Optional[PersistedNewsItem]:
        try:
            row = self.db.execute_one(
                f"SELECT {NEWS_COLUMNS} FROM news_items WHERE hash = ?", (content_hash,)
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to load news item by hash: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return PersistedNewsItem.from_db_row(dict(row)) if row else None

    def get_recent(
        self,
        fetch_limit: int,
        vertical: Optional[Vertical] = None,
        ticker: Optional[str] = None,
        published_before: Optional[datetime] = None,
    ) -> List[PersistedNewsItem]:
        """Get newest items matching the optional filters.

        Args:
            fetch_limit: Maximum rows returned
            vertical: Category equality filter
            ticker: Ticker equality filter
            published_before: Only items published at or before this time

        Returns:
            Items ordered by ``published_at`` descending

        Raises:
            DatabaseError: If the query fails
        """
        conditions = []
        params: List[Any] = []

        if vertical is not None:
            conditions.append("category = ?")
            params.append(vertical.value)
        if ticker:
            conditions.append("ticker = ?")
            params.append(ticker.upper())
        if published_before is not None:
            conditions.append("published_at <= ?")
            params.append(to_db_timestamp(published_before))

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.append(fetch_limit)

        try:
            rows = self.db.execute_query(
                f"SELECT {NEWS_COLUMNS} FROM news_items {where} "
                f"ORDER BY published_at DESC LIMIT ?",
                tuple(params),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to query recent news: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return [PersistedNewsItem.from_db_row(dict(row)) for row in rows]

    def mark_analysis_requested(self, item_id: int) -> bool:
        """Flag an unprocessed item for enrichment.

        Returns:
            True if the flag was newly set
        """
        try:
            updated = self.db.execute_update(
                """
                UPDATE news_items SET ai_analysis_requested = 1
                WHERE id = ? AND ai_processed = 0 AND ai_analysis_requested = 0
                """,
                (item_id,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to flag item {item_id} for analysis: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return updated > 0

    def get_enrichment_candidates(
        self, limit: int, include_backlog: bool = False
    ) -> List[PersistedNewsItem]:
        """Get unprocessed items awaiting analysis.

        Requested items come first, oldest request first; with
        ``include_backlog`` the newest unrequested items fill the rest.
        """
        try:
            rows = self.db.execute_query(
                f"""
                SELECT {NEWS_COLUMNS} FROM news_items
                WHERE ai_processed = 0 AND ai_analysis_requested = 1
                ORDER BY id ASC LIMIT ?
                """,
                (limit,),
            )
            items = [PersistedNewsItem.from_db_row(dict(row)) for row in rows]

            remaining = limit - len(items)
            if include_backlog and remaining > 0:
                rows = self.db.execute_query(
                    f"""
                    SELECT {NEWS_COLUMNS} FROM news_items
                    WHERE ai_processed = 0 AND ai_analysis_requested = 0
                    ORDER BY published_at DESC LIMIT ?
                    """,
                    (remaining,),
                )
                items.extend(PersistedNewsItem.from_db_row(dict(row)) for row in rows)

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to load enrichment candidates: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return items

    def save_analysis(
        self,
        item_id: int,
        analysis: AIAnalysis,
        processed_at: Optional[datetime] = None,
    ) -> bool:
        """Store analysis results once; processed rows are never rewritten.

        Returns:
            True if the row transitioned to processed
        """
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    UPDATE news_items
                    SET ai_sentiment = ?, ai_price_impact = ?, ai_summary = ?,
                        ai_processed = 1, ai_processed_at = ?
                    WHERE id = ? AND ai_processed = 0
                    """,
                    (
                        analysis.sentiment.model_dump_json(),
                        analysis.price_impact.model_dump_json(),
                        analysis.summary.model_dump_json(),
                        to_db_timestamp(processed_at or utc_now()),
                        item_id,
                    ),
                )
                saved = cursor.rowcount > 0

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to save analysis for item {item_id}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

        if saved:
            self.logger.debug(f"Stored analysis for item {item_id}")
        return saved

    def get_statistics(self) -> Dict[str, Any]:
        """Get per-vertical counts and enrichment progress."""
        try:
            rows = self.db.execute_query(
                """
                SELECT category,
                       COUNT(*) AS total,
                       SUM(ai_processed) AS enriched,
                       SUM(CASE WHEN ai_analysis_requested = 1 AND ai_processed = 0
                                THEN 1 ELSE 0 END) AS pending,
                       MAX(published_at) AS latest
                FROM news_items
                GROUP BY category
                """
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to collect news statistics: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        by_vertical = {
            row["category"]: {
                "total": row["total"],
                "enriched": row["enriched"] or 0,
                "pending": row["pending"] or 0,
                "latest": row["latest"],
            }
            for row in rows
        }
        return {
            "total": sum(v["total"] for v in by_vertical.values()),
            "by_vertical": by_vertical,
        }
