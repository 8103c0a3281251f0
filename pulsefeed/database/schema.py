"""
PulseFeed Database Schema
=========================

SQLite schema for the news store. A single ``news_items`` table keyed by a
unique content hash holds every ingested article together with its
enrichment state.
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"news_items"}


class DatabaseSchema:
    """Database schema manager for the PulseFeed SQLite database."""

    def __init__(self, db_path: str = "data/pulsefeed.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables and indexes."""
        with sqlite3.connect(self.db_path) as conn:
            self._create_news_items_table(conn)
            self._run_migrations(conn)
            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_news_items_table(self, conn: sqlite3.Connection) -> None:
        """Create news_items table for ingested articles."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS news_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT NOT NULL,
                category TEXT NOT NULL CHECK (category IN ('crypto', 'stocks', 'sports')),
                ticker TEXT,
                title TEXT NOT NULL,
                content TEXT,
                url TEXT NOT NULL DEFAULT '',
                hash TEXT NOT NULL UNIQUE,
                published_at TIMESTAMP NOT NULL,
                fetched_at TIMESTAMP NOT NULL,
                delivered_at TIMESTAMP,
                metadata TEXT DEFAULT '{}',  -- JSON object
                ai_processed BOOLEAN NOT NULL DEFAULT 0,
                ai_analysis_requested BOOLEAN NOT NULL DEFAULT 0,
                ai_sentiment TEXT,  -- JSON
                ai_price_impact TEXT,  -- JSON
                ai_summary TEXT,  -- JSON
                ai_processed_at TIMESTAMP
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create indexes backing the retrieval and sweep queries."""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_news_published ON news_items(published_at)",
            "CREATE INDEX IF NOT EXISTS idx_news_category_published ON news_items(category, published_at)",
            "CREATE INDEX IF NOT EXISTS idx_news_ticker_published ON news_items(ticker, published_at)",
            "CREATE INDEX IF NOT EXISTS idx_news_ai_pending ON news_items(ai_processed, ai_analysis_requested)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def _run_migrations(self, conn: sqlite3.Connection) -> None:
        """Run migrations for databases created before on-demand analysis existed."""
        cursor = conn.execute("PRAGMA table_info(news_items)")
        columns = [column[1] for column in cursor.fetchall()]

        if "ai_analysis_requested" not in columns:
            logger.info("Adding ai_analysis_requested column to news_items table")
            conn.execute(
                "ALTER TABLE news_items ADD COLUMN ai_analysis_requested BOOLEAN NOT NULL DEFAULT 0"
            )

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DROP TABLE IF EXISTS news_items")
            conn.commit()
            logger.info("All database tables dropped")

    def get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                    ORDER BY name
                """
                )

                tables = {row[0] for row in cursor.fetchall()}
                missing = EXPECTED_TABLES - tables
                if missing:
                    logger.error(f"Missing tables: {missing}")
                    return False

                logger.info("Database schema verification passed")
                return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False
