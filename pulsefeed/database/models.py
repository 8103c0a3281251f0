"""
PulseFeed Data Models
=====================

Pydantic data models for type safety and validation throughout the application.
These models correspond to the database schema and provide validation,
serialization, and type hints.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any, Literal
import json

from pydantic import BaseModel, Field, field_validator

from ..processing.hashing import generate_hash

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as a fixed-width UTC string so SQL comparisons sort correctly."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.strptime(value, DB_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class Vertical(str, Enum):
    """Content domains that partition feeds and articles."""
    CRYPTO = "crypto"
    STOCKS = "stocks"
    SPORTS = "sports"


class Tier(str, Enum):
    """Subscriber entitlement levels."""
    FREE = "free"
    PREMIUM = "premium"
    PRO = "pro"


class CanonicalNewsItem(BaseModel):
    """Feed entry normalized for ingestion."""
    source: str = Field(..., min_length=1, description="Human-readable feed name")
    vertical: Vertical = Field(..., description="Content vertical")
    ticker: Optional[str] = Field(default=None, description="Stock symbol for ticker feeds")
    title: str = Field(..., description="Article title")
    content: str = Field(default="", description="Plain-text content snippet")
    url: str = Field(default="", description="Article link")
    published_at: datetime = Field(default_factory=utc_now, description="Publication time")
    hash: str = Field(default="", description="SHA-256 of title + url")

    def __init__(self, **data):
        """Initialize item with auto-generated content hash."""
        if not data.get("hash"):
            data["hash"] = generate_hash(data.get("title", ""), data.get("url", ""))
        super().__init__(**data)

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v):
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @field_validator("published_at")
    @classmethod
    def ensure_timezone(cls, v):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def __str__(self) -> str:
        return f"NewsItem([{self.vertical.value}] {self.title[:50]})"


class Sentiment(BaseModel):
    label: Literal["bullish", "bearish", "neutral", "favorable", "unfavorable"]
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str


class PriceImpact(BaseModel):
    level: Literal["critical", "high", "medium", "low"]
    direction: Literal["up", "down", "uncertain"]
    reasoning: str


class AnalysisSummary(BaseModel):
    tldr: str
    key_points: List[str] = Field(default_factory=list)
    entities: List[str] = Field(default_factory=list)


class AIAnalysis(BaseModel):
    """Structured LLM analysis of one article."""
    sentiment: Sentiment
    price_impact: PriceImpact
    summary: AnalysisSummary


class AnalysisRequest(BaseModel):
    """Input handed to the analysis provider."""
    id: Optional[int] = None
    vertical: Vertical
    ticker: Optional[str] = None
    title: str
    content: Optional[str] = None
    url: str = ""


class PersistedNewsItem(BaseModel):
    """Stored news item including enrichment state."""
    id: int = Field(..., description="Database primary key")
    source: str
    vertical: Vertical
    ticker: Optional[str] = None
    title: str
    content: str = ""
    url: str = ""
    hash: str
    published_at: datetime
    fetched_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    ai_processed: bool = False
    ai_analysis_requested: bool = False
    ai_sentiment: Optional[Sentiment] = None
    ai_price_impact: Optional[PriceImpact] = None
    ai_summary: Optional[AnalysisSummary] = None
    ai_processed_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "PersistedNewsItem":
        """Create item from a ``news_items`` row with JSON and timestamp parsing."""
        data = dict(row)

        data["vertical"] = data.pop("category")
        data["content"] = data.get("content") or ""
        data["url"] = data.get("url") or ""

        for field in ("published_at", "fetched_at", "delivered_at", "ai_processed_at"):
            data[field] = from_db_timestamp(data.get(field))

        for field in ("metadata", "ai_sentiment", "ai_price_impact", "ai_summary"):
            if isinstance(data.get(field), str):
                data[field] = json.loads(data[field])
        data["metadata"] = data.get("metadata") or {}

        data["ai_processed"] = bool(data.get("ai_processed"))
        data["ai_analysis_requested"] = bool(data.get("ai_analysis_requested"))

        return cls(**data)

    def to_analysis_request(self) -> AnalysisRequest:
        return AnalysisRequest(
            id=self.id,
            vertical=self.vertical,
            ticker=self.ticker,
            title=self.title,
            content=self.content or None,
            url=self.url,
        )

    def __str__(self) -> str:
        return f"PersistedNewsItem({self.id}:{self.title[:50]})"
