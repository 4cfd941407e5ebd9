# newsdesk/models.py
"""
Newsdesk database models

Tables:
- Source: RSS feeds and news-API endpoints polled by ingestion
- RawArticle: Source material exactly as ingested, one row per canonical URL
- GeneratedArticle: Editorial draft derived from exactly one RawArticle,
  plus its translated field set
"""

from datetime import datetime
from enum import Enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from newsdesk.database import Base


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class SourceType(str, Enum):
    """Kind of upstream a Source points at."""
    RSS = "rss"
    NEWSAPI = "newsapi"


class SourceCategory(str, Enum):
    """Editorial category attached to a source and inherited by its articles."""
    GLOBAL = "global"
    ENTERTAINMENT = "entertainment"
    ANIME_COMICS = "anime_comics"
    TECH = "tech"


class RawArticleStatus(str, Enum):
    """Processing status of a RawArticle."""
    QUEUED = "queued"
    PROCESSED = "processed"
    FAILED = "failed"


class GeneratedArticleStatus(str, Enum):
    """Editorial workflow status of a GeneratedArticle."""
    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class GenerationMethod(str, Enum):
    """Which tier produced a GeneratedArticle."""
    LLM = "llm"
    HEURISTIC = "heuristic"


# -----------------------------------------------------------------------------
# Source
# -----------------------------------------------------------------------------

class Source(Base):
    """Feed or API endpoint polled by ingestion."""
    __tablename__ = "sources"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), unique=True, nullable=False)
    type = Column(String(16), nullable=False, default=SourceType.RSS.value)
    url = Column(Text, nullable=True)  # optional for newsapi sources
    category = Column(String(32), nullable=False, default=SourceCategory.GLOBAL.value)
    enabled = Column(Boolean, default=True, nullable=False)
    failure_count = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    last_fetched_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    raw_articles = relationship("RawArticle", back_populates="source")

    def __repr__(self) -> str:
        return f"<Source {self.name} ({self.type})>"


# -----------------------------------------------------------------------------
# RawArticle
# -----------------------------------------------------------------------------

class RawArticle(Base):
    """
    Ingested article. canonical_id is the identity: at most one row per
    normalized URL across all ingestion runs.
    """
    __tablename__ = "raw_articles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    source_id = Column(Uuid, ForeignKey("sources.id"), nullable=True)
    source_name = Column(String(255), nullable=False)

    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    canonical_id = Column(String(64), nullable=False, unique=True)
    published_at = Column(DateTime, nullable=True)
    author = Column(String(512), nullable=True)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)  # may be replaced by background backfill
    image_url = Column(Text, nullable=True)
    language = Column(String(8), nullable=False, default="en")
    category = Column(String(32), nullable=True)

    status = Column(String(16), nullable=False, default=RawArticleStatus.QUEUED.value)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    source = relationship("Source", back_populates="raw_articles")
    generated = relationship("GeneratedArticle", back_populates="raw_article", uselist=False)

    __table_args__ = (
        Index("ix_raw_articles_status", "status"),
        Index("ix_raw_articles_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<RawArticle {self.id}: {self.title[:50]}>"


# -----------------------------------------------------------------------------
# GeneratedArticle
# -----------------------------------------------------------------------------

class GeneratedArticle(Base):
    """
    Editorial draft derived from one RawArticle. raw_article_id is unique,
    so a second generation request for the same RawArticle cannot insert.
    """
    __tablename__ = "generated_articles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    raw_article_id = Column(Uuid, ForeignKey("raw_articles.id"), nullable=False, unique=True)
    category = Column(String(32), nullable=True)

    # Source-language fields
    headline = Column(Text, nullable=False)
    summary = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    hashtags = Column(JSON, nullable=False, default=list)
    source_attribution = Column(Text, nullable=False)
    generation_method = Column(String(16), nullable=False)
    generation_model = Column(String(64), nullable=True)

    # Translated fields, absent until a translation pass runs
    translated_language = Column(String(8), nullable=True)
    translated_headline = Column(Text, nullable=True)
    translated_summary = Column(Text, nullable=True)
    translated_body = Column(Text, nullable=True)
    translated_hashtags = Column(JSON, nullable=True)
    translated_attribution = Column(Text, nullable=True)
    translated_at = Column(DateTime, nullable=True)

    status = Column(String(16), nullable=False, default=GeneratedArticleStatus.DRAFT.value)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    raw_article = relationship("RawArticle", back_populates="generated")

    __table_args__ = (
        Index("ix_generated_articles_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<GeneratedArticle {self.id}: {self.headline[:50]}>"
