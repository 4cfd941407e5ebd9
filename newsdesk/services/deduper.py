# newsdesk/services/deduper.py
"""
Deduplication service for ingested articles.

Dedupe rule: one RawArticle per canonical URL. The check is not a
read-then-write; it is an INSERT .. ON CONFLICT DO NOTHING on the unique
canonical_id column, so two concurrent runs cannot both insert. The same
primitive backs the one-GeneratedArticle-per-RawArticle rule.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from newsdesk import models
from newsdesk.services.canonical import canonical_id, normalize_url
from newsdesk.services.resilience import ConfigurationFailure

logger = logging.getLogger(__name__)


def insert_if_absent(db: Session, model: Any, values: dict[str, Any], conflict_column: str) -> bool:
    """
    Insert a row unless one already holds the same unique key.

    Returns True if this call inserted the row.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ConfigurationFailure(f"Unique-key insert not supported on dialect '{dialect}'")

    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing(index_elements=[conflict_column])
    result = db.execute(stmt)
    return result.rowcount == 1


@dataclass
class UpsertResult:
    """Outcome of one ingestion upsert."""

    inserted: bool
    canonical_id: str
    article_id: uuid.UUID | None = None  # set only when inserted


class Deduper:
    """Idempotent store for ingested items keyed on canonical URL."""

    @staticmethod
    def normalize_url(url: str) -> str:
        return normalize_url(url)

    @staticmethod
    def canonical_id(url: str) -> str:
        return canonical_id(url)

    def upsert_raw_article(
        self,
        db: Session,
        source: models.Source | None,
        item: dict[str, Any],
    ) -> UpsertResult:
        """
        Store a parsed feed/API item once per canonical identity.

        First sighting inserts the full row with status=queued. Every sighting,
        first included, refreshes updated_at. Nothing else is touched on a
        duplicate, so operator edits and backfilled content survive re-ingestion.

        Args:
            item: dict with 'url' and optional 'title', 'description', 'content',
                  'author', 'published_at', 'image_url', 'language', 'source_name'
        """
        link = (item.get("url") or "").strip()
        if not link:
            raise ValueError("item has no url")

        cid = canonical_id(link)
        now = datetime.utcnow()
        article_id = uuid.uuid4()

        values = {
            "id": article_id,
            "source_id": source.id if source else None,
            "source_name": (source.name if source else None) or item.get("source_name") or "unknown",
            "title": item.get("title") or link,
            "url": normalize_url(link),
            "canonical_id": cid,
            "published_at": item.get("published_at"),
            "author": item.get("author"),
            "description": item.get("description"),
            "content": item.get("content"),
            "image_url": item.get("image_url"),
            "language": item.get("language") or "en",
            "category": source.category if source else item.get("category"),
            "status": models.RawArticleStatus.QUEUED.value,
            "created_at": now,
            "updated_at": now,
        }

        inserted = insert_if_absent(db, models.RawArticle, values, "canonical_id")
        if not inserted:
            db.execute(
                update(models.RawArticle)
                .where(models.RawArticle.canonical_id == cid)
                .values(updated_at=now)
            )
            logger.debug(f"[DEDUP] Refreshed existing article {cid[:12]} ({link})")
            return UpsertResult(inserted=False, canonical_id=cid)

        return UpsertResult(inserted=True, canonical_id=cid, article_id=article_id)
