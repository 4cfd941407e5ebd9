# newsdesk/services/sources.py
"""
Source registry and article maintenance actions.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from newsdesk import models
from newsdesk.models import SourceCategory, SourceType
from newsdesk.services.deduper import insert_if_absent
from newsdesk.services.resilience import NotFoundFailure, UpstreamFormatFailure

logger = logging.getLogger(__name__)


def _parse_id(value: Any, label: str) -> uuid.UUID:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        raise NotFoundFailure(f"{label} {value} not found")


def list_sources(db: Session) -> list[models.Source]:
    return db.query(models.Source).order_by(models.Source.created_at.desc()).all()


def upsert_source(
    db: Session,
    name: str,
    type: str,
    url: str | None = None,
    category: str = SourceCategory.GLOBAL.value,
    enabled: bool = True,
) -> models.Source:
    """
    Create or replace a source keyed on its unique name.

    created_at is only set on insert; everything else is overwritten.
    """
    name = (name or "").strip()
    if not name:
        raise UpstreamFormatFailure("name is required")
    try:
        SourceType(type)
        SourceCategory(category)
    except ValueError as e:
        raise UpstreamFormatFailure(str(e))
    if type == SourceType.RSS.value and not url:
        raise UpstreamFormatFailure("url is required for rss sources")

    now = datetime.utcnow()
    fields = {"type": type, "url": url, "category": category, "enabled": enabled, "updated_at": now}

    inserted = insert_if_absent(
        db,
        models.Source,
        {"id": uuid.uuid4(), "name": name, "created_at": now, "failure_count": 0, **fields},
        "name",
    )
    if not inserted:
        db.execute(update(models.Source).where(models.Source.name == name).values(**fields))
    db.commit()

    logger.info(f"[SOURCES] {'Created' if inserted else 'Updated'} source '{name}' ({type})")
    return db.query(models.Source).filter(models.Source.name == name).one()


def update_source(
    db: Session,
    name: str,
    enabled: bool | None = None,
    url: str | None = None,
    category: str | None = None,
    reset_failures: bool = False,
) -> models.Source:
    """Partial update of an existing source."""
    values: dict[str, Any] = {"updated_at": datetime.utcnow()}
    if enabled is not None:
        values["enabled"] = enabled
    if url is not None:
        values["url"] = url
    if category is not None:
        try:
            values["category"] = SourceCategory(category).value
        except ValueError as e:
            raise UpstreamFormatFailure(str(e))
    if reset_failures:
        values["failure_count"] = 0
        values["last_error"] = None

    result = db.execute(update(models.Source).where(models.Source.name == name).values(**values))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundFailure(f"Source '{name}' not found")
    db.commit()
    return db.query(models.Source).filter(models.Source.name == name).one()


def reset_failures(db: Session, name: str) -> models.Source:
    return update_source(db, name, reset_failures=True)


def reload_article(db: Session, article_id: Any) -> models.RawArticle:
    """Reset a RawArticle to queued (e.g. after a failed generation)."""
    key = _parse_id(article_id, "Raw article")
    result = db.execute(
        update(models.RawArticle)
        .where(models.RawArticle.id == key)
        .values(status=models.RawArticleStatus.QUEUED.value, error_message=None, updated_at=datetime.utcnow())
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundFailure(f"Raw article {article_id} not found")
    db.commit()
    return db.get(models.RawArticle, key)
