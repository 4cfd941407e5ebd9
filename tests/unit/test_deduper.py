# tests/unit/test_deduper.py
"""
Unit tests for the ingestion deduplicator.

Runs against an in-memory SQLite database so the unique-key insert path
(ON CONFLICT DO NOTHING) is exercised for real.
"""

import uuid
from datetime import datetime, timedelta

import pytest

from newsdesk import models
from newsdesk.services.canonical import canonical_id
from newsdesk.services.deduper import Deduper, insert_if_absent


@pytest.fixture
def deduper():
    return Deduper()


class TestUpsertRawArticle:
    """Tests for Deduper.upsert_raw_article()."""

    def test_first_sighting_inserts_queued_article(self, db, deduper, make_source):
        source = make_source(category="tech")

        result = deduper.upsert_raw_article(
            db,
            source,
            {"url": "https://example.com/a?utm_source=x", "title": "Test", "description": "Desc"},
        )
        db.commit()

        assert result.inserted is True
        article = db.get(models.RawArticle, result.article_id)
        assert article.status == models.RawArticleStatus.QUEUED.value
        assert article.url == "https://example.com/a"
        assert article.canonical_id == canonical_id("https://example.com/a")
        assert article.source_name == source.name
        assert article.category == "tech"
        assert article.title == "Test"

    def test_duplicate_is_skipped(self, db, deduper, make_source):
        source = make_source()
        deduper.upsert_raw_article(db, source, {"url": "https://example.com/a?utm_source=x", "title": "Test"})
        db.commit()

        second = deduper.upsert_raw_article(db, source, {"url": "https://example.com/a", "title": "Changed"})
        db.commit()

        assert second.inserted is False
        assert second.article_id is None
        assert db.query(models.RawArticle).count() == 1
        assert db.query(models.RawArticle).one().title == "Test"

    def test_duplicate_only_refreshes_updated_at(self, db, deduper, make_raw_article):
        stale = datetime.utcnow() - timedelta(days=2)
        article = make_raw_article(url="https://example.com/a", content="Backfilled body", status="processed")
        article.updated_at = stale
        db.commit()

        result = deduper.upsert_raw_article(
            db, None, {"url": "https://example.com/a#top", "content": "Snippet [+100 chars]"}
        )
        db.commit()
        db.refresh(article)

        assert result.inserted is False
        assert article.updated_at > stale
        assert article.content == "Backfilled body"
        assert article.status == "processed"

    def test_title_defaults_to_link(self, db, deduper):
        result = deduper.upsert_raw_article(db, None, {"url": "https://example.com/untitled"})
        db.commit()

        article = db.get(models.RawArticle, result.article_id)
        assert article.title == "https://example.com/untitled"
        assert article.source_name == "unknown"

    def test_missing_url_rejected(self, db, deduper):
        with pytest.raises(ValueError):
            deduper.upsert_raw_article(db, None, {"url": "  ", "title": "No link"})


class TestInsertIfAbsent:
    """Tests for insert_if_absent()."""

    def _values(self, name):
        now = datetime.utcnow()
        return {
            "id": uuid.uuid4(),
            "name": name,
            "type": "rss",
            "url": "https://example.com/feed",
            "category": "global",
            "enabled": True,
            "failure_count": 0,
            "created_at": now,
            "updated_at": now,
        }

    def test_inserts_once(self, db):
        assert insert_if_absent(db, models.Source, self._values("Feed"), "name") is True
        assert insert_if_absent(db, models.Source, self._values("Feed"), "name") is False
        db.commit()

        assert db.query(models.Source).count() == 1
