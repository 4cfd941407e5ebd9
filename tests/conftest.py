# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
import uuid
from datetime import datetime

import pytest

# Set test environment
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from newsdesk import models  # noqa: E402
from newsdesk.config import Settings  # noqa: E402
from newsdesk.database import Database  # noqa: E402

ADMIN_KEY = "test-admin-key"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "network: tests that would need real network access")


@pytest.fixture
def settings():
    """Settings with every external credential unset and SSRF checks off (tests use fake hosts)."""
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        ADMIN_API_KEY=ADMIN_KEY,
        GENERATION_PROVIDER="openai",
        OPENAI_API_KEY=None,
        ANTHROPIC_API_KEY=None,
        GEMINI_API_KEY=None,
        GEMINI_MODEL=None,
        LIBRETRANSLATE_URL=None,
        NEWSAPI_KEY=None,
        TRANSLATION_PROVIDER_ORDER="gemini,mymemory",
        EXTRACTION_BLOCK_PRIVATE_HOSTS=False,
        BACKFILL_ENABLED=False,
        LOG_JSON=False,
    )


@pytest.fixture
def database():
    """Fresh in-memory SQLite database with all tables."""
    db = Database("sqlite:///:memory:")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db(database):
    """Session bound to the in-memory database."""
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_source(db):
    """Factory for Source rows."""

    def _make(name="Example Feed", type="rss", url="https://example.com/feed.xml", category="global", **kwargs):
        source = models.Source(
            id=uuid.uuid4(),
            name=name,
            type=type,
            url=url,
            category=category,
            enabled=kwargs.pop("enabled", True),
            failure_count=kwargs.pop("failure_count", 0),
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
            **kwargs,
        )
        db.add(source)
        db.commit()
        return source

    return _make


@pytest.fixture
def make_raw_article(db):
    """Factory for RawArticle rows."""

    def _make(url="https://example.com/a", title="Test", **kwargs):
        from newsdesk.services.canonical import canonical_id, normalize_url

        now = datetime.utcnow()
        article = models.RawArticle(
            id=uuid.uuid4(),
            source_id=kwargs.pop("source_id", None),
            source_name=kwargs.pop("source_name", "Example News"),
            title=title,
            url=normalize_url(url),
            canonical_id=canonical_id(url),
            description=kwargs.pop("description", None),
            content=kwargs.pop("content", None),
            category=kwargs.pop("category", "global"),
            status=kwargs.pop("status", models.RawArticleStatus.QUEUED.value),
            created_at=kwargs.pop("created_at", now),
            updated_at=now,
            **kwargs,
        )
        db.add(article)
        db.commit()
        return article

    return _make


@pytest.fixture
def make_generated_article(db):
    """Factory for GeneratedArticle rows."""

    def _make(raw_article, **kwargs):
        now = datetime.utcnow()
        post = models.GeneratedArticle(
            id=uuid.uuid4(),
            raw_article_id=raw_article.id,
            category=raw_article.category,
            headline=kwargs.pop("headline", "Council approves new transit plan"),
            summary=kwargs.pop("summary", "The city council approved a transit plan adding three bus routes."),
            body=kwargs.pop("body", "The city council voted on Tuesday to approve the plan."),
            hashtags=kwargs.pop("hashtags", ["#Transit", "#City", "#Council", "#News", "#Update"]),
            source_attribution=kwargs.pop("source_attribution", "Source: Example News"),
            generation_method=kwargs.pop("generation_method", models.GenerationMethod.LLM.value),
            status=kwargs.pop("status", models.GeneratedArticleStatus.DRAFT.value),
            created_at=now,
            updated_at=now,
            **kwargs,
        )
        db.add(post)
        db.commit()
        return post

    return _make
