# tests/unit/test_backfill.py
"""
Unit tests for the background content backfill.
"""

import logging
from unittest.mock import MagicMock

import pytest

from newsdesk import models
from newsdesk.services.backfill import BackfillExecutor

FULL_TEXT = "The full article body recovered from the publisher page. " * 40


def _gate(returns=None, error=None):
    gate = MagicMock()
    gate.ensure_article_content.return_value = returns
    if error is not None:
        gate.ensure_article_content.side_effect = error
    return gate


@pytest.fixture
def executor_factory(database):
    executors = []

    def _make(gate, enabled=True):
        executor = BackfillExecutor(database, gate=gate, max_workers=1, enabled=enabled)
        executors.append(executor)
        return executor

    yield _make
    for executor in executors:
        executor.shutdown(wait=True)


class TestBackfillExecutor:
    """Tests for BackfillExecutor."""

    def test_run_stores_improved_content(self, db, executor_factory, make_raw_article):
        raw = make_raw_article(content="Teaser [+2000 chars]", status="processed", title="Kept")
        executor = executor_factory(_gate(FULL_TEXT))

        assert executor.run(raw.id, raw.url, raw.content, raw.description) is True

        db.expire_all()
        stored = db.get(models.RawArticle, raw.id)
        assert stored.content == FULL_TEXT
        assert stored.status == "processed"
        assert stored.title == "Kept"

    def test_run_skips_unchanged_content(self, db, executor_factory, make_raw_article):
        raw = make_raw_article(content="Same text")
        executor = executor_factory(_gate("Same text"))

        assert executor.run(raw.id, raw.url, raw.content, None) is False

    def test_run_skips_empty_gate_result(self, executor_factory, make_raw_article):
        raw = make_raw_article(content="Teaser")
        assert executor_factory(_gate("")).run(raw.id, raw.url, raw.content, None) is False

    def test_submit_runs_in_background(self, db, executor_factory, make_raw_article):
        raw = make_raw_article(content="Teaser [+2000 chars]")
        executor = executor_factory(_gate(FULL_TEXT))

        future = executor.submit(raw.id, raw.url, raw.content, None)

        assert future.result(timeout=5) is True
        db.expire_all()
        assert db.get(models.RawArticle, raw.id).content == FULL_TEXT

    def test_submit_disabled(self, executor_factory, make_raw_article):
        raw = make_raw_article()
        gate = _gate(FULL_TEXT)

        assert executor_factory(gate, enabled=False).submit(raw.id, raw.url) is None
        gate.ensure_article_content.assert_not_called()

    def test_failure_is_logged(self, executor_factory, make_raw_article, caplog):
        raw = make_raw_article()
        executor = executor_factory(_gate(error=RuntimeError("gate exploded")))

        with caplog.at_level(logging.WARNING, logger="newsdesk.services.backfill"):
            future = executor.submit(raw.id, raw.url)
            with pytest.raises(RuntimeError):
                future.result(timeout=5)
            executor.shutdown(wait=True)

        assert any("gate exploded" in record.getMessage() for record in caplog.records)
