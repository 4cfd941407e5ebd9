# newsdesk/services/backfill.py
"""
Background content backfill.

API ingestion stores truncated snippets. Each newly inserted API article is
handed to a small thread pool that runs the quality gate and writes the
better body back with a scoped UPDATE (content and updated_at only), so it
never clobbers fields changed by a concurrent request. Work is not awaited
by the ingestion response; failures are logged and dropped.
"""

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime

from sqlalchemy import update

from newsdesk import models
from newsdesk.database import Database
from newsdesk.services.quality_gate import ContentQualityGate

logger = logging.getLogger(__name__)


class BackfillExecutor:
    """Fire-and-forget content backfill on a bounded thread pool."""

    def __init__(self, database: Database, gate: ContentQualityGate | None = None, max_workers: int = 2,
                 enabled: bool = True):
        self.database = database
        self.gate = gate or ContentQualityGate()
        self.enabled = enabled
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="backfill")

    def run(
        self,
        article_id: uuid.UUID,
        url: str,
        content: str | None = None,
        description: str | None = None,
    ) -> bool:
        """Gate one article and store the improved body. Returns True if it was updated."""
        improved = self.gate.ensure_article_content(url, content, description)
        if not improved or improved == (content or ""):
            return False

        with self.database.session() as db:
            db.execute(
                update(models.RawArticle)
                .where(models.RawArticle.id == article_id)
                .values(content=improved, updated_at=datetime.utcnow())
            )
            db.commit()

        logger.info(
            f"[BACKFILL] Stored {len(improved)} chars for {article_id}",
            extra={"event": "backfill_stored", "article_id": str(article_id)},
        )
        return True

    def submit(
        self,
        article_id: uuid.UUID,
        url: str,
        content: str | None = None,
        description: str | None = None,
    ) -> Future | None:
        """Schedule a backfill. Returns None when backfill is disabled."""
        if not self.enabled:
            return None
        future = self._pool.submit(self.run, article_id, url, content, description)
        future.add_done_callback(lambda f: self._log_failure(f, article_id))
        return future

    @staticmethod
    def _log_failure(future: Future, article_id: uuid.UUID) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning(
                f"[BACKFILL] Failed for {article_id}: {error}",
                extra={"event": "backfill_failed", "article_id": str(article_id)},
            )

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
