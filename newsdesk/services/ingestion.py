# newsdesk/services/ingestion.py
"""
Multi-source ingestion service.

Pipeline:
1. Fetch items from RSS/Atom feeds (httpx + feedparser) and NewsAPI (async fetcher)
2. Normalize entries to the NormalizedEntry shape
3. Upsert by canonical URL (duplicates only refresh updated_at)
4. Record per-source bookkeeping (last fetch, failure count, last error)
5. Hand newly inserted API articles to the background backfill

Sources are processed one after another; a failing source is recorded and
never stops the run.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import feedparser
import httpx
from sqlalchemy import update
from sqlalchemy.orm import Session

from newsdesk import models
from newsdesk.config import Settings, get_settings
from newsdesk.logging_config import set_trace_id
from newsdesk.models import SourceType
from newsdesk.services.api_fetchers import BaseFetcher, NewsApiFetcher, NormalizedEntry
from newsdesk.services.backfill import BackfillExecutor
from newsdesk.services.deduper import Deduper
from newsdesk.services.resilience import (
    ConfigurationFailure,
    PipelineError,
    TransportFailure,
    UpstreamFormatFailure,
    with_sync_retry,
)
from newsdesk.utils.content_sanitizer import strip_html

logger = logging.getLogger(__name__)

FEED_ACCEPT = "application/rss+xml, application/xml, text/xml;q=0.9, */*;q=0.8"


class IngestionService:
    """Feed and news API ingestion."""

    def __init__(
        self,
        settings: Settings | None = None,
        deduper: Deduper | None = None,
        backfill: BackfillExecutor | None = None,
        api_fetcher_factory: Callable[[], BaseFetcher] | None = None,
    ):
        self.settings = settings or get_settings()
        self.deduper = deduper or Deduper()
        self.backfill = backfill
        self._api_fetcher_factory = api_fetcher_factory or self._default_api_fetcher

    def _default_api_fetcher(self) -> BaseFetcher:
        return NewsApiFetcher(
            api_key=self.settings.NEWSAPI_KEY,
            timeout=self.settings.FEED_TIMEOUT_SECONDS,
            user_agent=self.settings.FEED_USER_AGENT,
        )

    # -------------------------------------------------------------------------
    # RSS / Atom
    # -------------------------------------------------------------------------

    @with_sync_retry(max_attempts=2, min_wait=0.5, max_wait=2.0, retry_exceptions=(httpx.TransportError,))
    def _download_feed(self, url: str) -> httpx.Response:
        return httpx.get(
            url,
            headers={"User-Agent": self.settings.FEED_USER_AGENT, "Accept": FEED_ACCEPT},
            timeout=self.settings.FEED_TIMEOUT_SECONDS,
            follow_redirects=True,
        )

    def _fetch_feed(self, url: str) -> feedparser.FeedParserDict:
        """
        Download and parse a feed.

        Raises:
            TransportFailure: network error or non-2xx response
            UpstreamFormatFailure: the body is not a parseable feed
        """
        try:
            response = self._download_feed(url)
        except httpx.HTTPError as e:
            raise TransportFailure(f"fetch failed: {e}") from e
        if not response.is_success:
            raise TransportFailure(
                f"fetch {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise UpstreamFormatFailure(f"xml-parse-error: {feed.get('bozo_exception')}")
        return feed

    @staticmethod
    def _entry_published(entry: dict) -> datetime | None:
        for key in ("published_parsed", "updated_parsed"):
            value = entry.get(key)
            if value:
                try:
                    return datetime(*value[:6])
                except (TypeError, ValueError):
                    continue
        return None

    def _normalize_feed_entry(self, entry: dict) -> NormalizedEntry:
        """Feed entry to NormalizedEntry. HTML in description/content is flattened."""
        description = entry.get("summary") or entry.get("description") or None
        if description and "<" in description:
            description = strip_html(description)

        content = None
        if entry.get("content"):
            content = entry["content"][0].get("value") or None
            if content and "<" in content:
                content = strip_html(content)

        return NormalizedEntry(
            url=(entry.get("link") or "").strip(),
            title=entry.get("title") or "",
            description=description,
            content=content,
            author=entry.get("author") or entry.get("dc_creator"),
            published_at=self._entry_published(entry),
            language="en",
        )

    def _fetch_rss_items(self, source: models.Source) -> list[NormalizedEntry]:
        if not source.url:
            raise ConfigurationFailure(f"RSS source '{source.name}' has no url")
        feed = self._fetch_feed(source.url)
        entries = feed.entries[: self.settings.MAX_ITEMS_PER_SOURCE]
        return [self._normalize_feed_entry(entry) for entry in entries]

    # -------------------------------------------------------------------------
    # News API
    # -------------------------------------------------------------------------

    async def _fetch_api_async(self, source: models.Source) -> list[NormalizedEntry]:
        fetcher = self._api_fetcher_factory()
        try:
            return await fetcher.fetch_articles(
                category=source.category,
                url=source.url,
                max_results=self.settings.MAX_ITEMS_PER_SOURCE,
            )
        finally:
            await fetcher.close()

    def _fetch_api_items(self, source: models.Source) -> list[NormalizedEntry]:
        if not source.url and not self.settings.NEWSAPI_KEY:
            raise ConfigurationFailure("Missing NEWSAPI_KEY")
        return asyncio.run(self._fetch_api_async(source))

    # -------------------------------------------------------------------------
    # Per-source ingestion
    # -------------------------------------------------------------------------

    def ingest_source(self, db: Session, source: models.Source) -> dict[str, Any]:
        """
        Ingest one source.

        Returns:
            Dict with inserted/skipped counts and an optional soft `error`
            (an empty feed is reported but is not a source failure)

        Raises:
            PipelineError: fetch or parse failure for the whole source
        """
        is_api = source.type == SourceType.NEWSAPI.value
        items = self._fetch_api_items(source) if is_api else self._fetch_rss_items(source)

        result: dict[str, Any] = {"source": source.name, "inserted": 0, "skipped": 0, "error": None}
        if not items:
            result["error"] = "no-articles" if is_api else "no-items-in-feed"
            return result

        to_backfill: list[tuple[Any, str, str | None, str | None]] = []
        for item in items:
            if not item.get("url"):
                result["skipped"] += 1
                continue
            upsert = self.deduper.upsert_raw_article(db, source, item)
            if upsert.inserted:
                result["inserted"] += 1
                if is_api:
                    to_backfill.append(
                        (upsert.article_id, item["url"], item.get("content"), item.get("description"))
                    )
            else:
                result["skipped"] += 1

        now = datetime.utcnow()
        db.execute(
            update(models.Source)
            .where(models.Source.id == source.id)
            .values(last_fetched_at=now, last_error=None, updated_at=now)
        )
        db.commit()

        # Rows must be committed before the backfill workers open their own sessions
        if self.backfill is not None:
            for article_id, url, content, description in to_backfill:
                self.backfill.submit(article_id, url, content, description)

        logger.info(
            f"[INGEST] {source.name}: inserted={result['inserted']} skipped={result['skipped']}",
            extra={
                "event": "source_ingested",
                "source": source.name,
                "inserted": result["inserted"],
                "skipped": result["skipped"],
            },
        )
        return result

    def _record_failure(self, db: Session, source: models.Source, message: str) -> None:
        db.rollback()
        db.execute(
            update(models.Source)
            .where(models.Source.id == source.id)
            .values(
                failure_count=models.Source.failure_count + 1,
                last_error=message[:1000],
                updated_at=datetime.utcnow(),
            )
        )
        db.commit()

    def ingest_all(self, db: Session, source_type: str | None = None) -> dict[str, Any]:
        """
        Ingest every enabled source (optionally only one type).

        Returns:
            {ok, sources, inserted, skipped, errors: [{source, message}], trace_id, duration_ms}
        """
        start_time = time.time()
        trace_id = set_trace_id()

        query = db.query(models.Source).filter(models.Source.enabled.is_(True))
        if source_type:
            query = query.filter(models.Source.type == source_type)
        sources = query.order_by(models.Source.name).all()

        result: dict[str, Any] = {
            "ok": True,
            "sources": len(sources),
            "inserted": 0,
            "skipped": 0,
            "errors": [],
            "trace_id": trace_id,
            "duration_ms": 0,
        }

        for source in sources:
            name = source.name
            try:
                source_result = self.ingest_source(db, source)
            except PipelineError as e:
                logger.warning(f"[INGEST] {name} failed: {e}", extra={"event": "source_failed", "source": name})
                self._record_failure(db, source, str(e))
                result["errors"].append({"source": name, "message": str(e)})
                continue
            except Exception as e:
                logger.error(f"[INGEST] Unexpected error for {name}: {e}", exc_info=True)
                self._record_failure(db, source, str(e))
                result["errors"].append({"source": name, "message": str(e)})
                continue

            result["inserted"] += source_result["inserted"]
            result["skipped"] += source_result["skipped"]
            if source_result["error"]:
                result["errors"].append({"source": name, "message": source_result["error"]})

        result["duration_ms"] = int((time.time() - start_time) * 1000)
        logger.info(
            f"[INGEST] Run complete: {result['inserted']} inserted, {result['skipped']} skipped, "
            f"{len(result['errors'])} errors",
            extra={
                "event": "ingest_complete",
                "inserted": result["inserted"],
                "skipped": result["skipped"],
                "duration_ms": result["duration_ms"],
            },
        )
        return result
