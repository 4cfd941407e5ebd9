# newsdesk/services/api_fetchers/newsapi_fetcher.py
"""
NewsAPI.org fetcher.

Uses the top-headlines endpoint. Article `content` on the free and developer
plans is cut at ~200 chars and ends with a "[+N chars]" marker, so every
article from here is a backfill candidate.

API Documentation: https://newsapi.org/docs/endpoints/top-headlines
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

import httpx

from newsdesk.services.api_fetchers.base import BaseFetcher, NormalizedEntry
from newsdesk.services.resilience import TransportFailure, UpstreamFormatFailure

logger = logging.getLogger(__name__)


# Map source categories to NewsAPI top-headlines categories
NEWSAPI_CATEGORY_MAP = {
    "tech": "technology",
    "entertainment": "entertainment",
}
DEFAULT_NEWSAPI_CATEGORY = "general"


def parse_published_at(value: str | None) -> datetime | None:
    """ISO-8601 timestamp to a naive UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class NewsApiFetcher(BaseFetcher):
    """
    Fetch top headlines from NewsAPI.org.

    Rate limits (developer plan): 100 requests/day, 100 results per page.
    """

    BASE_URL = "https://newsapi.org/v2/top-headlines"
    DEFAULT_PAGE_SIZE = 50
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        api_key: str | None,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = "NewsdeskBot/1.0",
        client: httpx.AsyncClient | None = None,
    ):
        """
        Args:
            api_key: NewsAPI key; may be None when every source carries a full URL
            timeout: HTTP request timeout in seconds
            client: Injected client (tests use httpx.MockTransport)
        """
        self.api_key = api_key
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={
                "Accept": "application/json",
                "User-Agent": user_agent,
            },
        )

    @property
    def source_type(self) -> str:
        return "newsapi"

    def build_params(self, category: str | None, page_size: int) -> dict[str, Any]:
        return {
            "language": "en",
            "pageSize": page_size,
            "category": NEWSAPI_CATEGORY_MAP.get(category or "", DEFAULT_NEWSAPI_CATEGORY),
            "apiKey": self.api_key,
        }

    async def fetch_articles(
        self,
        category: str | None = None,
        url: str | None = None,
        max_results: int = DEFAULT_PAGE_SIZE,
    ) -> list[NormalizedEntry]:
        """
        Fetch and normalize one page of top headlines.

        Raises:
            TransportFailure: network error or non-2xx response
            UpstreamFormatFailure: invalid JSON or an API-level error status
        """
        start_time = time.time()

        try:
            if url:
                response = await self.client.get(url)
            else:
                response = await self.client.get(
                    self.BASE_URL,
                    params=self.build_params(category, min(max_results, self.DEFAULT_PAGE_SIZE)),
                )
        except httpx.HTTPError as e:
            raise TransportFailure(f"NewsAPI request failed: {e}") from e

        if not response.is_success:
            logger.error(f"NewsAPI error: {response.status_code} - {response.text[:200]}")
            raise TransportFailure(
                f"fetch {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamFormatFailure("NewsAPI returned invalid JSON") from e

        if data.get("status") == "error":
            raise UpstreamFormatFailure(f"NewsAPI error {data.get('code')}: {data.get('message')}")

        articles: list[NormalizedEntry] = []
        for article in data.get("articles") or []:
            try:
                normalized = self._normalize_article(article)
            except Exception as e:
                logger.warning(f"Failed to normalize NewsAPI article: {e}")
                continue
            articles.append(normalized)

        articles = articles[:max_results]
        logger.info(f"NewsAPI fetched {len(articles)} articles in {int((time.time() - start_time) * 1000)}ms")
        return articles

    def _normalize_article(self, article: dict[str, Any]) -> NormalizedEntry:
        """
        Convert a NewsAPI article to a NormalizedEntry.

        Articles without a url are kept (with url "") so the caller can count
        them as skipped.
        """
        source = article.get("source") or {}
        return NormalizedEntry(
            url=(article.get("url") or "").strip(),
            title=article.get("title") or "",
            description=article.get("description"),
            content=article.get("content"),
            author=article.get("author"),
            published_at=parse_published_at(article.get("publishedAt")),
            image_url=article.get("urlToImage"),
            source_name=source.get("name") if isinstance(source, dict) else None,
            language="en",
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "NewsApiFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
