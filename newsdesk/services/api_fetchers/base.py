# newsdesk/services/api_fetchers/base.py
"""
Base classes and types for News API fetchers.

Defines the abstract BaseFetcher interface and NormalizedEntry TypedDict
that all API fetchers must implement and produce.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TypedDict


class NormalizedEntry(TypedDict, total=False):
    """
    Normalized article entry from any news source.

    Keys match what Deduper.upsert_raw_article reads, so RSS items and API
    articles are stored the same way.
    """

    # Required fields
    url: str  # Original article URL
    title: str  # Article headline (defaults to the url downstream)

    # Optional fields
    description: str | None  # Short summary/excerpt
    content: str | None  # Body as delivered; APIs usually truncate it
    author: str | None
    published_at: datetime | None
    image_url: str | None
    source_name: str | None  # Publisher name (e.g., "Reuters")
    language: str


class BaseFetcher(ABC):
    """
    Abstract base class for news API fetchers.
    """

    @abstractmethod
    async def fetch_articles(
        self,
        category: str | None = None,
        url: str | None = None,
        max_results: int = 50,
    ) -> list[NormalizedEntry]:
        """
        Fetch and normalize articles from the API.

        Args:
            category: Source category used to pick the API's category
            url: Full request URL overriding the category-based one
            max_results: Maximum number of articles to return

        Returns:
            List of NormalizedEntry dictionaries ready for ingestion
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (close HTTP client, etc.)."""
        pass

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'newsapi')."""
        pass
