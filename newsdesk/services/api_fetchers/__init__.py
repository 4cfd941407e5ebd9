# newsdesk/services/api_fetchers/__init__.py
"""
News API fetchers for the ingestion pipeline.

Each fetcher normalizes API responses to the NormalizedEntry format that
RSS ingestion also produces, so both flow through the same dedup path.

Supported APIs:
- NewsAPI.org top-headlines
"""

from newsdesk.services.api_fetchers.base import BaseFetcher, NormalizedEntry
from newsdesk.services.api_fetchers.newsapi_fetcher import NewsApiFetcher

__all__ = [
    "BaseFetcher",
    "NormalizedEntry",
    "NewsApiFetcher",
]
