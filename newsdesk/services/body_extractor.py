"""
Article body extraction with a cascade of fallback strategies.

This module provides the content extractor used by the quality gate:
- Downloads HTML once with a browser-like identity and a hard wall-clock bound
- Treats any non-2xx response as a hard failure (no extraction attempted)
- Tries extraction tiers in order of expected fidelity: readability-lxml,
  trafilatura, structural containers, paragraph aggregation, and finally an
  aggressive block scan used only when readability is unavailable
- Strips markup, normalizes whitespace and caps the accepted text
"""

import codecs
import ipaddress
import logging
import re
import socket
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

import httpx
import lxml.html
import trafilatura
from lxml.etree import ParserError
from readability import Document
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from newsdesk.config import Settings, get_settings
from newsdesk.utils.content_sanitizer import collapse_whitespace, normalize_whitespace, strip_html

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://www.google.com/",
}

MAX_DOWNLOAD_BYTES = 5 * 1024 * 1024

# <meta charset="..."> or <meta http-equiv="Content-Type" content="text/html; charset=...">
META_CHARSET = re.compile(rb"""<meta[^>]+charset\s*=\s*["']?\s*([A-Za-z0-9_.:-]+)""", re.IGNORECASE)
CHARSET_SNIFF_BYTES = 4096

# Lookups run here so they can be abandoned at the fetch deadline
_dns_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="extract-dns")

NOISE_XPATH = "//script|//style|//noscript|//nav|//header|//footer|//aside|//form"

# Structural containers, most specific first
CONTAINER_XPATHS = (
    "//article",
    "//main",
    "//*[contains(@class, 'article') or contains(@id, 'article')]",
    "//*[contains(@class, 'content') or contains(@id, 'content')]",
    "//*[contains(@class, 'post') or contains(@id, 'post')]",
)

BLOCK_XPATH = "//p|//div|//section|//li|//blockquote|//td|//h2|//h3"

PARAGRAPH_MIN_CHARS = 50
AGGRESSIVE_MIN_CHARS = 40
AGGRESSIVE_TOP_N = 10


class ExtractionTier(str, Enum):
    """Strategy that produced the text, highest expected fidelity first."""

    READABILITY = "readability"
    TRAFILATURA = "trafilatura"
    STRUCTURAL = "structural"
    PARAGRAPHS = "paragraphs"
    AGGRESSIVE = "aggressive"


class ExtractionFailureReason(str, Enum):
    """Categorized failure reasons for observability."""

    INVALID_URL = "invalid_url"
    HTTP_ERROR = "http_error"
    DOWNLOAD_FAILED = "download_failed"
    TIMEOUT = "timeout"
    EXTRACTION_FAILED = "extraction_failed"


@dataclass
class ExtractionResult:
    """Result of an extraction attempt."""

    success: bool
    text: str | None = None
    char_count: int = 0
    tier: ExtractionTier | None = None
    failure_reason: ExtractionFailureReason | None = None
    status_code: int | None = None
    duration_ms: int = 0


def _is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is in a private/reserved range."""
    try:
        addr = ipaddress.ip_address(ip_str)
        return addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved
    except ValueError:
        return False


def _check_ssrf(hostname: str, timeout: float | None = None) -> None:
    """
    Block fetches of hosts that resolve to private/internal addresses.

    Raises:
        ValueError: the host resolves to a private address
        FutureTimeoutError: resolution did not finish within timeout
    """
    try:
        infos = _dns_pool.submit(socket.getaddrinfo, hostname, None).result(timeout=timeout)
    except socket.gaierror:
        return  # DNS resolution failure will be caught by httpx
    for info in infos:
        ip = info[4][0]
        if _is_private_ip(ip):
            raise ValueError(f"SSRF blocked: {hostname} resolves to private IP {ip}")


def detect_encoding(header_charset: str | None, head: bytes) -> str:
    """Header charset first, then a <meta> declaration, then utf-8."""
    match = META_CHARSET.search(head[:CHARSET_SNIFF_BYTES])
    meta_charset = match.group(1).decode("ascii", errors="ignore") if match else None
    for candidate in (header_charset, meta_charset):
        if not candidate:
            continue
        try:
            return codecs.lookup(candidate).name
        except LookupError:
            continue
    return "utf-8"


class ContentExtractor:
    """Fetch a page and derive the best available article text from it."""

    def __init__(self, settings: Settings | None = None, client: httpx.Client | None = None):
        self.settings = settings or get_settings()
        self.min_length = self.settings.EXTRACTION_MIN_LENGTH
        self.max_chars = self.settings.EXTRACTION_MAX_CHARS
        self.timeout = self.settings.EXTRACTION_TIMEOUT_SECONDS
        self._client = client

    # -------------------------------------------------------------------------
    # Download
    # -------------------------------------------------------------------------

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                headers=BROWSER_HEADERS,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ContentExtractor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception_type(httpx.ConnectError),
        reraise=True,
    )
    def _download(self, url: str, deadline: float) -> tuple[int, str]:
        """
        Stream the page body, giving up once the wall-clock deadline passes.

        Connection errors are retried once; timeouts never are.
        """
        if time.monotonic() >= deadline:
            raise httpx.TimeoutException(f"deadline exceeded before fetching {url}")

        with self._get_client().stream("GET", url) as response:
            if not response.is_success:
                return response.status_code, ""

            chunks: list[bytes] = []
            size = 0
            for chunk in response.iter_bytes():
                if time.monotonic() >= deadline:
                    raise httpx.TimeoutException(f"deadline exceeded while reading {url}")
                size += len(chunk)
                if size > MAX_DOWNLOAD_BYTES:
                    break
                chunks.append(chunk)

            raw = b"".join(chunks)
            encoding = detect_encoding(response.charset_encoding, raw)
            return response.status_code, raw.decode(encoding, errors="replace")

    # -------------------------------------------------------------------------
    # Tiers
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse(html: str):
        try:
            return lxml.html.fromstring(html)
        except (ParserError, ValueError):
            return None

    @staticmethod
    def _meta_description(tree) -> str:
        if tree is None:
            return ""
        values = tree.xpath(
            "//meta[@name='description' or @property='og:description' or @name='twitter:description']/@content"
        )
        return collapse_whitespace(values[0]) if values else ""

    def _try_readability(self, html: str) -> str | None:
        """Readability-lxml: score blocks by text vs. markup density, keep the best region."""
        summary_html = Document(html).summary(html_partial=True)

        plain = ""
        fragment = self._parse(summary_html)
        if fragment is not None:
            plain = normalize_whitespace(fragment.text_content())
        stripped = strip_html(summary_html)
        text = stripped if len(stripped) > len(plain) else plain

        excerpt = self._meta_description(self._parse(html))
        if len(excerpt) > 50 and excerpt[:50] not in text:
            text = f"{excerpt}\n\n{text}"

        if len(text) > self.min_length:
            return text
        return None

    def _try_trafilatura(self, html: str) -> str | None:
        try:
            text = trafilatura.extract(html, include_comments=False, include_tables=False)
        except Exception as e:
            logger.debug(f"[EXTRACT] trafilatura failed: {e}")
            return None
        if text and len(text) > self.min_length:
            return text
        return None

    def _denoised_tree(self, html: str):
        tree = self._parse(html)
        if tree is None:
            return None
        for el in tree.xpath(NOISE_XPATH):
            if el.getparent() is not None:
                el.drop_tree()
        return tree

    def _try_structural(self, html: str) -> str | None:
        """First article/main/content-ish container whose text clears the threshold."""
        tree = self._denoised_tree(html)
        if tree is None:
            return None
        for xpath in CONTAINER_XPATHS:
            for el in tree.xpath(xpath):
                text = strip_html(lxml.html.tostring(el, encoding="unicode"))
                if len(text) > self.min_length:
                    return text
        return None

    def _try_paragraphs(self, html: str) -> str | None:
        tree = self._parse(html)
        if tree is None:
            return None
        paragraphs = tree.xpath("//p")
        if len(paragraphs) <= 3:
            return None
        kept = []
        for p in paragraphs:
            text = collapse_whitespace(p.text_content())
            if len(text) > PARAGRAPH_MIN_CHARS:
                kept.append(text)
        joined = "\n\n".join(kept)
        if len(joined) > self.min_length:
            return joined
        return None

    def _try_aggressive(self, html: str) -> str | None:
        """Every block's text, longest first. Low fidelity; only when readability is unavailable."""
        tree = self._denoised_tree(html)
        if tree is None:
            return None
        seen: set[str] = set()
        blocks: list[str] = []
        for el in tree.xpath(BLOCK_XPATH):
            text = collapse_whitespace(el.text_content())
            if len(text) >= AGGRESSIVE_MIN_CHARS and text not in seen:
                seen.add(text)
                blocks.append(text)
        blocks.sort(key=len, reverse=True)
        joined = "\n\n".join(blocks[:AGGRESSIVE_TOP_N])
        if len(joined) > self.min_length:
            return joined
        return None

    def extract_from_html(self, html: str) -> tuple[str, ExtractionTier] | None:
        """Run the tier cascade over already-downloaded HTML."""
        readability_available = self.settings.EXTRACTION_READABILITY_ENABLED
        if readability_available:
            try:
                text = self._try_readability(html)
            except Exception as e:
                logger.debug(f"[EXTRACT] readability failed, enabling aggressive tier: {e}")
                readability_available = False
            else:
                if text:
                    return self._finalize(text), ExtractionTier.READABILITY

        tiers = [
            (self._try_trafilatura, ExtractionTier.TRAFILATURA),
            (self._try_structural, ExtractionTier.STRUCTURAL),
            (self._try_paragraphs, ExtractionTier.PARAGRAPHS),
        ]
        if not readability_available:
            tiers.append((self._try_aggressive, ExtractionTier.AGGRESSIVE))

        for extractor_fn, tier in tiers:
            text = extractor_fn(html)
            if text:
                return self._finalize(text), tier
        return None

    def _finalize(self, text: str) -> str:
        return strip_html(text)[: self.max_chars]

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def extract(self, url: str) -> ExtractionResult:
        """
        Fetch a page and extract its article text.

        Extraction flow:
        1. Validate the URL (http/https, public host)
        2. Download once, bounded by EXTRACTION_TIMEOUT_SECONDS; non-2xx stops here
        3. Run the tier cascade over the downloaded HTML
        """
        start_time = time.time()

        def elapsed() -> int:
            return int((time.time() - start_time) * 1000)

        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return ExtractionResult(success=False, failure_reason=ExtractionFailureReason.INVALID_URL)

        deadline = time.monotonic() + self.timeout
        try:
            if self.settings.EXTRACTION_BLOCK_PRIVATE_HOSTS:
                _check_ssrf(parsed.hostname, timeout=self.timeout)
        except ValueError as e:
            logger.warning(f"[EXTRACT] {e}")
            return ExtractionResult(success=False, failure_reason=ExtractionFailureReason.INVALID_URL)
        except FutureTimeoutError:
            logger.warning(f"[EXTRACT] Timed out resolving {parsed.hostname}")
            return ExtractionResult(
                success=False, failure_reason=ExtractionFailureReason.TIMEOUT, duration_ms=elapsed()
            )
        try:
            status_code, html = self._download(url, deadline)
        except httpx.TimeoutException as e:
            logger.warning(f"[EXTRACT] Timed out fetching {url}: {e}")
            return ExtractionResult(
                success=False, failure_reason=ExtractionFailureReason.TIMEOUT, duration_ms=elapsed()
            )
        except httpx.HTTPError as e:
            logger.warning(f"[EXTRACT] Download failed for {url}: {e}")
            return ExtractionResult(
                success=False, failure_reason=ExtractionFailureReason.DOWNLOAD_FAILED, duration_ms=elapsed()
            )

        if not 200 <= status_code < 300:
            logger.info(f"[EXTRACT] {url} returned HTTP {status_code}")
            return ExtractionResult(
                success=False,
                failure_reason=ExtractionFailureReason.HTTP_ERROR,
                status_code=status_code,
                duration_ms=elapsed(),
            )

        found = self.extract_from_html(html)
        if not found:
            return ExtractionResult(
                success=False,
                failure_reason=ExtractionFailureReason.EXTRACTION_FAILED,
                status_code=status_code,
                duration_ms=elapsed(),
            )

        text, tier = found
        logger.debug(f"[EXTRACT] {tier.value} extracted {len(text)} chars from {url}")
        return ExtractionResult(
            success=True,
            text=text,
            char_count=len(text),
            tier=tier,
            status_code=status_code,
            duration_ms=elapsed(),
        )


def fetch_article_content(url: str, settings: Settings | None = None) -> str | None:
    """Extract article text from a URL, or None if nothing usable was found."""
    with ContentExtractor(settings) as extractor:
        result = extractor.extract(url)
    if result.success:
        return result.text
    return None

