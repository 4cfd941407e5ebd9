# newsdesk/services/quality_gate.py
"""
Content quality gate.

Chooses between the body an upstream feed supplied and a freshly extracted
one. Feeds and APIs routinely truncate bodies without saying so, so the gate
fetches even when the existing text looks fine and only keeps the fetched
text when it is clearly better.

Usage:
    gate = ContentQualityGate()
    content = gate.ensure_article_content(url, existing_content, existing_description)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from newsdesk.config import Settings, get_settings
from newsdesk.services.body_extractor import fetch_article_content
from newsdesk.utils.content_sanitizer import has_snippet_markers, has_truncation_hints

logger = logging.getLogger(__name__)


class GateDecision(str, Enum):
    FETCHED = "fetched"
    EXISTING = "existing"
    DESCRIPTION = "description"
    EMPTY = "empty"


@dataclass
class GateResult:
    content: str
    decision: GateDecision
    likely_snippet: bool
    fetched_chars: int = 0


class ContentQualityGate:
    """Decide which of existing and fetched article text to keep."""

    def __init__(
        self,
        settings: Settings | None = None,
        fetcher: Callable[[str], str | None] | None = None,
    ):
        self.settings = settings or get_settings()
        self._fetcher = fetcher or (lambda url: fetch_article_content(url, self.settings))

    def is_likely_snippet(self, content: str | None) -> bool:
        """Absent, shorter than a real article, or carrying snippet markers."""
        if not content or not content.strip():
            return True
        if len(content.strip()) < self.settings.QUALITY_MIN_ARTICLE_LENGTH:
            return True
        return has_snippet_markers(content)

    def _fetch(self, url: str | None) -> str:
        if not url:
            return ""
        try:
            return (self._fetcher(url) or "").strip()
        except Exception as e:
            # Extraction is best-effort; the fallbacks below still apply
            logger.warning(f"[GATE] Extraction raised for {url}: {e}")
            return ""

    def evaluate(
        self,
        url: str | None,
        existing_content: str | None = None,
        existing_description: str | None = None,
    ) -> GateResult:
        s = self.settings
        existing = (existing_content or "").strip()
        description = (existing_description or "").strip()
        likely_snippet = self.is_likely_snippet(existing)

        fetched = self._fetch(url)

        if fetched:
            if likely_snippet:
                if len(fetched) > s.QUALITY_MIN_ARTICLE_LENGTH or len(fetched) > len(existing):
                    return GateResult(fetched, GateDecision.FETCHED, likely_snippet, len(fetched))
            else:
                # Verification pass over content that already looks complete
                shows_markers = has_truncation_hints(existing) or len(existing) < s.QUALITY_SUBSTANTIAL_LENGTH
                significant_gain = len(fetched) >= len(existing) * s.QUALITY_SIGNIFICANT_GAIN_RATIO
                if significant_gain or (len(fetched) > len(existing) and shows_markers):
                    return GateResult(fetched, GateDecision.FETCHED, likely_snippet, len(fetched))

        if len(existing) > s.QUALITY_FALLBACK_MIN_LENGTH:
            return GateResult(existing, GateDecision.EXISTING, likely_snippet, len(fetched))
        if len(description) > s.QUALITY_FALLBACK_MIN_LENGTH:
            return GateResult(description, GateDecision.DESCRIPTION, likely_snippet, len(fetched))
        return GateResult("", GateDecision.EMPTY, likely_snippet, len(fetched))

    def ensure_article_content(
        self,
        url: str | None,
        existing_content: str | None = None,
        existing_description: str | None = None,
    ) -> str:
        """Best available article text; empty string when nothing usable exists."""
        result = self.evaluate(url, existing_content, existing_description)
        logger.info(
            f"[GATE] {result.decision.value} for {url} "
            f"(existing={len(existing_content or '')}, fetched={result.fetched_chars}, snippet={result.likely_snippet})"
        )
        return result.content
