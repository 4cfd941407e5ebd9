"""
Shared utilities for detecting and stripping content artifacts.

Handles:
- API truncation markers: "... [+1811 chars]", "...[234 symbols]"
- Snippet phrases that upstream feeds append to shortened bodies
- HTML tag/entity stripping and whitespace normalization

This module centralizes cleanup so it isn't duplicated across the extractor,
the quality gate and the heuristic generator.
"""

import html
import re

# Matches truncation markers such as "[+1811 chars]", "...[234 symbols]".
TRUNCATION_PATTERN = re.compile(r"(?:\.\.\.|…)?\s*\[\+?\d+\s*(?:symbols?|chars?|characters?)\]")

# Phrases that mark a body as a shortened stand-in for the real article.
# Matched case-sensitively.
# "check the original source" is also wording that placeholder generators
# produce, so a real article quoting it will be misread as a snippet.
SNIPPET_PHRASES = (
    "check the original source",
    "Read more",
    "Continue reading",
)

TRAILING_ELLIPSIS = re.compile(r"(?:\.\.\.|…)\s*$")

_SCRIPT_STYLE = re.compile(r"<(script|style|noscript)\b[^>]*>[\s\S]*?</\1>", re.IGNORECASE)
_BLOCK_BREAK = re.compile(r"<(?:br\s*/?|/p|/div|/h[1-6]|/li|/blockquote|/section|/article)\s*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_INLINE_SPACE = re.compile(r"[ \t\f\v\u00a0]+")
_BLANK_LINES = re.compile(r"\n\s*\n+")


def has_truncation_markers(body: str | None) -> bool:
    """Check if text contains API truncation markers."""
    if not body:
        return False
    return bool(TRUNCATION_PATTERN.search(body))


def strip_truncation_markers(body: str | None) -> str | None:
    """Remove API truncation markers from text."""
    if not body:
        return body
    return TRUNCATION_PATTERN.sub("", body).rstrip()


def has_snippet_phrases(text: str | None) -> bool:
    """Check for the phrases feeds use to point readers at the full article."""
    if not text:
        return False
    return any(phrase in text for phrase in SNIPPET_PHRASES)


def has_snippet_markers(text: str | None) -> bool:
    """Snippet phrases, "[+N chars]" annotations or a trailing ellipsis."""
    if not text:
        return False
    return has_snippet_phrases(text) or has_truncation_markers(text) or bool(TRAILING_ELLIPSIS.search(text))


def has_truncation_hints(text: str | None) -> bool:
    """Weaker signal: any ellipsis or "[+" anywhere, on top of the snippet markers."""
    if not text:
        return False
    return has_snippet_markers(text) or "..." in text or "…" in text or "[+" in text


def strip_html(markup: str | None) -> str:
    """Drop scripts/styles and tags, decode entities, keep block boundaries as newlines."""
    if not markup:
        return ""
    text = _SCRIPT_STYLE.sub(" ", markup)
    text = _BLOCK_BREAK.sub("\n", text)
    text = _TAG.sub(" ", text)
    text = html.unescape(text)
    return normalize_whitespace(text)


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of spaces inside lines and runs of blank lines into one."""
    if not text:
        return ""
    lines = [_INLINE_SPACE.sub(" ", line).strip() for line in text.replace("\r\n", "\n").split("\n")]
    text = "\n".join(lines)
    text = _BLANK_LINES.sub("\n\n", text)
    return text.strip()


def collapse_whitespace(text: str | None) -> str:
    """Collapse all whitespace, newlines included, into single spaces."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def word_count(text: str | None) -> int:
    if not text:
        return 0
    return len(text.split())
