# newsdesk/services/heuristic_generator.py
"""
Heuristic article generator.

Builds headline, summary, body, hashtags and attribution straight from the
extracted text with no network calls. This is the terminal fallback for
generation, so generate() never raises.

Contract:
- summary is 10-50 words unless the inputs hold fewer than 10 words in total
- hashtags has exactly 5 unique entries
"""

import logging
import re
from dataclasses import asdict, dataclass, field

from newsdesk.utils.content_sanitizer import (
    collapse_whitespace,
    normalize_whitespace,
    strip_html,
    strip_truncation_markers,
    word_count,
)

logger = logging.getLogger(__name__)

SUMMARY_MIN_WORDS = 10
SUMMARY_MAX_WORDS = 50
HEADLINE_MAX_CHARS = 80
BODY_MAX_WORDS = 3000
BODY_MIN_CHARS = 500
HASHTAG_COUNT = 5

KEY_TERMS = ("announced", "released", "launched", "revealed", "according", "reports", "says", "confirmed")
FILLER_PHRASES = ("click here", "read more", "continue reading", "check the source")

CATEGORY_HASHTAGS = {
    "tech": "#Technology",
    "entertainment": "#Entertainment",
    "games": "#Gaming",
    "anime_comics": "#Anime",
}

BRAND_HASHTAGS = {
    "apple": "#Apple",
    "google": "#Google",
    "microsoft": "#Microsoft",
    "amazon": "#Amazon",
    "tesla": "#Tesla",
    "iphone": "#iPhone",
    "android": "#Android",
    "windows": "#Windows",
    "xbox": "#Xbox",
    "playstation": "#PlayStation",
}

GENERIC_HASHTAGS = ("#News", "#Breaking", "#Update", "#Latest", "#Tech")

TITLE_STOPWORDS = {"about", "after", "their", "there", "these", "those", "which", "while", "would", "could", "should"}

# Archive/listing chrome that scrapers pick up around the article
BOILERPLATE_PATTERNS = [
    re.compile(r"News\s+News\s+chronological\s+archives[^\n]*", re.IGNORECASE),
    re.compile(r"Convention\s+reports[^\n]*", re.IGNORECASE),
]
TIME_PREFIXED_LINE = re.compile(r"^\d{1,2}:\d{2}\b")
NAV_LINE = re.compile(r"^(?:News|Archive|More|Read|Click|View)\b", re.IGNORECASE)
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass
class HeuristicArticle:
    """Generated article fields."""

    headline: str
    summary: str
    body: str
    hashtags: list[str] = field(default_factory=list)
    attribution: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


# -----------------------------------------------------------------------------
# Cleaning
# -----------------------------------------------------------------------------


def clean_content(content: str | None) -> str:
    """Strip markup, boilerplate and navigation-like lines; keep paragraph breaks."""
    text = strip_truncation_markers(strip_html(content)) or ""
    for pattern in BOILERPLATE_PATTERNS:
        text = pattern.sub("", text)

    kept = []
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            kept.append("")
            continue
        if len(line) < 20 or TIME_PREFIXED_LINE.match(line) or NAV_LINE.match(line):
            continue
        kept.append(line)
    return normalize_whitespace("\n".join(kept))


def drop_timestamp_lines(text: str) -> str:
    """Remove live-blog lines such as "9:00 The minister said ..." whatever their length."""
    return "\n".join(line for line in text.split("\n") if not TIME_PREFIXED_LINE.match(line.strip()))


def _cap_words(text: str, limit: int) -> str:
    words = text.split()
    return " ".join(words[:limit])


# -----------------------------------------------------------------------------
# Summary
# -----------------------------------------------------------------------------


def split_sentences(text: str) -> list[str]:
    sentences = SENTENCE_BOUNDARY.split(collapse_whitespace(text))
    return [s.strip() for s in sentences if 20 <= len(s.strip()) <= 300]


def score_sentence(sentence: str, index: int, total: int) -> float:
    lowered = sentence.lower()
    score = 0.0
    if re.search(r"\d", sentence):
        score += 3
    if re.search(r"\d+(?:\.\d+)?%", sentence):
        score += 5
    if re.search(r"\b\d{4}\b", sentence):
        score += 2
    score += 2 * sum(1 for term in KEY_TERMS if term in lowered)
    if total:
        score += (total - index) / total * 2
    if any(phrase in lowered for phrase in FILLER_PHRASES):
        score -= 10
    return score


def extract_key_sentences(text: str, count: int = 3) -> list[str]:
    """Top-scoring sentences, returned in document order."""
    sentences = split_sentences(text)
    total = len(sentences)
    ranked = sorted(
        range(total),
        key=lambda i: score_sentence(sentences[i], i, total),
        reverse=True,
    )[:count]
    return [sentences[i] for i in sorted(ranked)]


def _assemble(sentences: list[str]) -> str:
    """Greedily fill up to the word cap; a final partial sentence needs room for 10 words."""
    parts: list[str] = []
    used = 0
    for sentence in sentences:
        words = word_count(sentence)
        if used + words <= SUMMARY_MAX_WORDS:
            parts.append(sentence)
            used += words
            continue
        remaining = SUMMARY_MAX_WORDS - used
        if remaining >= SUMMARY_MIN_WORDS:
            partial = _cap_words(sentence, remaining)
            trimmed = re.sub(r"[^.!?]*$", "", partial).strip()
            parts.append(trimmed if trimmed else partial.rstrip(",;:") + "...")
        break
    return " ".join(parts)


def build_summary(title: str, description: str, cleaned: str, raw_text: str) -> str:
    description = collapse_whitespace(description)
    if SUMMARY_MIN_WORDS <= word_count(description) <= SUMMARY_MAX_WORDS:
        return description

    for pool in (3, 5, 8):
        summary = _assemble(extract_key_sentences(cleaned, pool))
        if word_count(summary) >= SUMMARY_MIN_WORDS:
            return _cap_words(summary, SUMMARY_MAX_WORDS)

    first_paragraph = cleaned.split("\n\n")[0] if cleaned else ""
    for candidate in (first_paragraph, title, " ".join([title, description, raw_text])):
        capped = _cap_words(collapse_whitespace(candidate), SUMMARY_MAX_WORDS)
        if word_count(capped) >= SUMMARY_MIN_WORDS:
            return capped

    # Fewer than 10 words exist anywhere in the input
    return _cap_words(collapse_whitespace(title or description or raw_text), SUMMARY_MAX_WORDS) or "Latest news update."


# -----------------------------------------------------------------------------
# Headline, body, hashtags
# -----------------------------------------------------------------------------


def build_headline(title: str, cleaned: str) -> str:
    headline = collapse_whitespace(title)
    if not headline:
        sentences = split_sentences(cleaned)
        headline = sentences[0] if sentences else "News update"
    if len(headline) > HEADLINE_MAX_CHARS:
        headline = headline[: HEADLINE_MAX_CHARS - 3].rstrip() + "..."
    return headline


def _cap_paragraphs(paragraphs: list[str], limit: int) -> list[str]:
    """Keep whole paragraphs up to the word cap, cutting the one that crosses it."""
    kept: list[str] = []
    used = 0
    for paragraph in paragraphs:
        words = paragraph.split()
        if used + len(words) > limit:
            if limit - used > 0:
                kept.append(" ".join(words[: limit - used]))
            break
        kept.append(paragraph)
        used += len(words)
    return kept


def build_body(title: str, description: str, cleaned: str, raw_text: str) -> str:
    if len(cleaned) > BODY_MIN_CHARS:
        paragraphs = [line.strip() for line in cleaned.split("\n") if len(line.strip()) >= 15]
        body = "\n\n".join(_cap_paragraphs(paragraphs, BODY_MAX_WORDS))
        last_boundary = max(body.rfind("."), body.rfind("!"), body.rfind("?"))
        if last_boundary > len(body) * 0.8:
            body = body[: last_boundary + 1]
        if body:
            return body

    parts = []
    for part in (collapse_whitespace(title), collapse_whitespace(description), collapse_whitespace(raw_text)):
        if part and part not in parts:
            parts.append(part)
    if len(parts) <= 1:
        return f"This article covers: {parts[0] if parts else 'a developing news story'}."
    return "\n\n".join(parts)


def _as_hashtag(word: str) -> str:
    cleaned = re.sub(r"[^0-9A-Za-z]", "", word)
    if not cleaned:
        return ""
    return "#" + cleaned[0].upper() + cleaned[1:].lower()


def build_hashtags(title: str, content: str, category: str | None) -> list[str]:
    tags: list[str] = []
    seen: set[str] = set()

    def add(tag: str) -> None:
        if tag and len(tag) > 1 and tag.lower() not in seen and len(tags) < HASHTAG_COUNT:
            seen.add(tag.lower())
            tags.append(tag)

    if category and category in CATEGORY_HASHTAGS:
        add(CATEGORY_HASHTAGS[category])

    title_tags = 0
    for word in collapse_whitespace(title).split():
        stripped = re.sub(r"[^0-9A-Za-z]", "", word)
        if len(stripped) > 4 and stripped.lower() not in TITLE_STOPWORDS and title_tags < 3:
            before = len(tags)
            add(_as_hashtag(stripped))
            title_tags += len(tags) - before

    lead = (content or "")[:500].lower()
    for keyword, tag in BRAND_HASHTAGS.items():
        if re.search(rf"\b{keyword}\b", lead):
            add(tag)

    for tag in GENERIC_HASHTAGS:
        add(tag)
    return tags


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------


def generate(
    title: str | None,
    description: str | None,
    content: str | None,
    source_name: str | None,
    category: str | None = None,
) -> HeuristicArticle:
    """Build a complete article from the inputs alone. Never raises."""
    title = str(title or "")
    description = str(description or "")
    content = str(content or "")
    source = collapse_whitespace(str(source_name or "")) or "the original publisher"

    try:
        cleaned = clean_content(content)
        raw_text = collapse_whitespace(drop_timestamp_lines(strip_html(content)))
        return HeuristicArticle(
            headline=build_headline(title, cleaned),
            summary=build_summary(title, strip_html(description), cleaned, raw_text),
            body=build_body(title, strip_html(description), cleaned, raw_text),
            hashtags=build_hashtags(title, raw_text, category),
            attribution=f"Source: {source}",
        )
    except Exception:
        logger.exception("[HEURISTIC] Generation failed, using minimal article")
        text = collapse_whitespace(" ".join([title, description, content]))
        return HeuristicArticle(
            headline=(title or "News update")[:HEADLINE_MAX_CHARS],
            summary=_cap_words(text, SUMMARY_MAX_WORDS) or "Latest news update.",
            body=text or "This article covers: a developing news story.",
            hashtags=list(GENERIC_HASHTAGS),
            attribution=f"Source: {source}",
        )
