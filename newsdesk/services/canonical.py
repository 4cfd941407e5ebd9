# newsdesk/services/canonical.py
"""
URL canonicalization.

Two links that differ only in tracking parameters, parameter order, fragment
or host case point at the same article. normalize_url() collapses them to one
string and canonical_id() hashes that string into the dedup key.
"""

import hashlib
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "gclid",
        "fbclid",
    }
)


def normalize_url(url: str) -> str:
    """
    Normalize a URL for identity comparison.

    Never raises: anything that does not parse as an absolute URL is
    returned trimmed.
    """
    raw = (url or "").strip()
    try:
        parts = urlsplit(raw)
        if not parts.scheme or not parts.netloc:
            return raw
        # Accessing .port validates the authority
        parts.port
    except ValueError:
        return raw

    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    # Stable sort: repeated keys keep their relative order
    params.sort(key=lambda kv: kv[0])

    return urlunsplit(
        (
            parts.scheme.lower(),
            parts.netloc.lower(),
            parts.path or "/",
            urlencode(params, doseq=True),
            "",
        )
    )


def canonical_id(url: str) -> str:
    """SHA-256 hex digest of the normalized URL."""
    return hashlib.sha256(normalize_url(url).encode("utf-8")).hexdigest()
