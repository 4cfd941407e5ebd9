# tests/unit/test_content_sanitizer.py
"""
Unit tests for content sanitizer utilities.

Covers:
- Truncation marker detection and stripping ("[+N chars]" and variants)
- Snippet markers (phrases, trailing ellipsis) vs. weaker truncation hints
- HTML stripping and whitespace normalization
"""

import pytest

from newsdesk.utils.content_sanitizer import (
    collapse_whitespace,
    has_snippet_markers,
    has_snippet_phrases,
    has_truncation_hints,
    has_truncation_markers,
    normalize_whitespace,
    strip_html,
    strip_truncation_markers,
    word_count,
)


class TestHasTruncationMarkers:
    """Tests for has_truncation_markers()."""

    def test_detects_newsapi_marker(self):
        assert has_truncation_markers("The minister said on Monday… [+1811 chars]") is True

    def test_detects_symbols_marker(self):
        assert has_truncation_markers("Article text...[1811 symbols]") is True

    def test_detects_characters_marker(self):
        assert has_truncation_markers("Article text...[500 characters]") is True

    def test_false_for_clean_text(self):
        assert has_truncation_markers("This is a normal article body.") is False

    @pytest.mark.parametrize("value", [None, ""])
    def test_false_for_empty(self, value):
        assert has_truncation_markers(value) is False


class TestStripTruncationMarkers:
    """Tests for strip_truncation_markers()."""

    def test_strips_marker_and_ellipsis(self):
        assert strip_truncation_markers("Rates rose again... [+240 chars]") == "Rates rose again"

    def test_clean_text_unchanged(self):
        assert strip_truncation_markers("Nothing to strip.") == "Nothing to strip."

    def test_none_passthrough(self):
        assert strip_truncation_markers(None) is None


class TestSnippetDetection:
    """Strong snippet markers vs. weak truncation hints."""

    def test_snippet_phrase(self):
        assert has_snippet_phrases("Short intro. Read more at the site") is True

    def test_snippet_phrase_is_case_sensitive(self):
        assert has_snippet_phrases("Voters can read more about the candidates in the pamphlet.") is False
        assert has_snippet_phrases("Continue reading on the publisher site") is True

    def test_trailing_ellipsis_is_snippet_marker(self):
        assert has_snippet_markers("The story continues...") is True

    def test_unicode_trailing_ellipsis(self):
        assert has_snippet_markers("The story continues…  ") is True

    def test_mid_text_ellipsis_is_not_snippet_marker(self):
        text = "He paused... then answered the question in full."
        assert has_snippet_markers(text) is False
        assert has_truncation_hints(text) is True

    def test_bracket_plus_is_truncation_hint(self):
        assert has_truncation_hints("Body text [+ more]") is True

    def test_clean_text_has_no_hints(self):
        assert has_truncation_hints("A complete sentence.") is False


class TestStripHtml:
    """Tests for strip_html()."""

    def test_removes_tags_and_scripts(self):
        markup = "<div><script>var x = 1;</script><p>Hello <b>world</b></p><style>p{}</style></div>"
        assert strip_html(markup) == "Hello world"

    def test_block_elements_become_line_breaks(self):
        result = strip_html("<p>First paragraph.</p><p>Second paragraph.</p>")
        assert result.splitlines()[0] == "First paragraph."
        assert "Second paragraph." in result
        assert "\n" in result

    def test_decodes_entities(self):
        assert strip_html("Tom &amp; Jerry&nbsp;return") == "Tom & Jerry return"

    def test_empty(self):
        assert strip_html(None) == ""


class TestWhitespace:
    """Tests for whitespace helpers."""

    def test_normalize_collapses_inline_and_blank_lines(self):
        text = "  one   two \n\n\n\n three\t\tfour  "
        assert normalize_whitespace(text) == "one two\n\nthree four"

    def test_collapse_joins_lines(self):
        assert collapse_whitespace(" a\n b \t c ") == "a b c"

    def test_word_count(self):
        assert word_count("one two  three\nfour") == 4
        assert word_count(None) == 0
