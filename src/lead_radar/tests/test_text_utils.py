# src/lead_radar/tests/test_text_utils.py
"""
Unit tests for Lead Radar text and URL helpers.

Tests cover:
- Whitespace/case normalization and list normalization
- Language detection by letter dominance
- Phrase matching anchored at word starts
- Score clamping and snippet sanitizing
- URL canonicalization, thread keys and site: filters
"""
import pytest

from lead_radar.text_utils import (
    canonicalize_url,
    clamp_score,
    detect_language,
    domain_of,
    find_phrases,
    host_matches,
    is_absolute_url,
    normalize_list,
    normalize_text,
    sanitize_snippet,
    site_filter,
    stems,
    text_fingerprint,
    thread_key,
    tokenize,
)


class TestNormalization:
    """Tests for text normalization helpers."""

    @pytest.mark.unit
    def test_normalize_text_lowercases_and_collapses(self):
        """Test whitespace collapse, lowercasing and ё folding."""
        assert normalize_text("  Ёлка   И\tПАЛКА ") == "елка и палка"

    @pytest.mark.unit
    def test_normalize_list_dedupes_and_drops_junk(self):
        """Test list normalization keeps first occurrences of strings only."""
        assert normalize_list(["A", "a ", 5, "", None, "b"]) == ["a", "b"]

    @pytest.mark.unit
    def test_normalize_list_caps_count_and_length(self):
        """Test item count and item length caps."""
        values = [f"item {i}" for i in range(30)] + ["x" * 200]
        result = normalize_list(values, max_items=5, max_length=10)
        assert len(result) == 5
        assert all(len(item) <= 10 for item in result)

    @pytest.mark.unit
    def test_normalize_list_accepts_single_string(self):
        """Test a bare string is treated as a one-item list."""
        assert normalize_list("Moscow") == ["moscow"]

    @pytest.mark.unit
    def test_normalize_list_rejects_non_sequences(self):
        """Test non-list values normalize to an empty list."""
        assert normalize_list({"a": 1}) == []
        assert normalize_list(42) == []

    @pytest.mark.unit
    def test_tokenize_drops_short_tokens(self):
        """Test tokens shorter than three characters are dropped."""
        assert tokenize("Ищем бухгалтера на аутсорс") == ["ищем", "бухгалтера", "аутсорс"]

    @pytest.mark.unit
    def test_stems_match_inflected_forms(self):
        """Test inflected forms share a stem."""
        assert stems("бухгалтера") == stems("бухгалтерия")


class TestDetectLanguage:
    """Tests for language detection."""

    @pytest.mark.unit
    def test_russian(self):
        assert detect_language("Ищем бухгалтера на аутсорс") == "ru"

    @pytest.mark.unit
    def test_english(self):
        assert detect_language("Looking for an outsourced accountant") == "en"

    @pytest.mark.unit
    def test_tie_is_mixed(self):
        """Test that neither alphabet dominating yields mixed."""
        assert detect_language("abc где") == "mixed"

    @pytest.mark.unit
    def test_empty_is_mixed(self):
        assert detect_language("") == "mixed"
        assert detect_language("12345") == "mixed"


class TestFindPhrases:
    """Tests for phrase matching."""

    @pytest.mark.unit
    def test_prefix_match_covers_inflection(self):
        """Test long phrases match inflected words."""
        assert find_phrases("Объявлен прием заявок для тендера", ["тендер"]) == ["тендер"]

    @pytest.mark.unit
    def test_short_phrase_requires_whole_word(self):
        """Test phrases of three characters or fewer match whole words only."""
        assert find_phrases("RFID метки", ["rf"]) == []
        assert find_phrases("Работаем по РФ", ["рф"]) == ["рф"]

    @pytest.mark.unit
    def test_match_must_start_at_word(self):
        """Test phrases do not match inside words."""
        assert find_phrases("переищем", ["ищем"]) == []

    @pytest.mark.unit
    def test_results_keep_phrase_order_without_duplicates(self):
        text = "we need a tender, looking for vendors"
        assert find_phrases(text, ["looking for", "tender", "Tender"]) == ["looking for", "tender"]

    @pytest.mark.unit
    def test_empty_text(self):
        assert find_phrases("", ["anything"]) == []


class TestScoresAndSnippets:
    """Tests for clamp_score, sanitize_snippet and text_fingerprint."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,expected",
        [(150, 100), (-5, 0), (79.6, 80), ("junk", 0), (None, 0), (float("nan"), 0)],
    )
    def test_clamp_score(self, value, expected):
        assert clamp_score(value) == expected

    @pytest.mark.unit
    def test_sanitize_snippet_caps_length(self):
        """Test long snippets are cut with an ellipsis."""
        snippet = sanitize_snippet("word " * 100, 160)
        assert len(snippet) <= 160
        assert snippet.endswith("…")

    @pytest.mark.unit
    def test_sanitize_snippet_collapses_whitespace(self):
        assert sanitize_snippet("a\n\n  b\tc") == "a b c"

    @pytest.mark.unit
    def test_fingerprint_ignores_case_and_spacing(self):
        assert text_fingerprint("Hello   World") == text_fingerprint("hello world")
        assert text_fingerprint("hello") != text_fingerprint("world")


class TestUrls:
    """Tests for URL helpers."""

    @pytest.mark.unit
    def test_canonicalize_strips_tracking_and_fragment(self):
        """Test https, lowercase host, no www, no tracking params, no fragment."""
        url = "http://www.Example.com/Path/?utm_source=x&id=5&gclid=abc#top"
        assert canonicalize_url(url) == "https://example.com/Path?id=5"

    @pytest.mark.unit
    def test_canonicalize_sorts_query_params(self):
        first = canonicalize_url("https://zakupki.gov.ru/view?regNumber=77&lot=2&utm_source=ya")
        second = canonicalize_url("https://zakupki.gov.ru/view?lot=2&regNumber=77")
        assert first == second == "https://zakupki.gov.ru/view?lot=2&regNumber=77"

    @pytest.mark.unit
    def test_canonicalize_root_keeps_slash(self):
        assert canonicalize_url("https://example.com") == "https://example.com/"
        assert canonicalize_url("https://example.com/") == "https://example.com/"

    @pytest.mark.unit
    def test_canonicalize_telegram_preview(self):
        """Test t.me/s/<channel> collapses to t.me/<channel>."""
        assert canonicalize_url("https://t.me/s/buhchat/") == "https://t.me/buhchat"

    @pytest.mark.unit
    def test_canonicalize_vk_keeps_first_segment(self):
        assert canonicalize_url("https://m.vk.com/wall-123_456?w=1") == "https://vk.com/wall-123_456"

    @pytest.mark.unit
    def test_canonicalize_is_idempotent(self):
        once = canonicalize_url("http://WWW.acme.ru/contacts/?utm_medium=cpc&ref=x")
        assert canonicalize_url(once) == once

    @pytest.mark.unit
    def test_canonicalize_returns_junk_unchanged(self):
        assert canonicalize_url("not a url") == "not a url"

    @pytest.mark.unit
    def test_thread_key_drops_query(self):
        assert thread_key("https://forum.example.com/t/42?page=3") == "https://forum.example.com/t/42"

    @pytest.mark.unit
    def test_is_absolute_url(self):
        assert is_absolute_url("https://example.com/x")
        assert not is_absolute_url("/relative/path")
        assert not is_absolute_url("mailto:a@b.c")
        assert not is_absolute_url("")

    @pytest.mark.unit
    def test_domain_of_and_host_matches(self):
        assert domain_of("https://www.HH.ru/vacancy/1") == "hh.ru"
        assert host_matches("spb.hh.ru", "hh.ru")
        assert not host_matches("notthh.ru", "hh.ru")

    @pytest.mark.unit
    def test_site_filter(self):
        assert site_filter("site:hh.ru бухгалтер") == "hh.ru"
        assert site_filter("бухгалтер аутсорс") is None
