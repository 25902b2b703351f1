# src/lead_radar/tests/test_source_kinds.py
"""
Unit tests for source-kind detection, URL blocklists and rule tables.

Tests cover:
- First-match-wins rule resolution
- Domain listing with host+path entries
- Source-kind detection by domain, path and title
- Blocked domains, host prefixes and paths
- Non-lead source-kind rejection with the explicit-intent exception
"""
import pytest

from lead_radar.errors import RejectReason
from lead_radar.models import SourceKind
from lead_radar.rules import Rule, UrlFeatures, domain_listed, resolve_first
from lead_radar.source_kinds import (
    blocked_reason,
    describe_kind_rule,
    detect_source_kind,
    source_kind_rejection,
)


class TestRules:
    """Tests for the generic rule resolver."""

    @pytest.mark.unit
    def test_first_match_wins(self):
        rules = (
            Rule("small", lambda n: n < 10, "small"),
            Rule("positive", lambda n: n > 0, "positive"),
        )
        assert resolve_first(rules, 5, "other") == ("small", "small")
        assert resolve_first(rules, 50, "other") == ("positive", "positive")
        assert resolve_first(rules, -1, "other") == ("other", "default")

    @pytest.mark.unit
    def test_domain_listed_with_path_entry(self):
        jobs = UrlFeatures(host="linkedin.com", path="/jobs/view/1")
        post = UrlFeatures(host="linkedin.com", path="/posts/abc")
        assert domain_listed(jobs, ("linkedin.com/jobs",))
        assert not domain_listed(post, ("linkedin.com/jobs",))

    @pytest.mark.unit
    def test_domain_listed_matches_subdomains(self):
        assert domain_listed(UrlFeatures(host="spb.hh.ru", path="/"), ("hh.ru",))


class TestDetectSourceKind:
    """Tests for detect_source_kind()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://zakupki.gov.ru/epz/order/notice/123", SourceKind.TENDER),
            ("https://hh.ru/vacancy/123", SourceKind.JOB),
            ("https://acme.ru/vacancies/accountant", SourceKind.JOB),
            ("https://habr.com/ru/companies/acme/", SourceKind.BLOG_ARTICLE),
            ("https://acme.ru/blog/post-1", SourceKind.BLOG_ARTICLE),
            ("https://otvet.mail.ru/question/1", SourceKind.FORUM_QNA),
            ("https://forum.acme.ru/t/1", SourceKind.FORUM_QNA),
            ("https://dic.academic.ru/dic.nsf/ruwiki/1", SourceKind.DICTIONARY),
            ("https://t.me/buhchat", SourceKind.SOCIAL_POST),
            ("https://vk.com/wall-1_2", SourceKind.SOCIAL_POST),
            ("https://zoon.ru/msk/", SourceKind.DIRECTORY),
            ("https://acme.ru/", SourceKind.COMPANY_PAGE),
            ("https://acme.ru/uslugi", SourceKind.COMPANY_PAGE),
            ("https://acme.ru/o-kompanii/team", SourceKind.COMPANY_PAGE),
            ("https://acme.ru/a/b/c", SourceKind.OTHER),
        ],
    )
    def test_kinds(self, url, expected):
        assert detect_source_kind(url) == expected

    @pytest.mark.unit
    def test_title_marker(self):
        """Test a tender title classifies an otherwise unknown page."""
        kind = detect_source_kind("https://acme.ru/a/b/c", title="Тендер на бухгалтерское обслуживание")
        assert kind == SourceKind.TENDER

    @pytest.mark.unit
    def test_dictionary_title_wins_over_company_page(self):
        kind = detect_source_kind("https://acme.ru/", title="Что такое аутсорсинг")
        assert kind == SourceKind.DICTIONARY

    @pytest.mark.unit
    def test_describe_kind_rule(self):
        assert describe_kind_rule("https://hh.ru/vacancy/1") == (SourceKind.JOB, "job")
        assert describe_kind_rule("https://acme.ru/a/b/c") == (SourceKind.OTHER, "default")


class TestBlockedReason:
    """Tests for blocked_reason()."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://acme.ru/support/faq", RejectReason.BLOCKED_DOCS_SUPPORT),
            ("https://acme.ru/help", RejectReason.BLOCKED_DOCS_SUPPORT),
            ("https://support.acme.ru/ticket", RejectReason.BLOCKED_DOCS_SUPPORT),
            ("https://www.youtube.com/watch?v=1", RejectReason.BLOCKED_DOMAIN),
            ("https://ru.wikipedia.org/wiki/X", RejectReason.BLOCKED_DOMAIN),
            ("https://acme.ru/login", RejectReason.BLOCKED_AUTH),
            ("https://acme.ru/privacy-policy", RejectReason.BLOCKED_LEGAL),
            ("https://acme.ru/files/price.pdf", RejectReason.BLOCKED_MEDIA_FILE),
        ],
    )
    def test_blocked(self, url, expected):
        assert blocked_reason(url) == expected

    @pytest.mark.unit
    def test_allowed(self):
        assert blocked_reason("https://acme.ru/uslugi") is None
        assert blocked_reason("https://acme.ru/supporters-club") is None


class TestSourceKindRejection:
    """Tests for source_kind_rejection()."""

    @pytest.mark.unit
    def test_non_lead_kinds_rejected(self):
        assert source_kind_rejection(SourceKind.FORUM_QNA, False) == RejectReason.SOURCE_KIND_FORUM
        assert source_kind_rejection(SourceKind.DICTIONARY, False) == RejectReason.SOURCE_KIND_DICTIONARY
        assert source_kind_rejection(SourceKind.BLOG_ARTICLE, False) == RejectReason.SOURCE_KIND_ARTICLE
        assert source_kind_rejection(SourceKind.OTHER, False) == RejectReason.SOURCE_KIND_OTHER

    @pytest.mark.unit
    def test_explicit_intent_admits_non_lead_kind(self):
        assert source_kind_rejection(SourceKind.FORUM_QNA, True) is None

    @pytest.mark.unit
    def test_lead_like_kinds_pass(self):
        for kind in (SourceKind.TENDER, SourceKind.JOB, SourceKind.SOCIAL_POST,
                     SourceKind.DIRECTORY, SourceKind.COMPANY_PAGE):
            assert source_kind_rejection(kind, False) is None
