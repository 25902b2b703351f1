# source_kinds.py
"""Source-kind detection and URL blocklists."""

import re
from typing import Optional, Tuple
from urllib.parse import urlsplit

from .errors import RejectReason
from .models import SourceKind
from .reference_data import (
    ARTICLE_DOMAINS,
    ARTICLE_HOST_PREFIXES,
    ARTICLE_PATH_MARKERS,
    BLOCKED_DOMAINS,
    BLOCKED_HOST_PREFIXES,
    BLOCKED_PATH_RULES,
    COMPANY_PATH_MARKERS,
    DICTIONARY_DOMAINS,
    DICTIONARY_PATH_MARKERS,
    DICTIONARY_TITLE_MARKERS,
    DIRECTORY_DOMAINS,
    DIRECTORY_PATH_MARKERS,
    DIRECTORY_TITLE_MARKERS,
    FORUM_DOMAINS,
    FORUM_HOST_PREFIXES,
    FORUM_PATH_MARKERS,
    JOB_DOMAINS,
    JOB_PATH_MARKERS,
    JOB_TITLE_MARKERS,
    PLATFORM_DOMAINS,
    SOCIAL_DOMAINS,
    TENDER_DOMAINS,
    TENDER_PATH_MARKERS,
    TENDER_TITLE_MARKERS,
)
from .rules import (
    Rule,
    UrlFeatures,
    any_domain,
    any_host_prefix,
    any_path,
    any_title,
    domain_listed,
    either,
    resolve_first,
)
from .text_utils import domain_of, host_matches

_BLOCKED_PATH_PATTERNS = tuple(
    (re.compile(pattern), RejectReason(reason)) for pattern, reason in BLOCKED_PATH_RULES
)


def url_features(url: str, title: str = "", snippet: str = "") -> UrlFeatures:
    """Split a URL into the features the rule tables look at."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        path = ""
    return UrlFeatures(host=domain_of(url), path=path or "/", title=title or "", snippet=snippet or "")


def _is_company_page(features: UrlFeatures) -> bool:
    if domain_listed(features, PLATFORM_DOMAINS):
        return False
    depth = len([segment for segment in features.path.split("/") if segment])
    return depth <= 1 or any(marker in features.path for marker in COMPANY_PATH_MARKERS)


# Ordered, first match wins.
SOURCE_KIND_RULES = (
    Rule(
        "dictionary",
        either(
            any_domain(DICTIONARY_DOMAINS),
            any_path(DICTIONARY_PATH_MARKERS),
            any_title(DICTIONARY_TITLE_MARKERS),
        ),
        SourceKind.DICTIONARY,
    ),
    Rule(
        "forum_qna",
        either(
            any_domain(FORUM_DOMAINS),
            any_host_prefix(FORUM_HOST_PREFIXES),
            any_path(FORUM_PATH_MARKERS),
        ),
        SourceKind.FORUM_QNA,
    ),
    Rule(
        "blog_article",
        either(
            any_domain(ARTICLE_DOMAINS),
            any_host_prefix(ARTICLE_HOST_PREFIXES),
            any_path(ARTICLE_PATH_MARKERS),
        ),
        SourceKind.BLOG_ARTICLE,
    ),
    Rule(
        "job",
        either(any_domain(JOB_DOMAINS), any_path(JOB_PATH_MARKERS), any_title(JOB_TITLE_MARKERS)),
        SourceKind.JOB,
    ),
    Rule(
        "tender",
        either(
            any_domain(TENDER_DOMAINS),
            any_path(TENDER_PATH_MARKERS),
            any_title(TENDER_TITLE_MARKERS),
        ),
        SourceKind.TENDER,
    ),
    Rule("social_post", any_domain(SOCIAL_DOMAINS), SourceKind.SOCIAL_POST),
    Rule(
        "directory",
        either(
            any_domain(DIRECTORY_DOMAINS),
            any_path(DIRECTORY_PATH_MARKERS),
            any_title(DIRECTORY_TITLE_MARKERS),
        ),
        SourceKind.DIRECTORY,
    ),
    Rule("company_page", _is_company_page, SourceKind.COMPANY_PAGE),
)


def detect_source_kind(url: str, title: str = "", snippet: str = "") -> SourceKind:
    """Detect the kind of page a URL points to."""
    kind, _ = describe_kind_rule(url, title, snippet)
    return kind


def blocked_reason(url: str) -> Optional[RejectReason]:
    """Return why a URL is blocked, or None if it is not."""
    features = url_features(url)
    if any(host_matches(features.host, domain) for domain in BLOCKED_DOMAINS):
        return RejectReason.BLOCKED_DOMAIN
    if features.host.startswith(BLOCKED_HOST_PREFIXES):
        return RejectReason.BLOCKED_DOCS_SUPPORT
    for pattern, reason in _BLOCKED_PATH_PATTERNS:
        if pattern.search(features.path):
            return reason
    return None


NON_LEAD_KIND_REASONS = {
    SourceKind.DICTIONARY: RejectReason.SOURCE_KIND_DICTIONARY,
    SourceKind.FORUM_QNA: RejectReason.SOURCE_KIND_FORUM,
    SourceKind.BLOG_ARTICLE: RejectReason.SOURCE_KIND_ARTICLE,
    SourceKind.OTHER: RejectReason.SOURCE_KIND_OTHER,
}


def source_kind_rejection(kind: SourceKind, has_intent_marker: bool) -> Optional[RejectReason]:
    """Reason to drop a non-lead-like kind, unless explicit intent is present."""
    if has_intent_marker:
        return None
    return NON_LEAD_KIND_REASONS.get(kind)


def describe_kind_rule(url: str, title: str = "", snippet: str = "") -> Tuple[SourceKind, str]:
    """Return the detected kind and the name of the rule that decided it."""
    return resolve_first(SOURCE_KIND_RULES, url_features(url, title, snippet), SourceKind.OTHER)
