# errors.py
"""Exception hierarchy and rejection reasons for Lead Radar.

Provider failures are exceptions and are always recovered inside the
pipeline. Filtering outcomes (geo, source kind, thresholds, duplicates)
are expected results, so they are modelled as ``RejectReason`` values
and counted instead of raised.
"""

from enum import Enum
from typing import Optional


class LeadRadarError(Exception):
    """Base exception for Lead Radar errors."""

    pass


class ProviderError(LeadRadarError):
    """Base exception for failures of an external provider call.

    Attributes:
        provider: Name of the provider that failed.
        code: Machine-readable error code.
    """

    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider: str = "",
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.code = code or self.default_code


class ProviderTimeout(ProviderError):
    """Raised when a provider call does not finish within its time box."""

    default_code = "PROVIDER_TIMEOUT"


class ProviderUnavailable(ProviderError):
    """Raised when a provider is not configured or refuses service."""

    default_code = "SEARCH_NOT_AVAILABLE"


class MalformedProviderResponse(ProviderError):
    """Raised when a provider answers with data that breaks its contract."""

    default_code = "MALFORMED_RESPONSE"


class RejectReason(str, Enum):
    """Reasons a search result or candidate is filtered out."""

    INVALID_URL = "invalid_url"
    SITE_MISMATCH = "site_mismatch"
    BLOCKED_DOMAIN = "blocked_domain"
    BLOCKED_DOCS_SUPPORT = "blocked_docs_support"
    BLOCKED_AUTH = "blocked_auth"
    BLOCKED_LEGAL = "blocked_legal"
    BLOCKED_MEDIA_FILE = "blocked_media_file"
    EXCLUDED_BY_REQUEST = "excluded_by_request"
    SOURCE_KIND_DICTIONARY = "source_kind_dictionary"
    SOURCE_KIND_FORUM = "source_kind_forum_qna"
    SOURCE_KIND_ARTICLE = "source_kind_blog_article"
    SOURCE_KIND_OTHER = "source_kind_other"
    GEO_MISMATCH = "geo_mismatch"
    DUPLICATE_URL = "duplicate_url"
    SOURCE_KIND_DROPPED = "classified_drop_source_kind"
    VENDOR_IN_BUYER_RUN = "classified_drop_vendor"
    RELEVANCE_BELOW_THRESHOLD = "relevance_below_threshold"
    DUPLICATE_LEAD = "duplicate_lead"
    PRIOR_RUN_DUPLICATE = "prior_run_duplicate"
