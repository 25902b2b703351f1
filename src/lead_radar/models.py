"""Pydantic models for Lead Radar data structures.

Stage-to-stage values (Intent, Candidate, ScoredCandidate, Lead) are frozen:
a stage never edits what it received, it builds a new value. Output models
dump with camelCase aliases (``model_dump(by_alias=True)``).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .text_utils import clamp_score, normalize_list, normalize_whitespace


class RunMode(str, Enum):
    """Enumeration of pipeline run modes."""

    QUICK = "quick"
    DEEP = "deep"
    CONTINUE = "continue"
    REFRESH = "refresh"


class GeoScope(str, Enum):
    """Enumeration of geographic targeting policies."""

    CIS = "cis"
    GLOBAL = "global"
    CUSTOM = "custom"


class Language(str, Enum):
    """Enumeration of detected text languages."""

    RU = "ru"
    EN = "en"
    MIXED = "mixed"


class DedupeMode(str, Enum):
    """Enumeration of dedupe key strategies."""

    URL = "url"
    THREAD = "thread"
    TEXT_FINGERPRINT = "text_fingerprint"
    MIXED = "mixed"


class RunTarget(str, Enum):
    """Who the run is looking for."""

    BUYERS = "buyers"
    COMPETITORS = "competitors"
    MIXED = "mixed"


class SourceKind(str, Enum):
    """Enumeration of detected page kinds."""

    DICTIONARY = "dictionary"
    FORUM_QNA = "forum/qna"
    BLOG_ARTICLE = "blog/article"
    JOB = "job"
    TENDER = "tender"
    SOCIAL_POST = "social-post"
    DIRECTORY = "directory"
    COMPANY_PAGE = "company-page"
    OTHER = "other"


class EntityRole(str, Enum):
    """Who published a candidate page."""

    BUYER = "buyer"
    VENDOR = "vendor"
    MEDIA = "media"
    DIRECTORY = "directory"
    OTHER = "other"


class LeadType(str, Enum):
    """Terminal classification states."""

    HOT = "Hot"
    WARM = "Warm"
    DROP = "Drop"


class StatusCode(str, Enum):
    """Enumerated pipeline status codes."""

    OK = "OK"
    NO_RELEVANT_RESULTS = "NO_RELEVANT_RESULTS"
    SEARCH_NOT_AVAILABLE = "SEARCH_NOT_AVAILABLE"
    NO_WEB_SEARCH_CONFIGURED = "NO_WEB_SEARCH_CONFIGURED"
    RANK_PROVIDED_LIST = "RANK_PROVIDED_LIST"


class LeadRadarModel(BaseModel):
    """Base model: immutable, camelCase aliases, accepts snake_case names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> Dict[str, Any]:
        """Dump to a JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# ==============================================================================
# Intent
# ==============================================================================


class Offer(LeadRadarModel):
    """What the business sells."""

    product_or_service: str = Field(default="", description="Main offer phrase")
    keywords: List[str] = Field(default_factory=list)
    synonyms: List[str] = Field(default_factory=list)

    @field_validator("product_or_service")
    @classmethod
    def normalize_offer(cls, v: str) -> str:
        """Collapse whitespace, lowercase and cap the offer phrase."""
        return normalize_whitespace(v).lower()[:120]

    @field_validator("keywords", "synonyms", mode="before")
    @classmethod
    def normalize_lists(cls, v: Any) -> List[str]:
        """Deduplicate, lowercase and cap list values."""
        return normalize_list(v)


class ICP(LeadRadarModel):
    """Ideal Customer Profile."""

    geo: List[str] = Field(default_factory=list, description="Countries/regions")
    company_size: str = Field(default="")
    industries: List[str] = Field(default_factory=list)
    roles: List[str] = Field(default_factory=list)
    geo_scope: GeoScope = Field(default=GeoScope.GLOBAL)

    @field_validator("geo", "industries", "roles", mode="before")
    @classmethod
    def normalize_lists(cls, v: Any) -> List[str]:
        """Deduplicate, lowercase and cap list values."""
        return normalize_list(v)


class Constraints(LeadRadarModel):
    """Language and must/must-not constraints."""

    language: Language = Field(default=Language.MIXED)
    must_have: List[str] = Field(default_factory=list)
    must_not_have: List[str] = Field(default_factory=list)

    @field_validator("must_have", "must_not_have", mode="before")
    @classmethod
    def normalize_lists(cls, v: Any) -> List[str]:
        """Deduplicate, lowercase and cap list values."""
        return normalize_list(v)


class Lexicon(LeadRadarModel):
    """Per-language phrase lists."""

    ru: List[str] = Field(default_factory=list)
    en: List[str] = Field(default_factory=list)

    @field_validator("ru", "en", mode="before")
    @classmethod
    def normalize_lists(cls, v: Any) -> List[str]:
        """Deduplicate, lowercase and cap list values."""
        return normalize_list(v, max_items=32)

    def for_language(self, language: Language) -> List[str]:
        """Return phrases for a language; mixed returns both lists."""
        if language == Language.RU:
            return list(self.ru)
        if language == Language.EN:
            return list(self.en)
        return normalize_list(list(self.ru) + list(self.en), max_items=64)

    def all_phrases(self) -> List[str]:
        """Return every phrase of both languages."""
        return self.for_language(Language.MIXED)


class Intent(LeadRadarModel):
    """Structured description of what is sold and to whom."""

    task_text: str = Field(default="")
    offer: Offer = Field(default_factory=Offer)
    icp: ICP = Field(default_factory=ICP)
    constraints: Constraints = Field(default_factory=Constraints)
    buying_signal_lexicon: Lexicon = Field(default_factory=Lexicon)
    negative_lexicon: Lexicon = Field(default_factory=Lexicon)
    assumptions_applied: List[str] = Field(default_factory=list)

    def offer_terms(self) -> List[str]:
        """Offer phrase, keywords and synonyms, deduplicated in that order."""
        return normalize_list(
            [self.offer.product_or_service]
            + list(self.offer.keywords)
            + list(self.offer.synonyms),
            max_items=32,
        )

    def with_geo_scope(
        self,
        geo_scope: GeoScope,
        geo: Optional[List[str]] = None,
    ) -> "Intent":
        """Return a copy with an enriched geo scope (the one allowed change)."""
        icp_update: Dict[str, Any] = {"geo_scope": geo_scope}
        if geo:
            icp_update["geo"] = normalize_list(geo)
        return self.model_copy(
            update={"icp": self.icp.model_copy(update=icp_update)}
        )


class IntentExtraction(LeadRadarModel):
    """Intent plus how it was produced."""

    intent: Intent
    used_fallback: bool = Field(default=False)
    warning: Optional[str] = Field(default=None)


# ==============================================================================
# Geo and search plan
# ==============================================================================


class GeoProfile(LeadRadarModel):
    """Geo markers and qualifiers derived once per run."""

    scope: GeoScope
    markers: List[str] = Field(default_factory=list)
    tld_allowlist: Optional[List[str]] = Field(default=None)
    query_clause: str = Field(default="")
    terms: List[str] = Field(default_factory=list)


class GeoFit(LeadRadarModel):
    """Result of a geo fit check; ``allowed=None`` means undecided."""

    allowed: Optional[bool]
    reason: str = Field(default="")


class SearchQuery(LeadRadarModel):
    """A query string with its template provenance."""

    text: str
    template: str = Field(default="")


class SearchPlan(LeadRadarModel):
    """Bounded, deduplicated list of queries."""

    queries: List[SearchQuery] = Field(default_factory=list)
    min_query_count: int = Field(default=1, ge=1)
    max_query_count: int = Field(default=1, ge=1)

    @property
    def texts(self) -> List[str]:
        """Query strings in plan order."""
        return [q.text for q in self.queries]


class ModeProfile(LeadRadarModel):
    """Budgets and timeouts for one run mode."""

    search_timeout: float
    intent_timeout: float
    llm_batch_timeout: float
    fetch_timeout: float
    max_web_requests: int
    fetch_budget: int
    results_per_query: int
    min_query_count: int
    max_query_count: int
    target_count: int


# ==============================================================================
# Provider contracts
# ==============================================================================


class SearchRequest(LeadRadarModel):
    """Arguments of one web search call."""

    query: str
    limit: int = Field(default=10, ge=1, le=50)
    geo: str = Field(default="")
    source: str = Field(default="google")


class SearchResultItem(LeadRadarModel):
    """One raw search result."""

    url: str = Field(default="")
    title: str = Field(default="")
    snippet: str = Field(default="")
    rank: int = Field(default=0)


class SearchResponse(LeadRadarModel):
    """Result of one web search call."""

    ok: bool = Field(default=True)
    results: List[SearchResultItem] = Field(default_factory=list)
    provider: str = Field(default="")
    duration_ms: int = Field(default=0)
    error_code: Optional[str] = Field(default=None)
    error_message: str = Field(default="")


class FetchedPage(LeadRadarModel):
    """Result of one page fetch; ``blocked`` pages carry no content."""

    url: str
    title: str = Field(default="")
    text: str = Field(default="")
    html: str = Field(default="")
    blocked: bool = Field(default=False)


class GenerationResult(LeadRadarModel):
    """Structured output of a text-generation call."""

    data: Dict[str, Any] = Field(default_factory=dict)
    usage_tokens: int = Field(default=0)


# ==============================================================================
# Candidates and leads
# ==============================================================================


class ProofItem(LeadRadarModel):
    """A stored evidence fragment a lead's claims trace back to."""

    url: str
    source_type: str = Field(default="generic")
    signal_type: str = Field(default="snippet")
    signal_value: str = Field(default="")
    evidence_snippet: str = Field(default="")


class Candidate(LeadRadarModel):
    """A search result that survived URL, source-kind and geo filtering."""

    candidate_id: str
    url: str
    title: str = Field(default="")
    snippet: str = Field(default="")
    source_kind: SourceKind = Field(default=SourceKind.OTHER)
    provider: str = Field(default="")
    query_index: int = Field(default=-1)
    result_index: int = Field(default=-1)
    page_text: Optional[str] = Field(default=None)
    merged_proofs: List[ProofItem] = Field(default_factory=list)
    proof_refs: List[int] = Field(default_factory=list, description="Indices into the run's proof ledger")
    geo_allowed: Optional[bool] = Field(default=None, description="None means undecided")

    @property
    def text(self) -> str:
        """All known text of the candidate."""
        parts = [self.title, self.snippet, self.page_text or ""]
        return " ".join(p for p in parts if p)

    @property
    def is_enriched(self) -> bool:
        """Whether full page text was fetched."""
        return self.page_text is not None


class CandidateScore(LeadRadarModel):
    """Scores for one candidate before classification."""

    candidate_id: str
    relevance_score: int = Field(default=0, ge=0, le=100)
    intent_score: int = Field(default=0, ge=0, le=100)
    entity_role: EntityRole = Field(default=EntityRole.OTHER)
    has_buying_signal: bool = Field(default=False)
    reason: str = Field(default="")
    evidence: str = Field(default="")
    contact_hint: str = Field(default="")
    scored_by: str = Field(default="heuristic")

    @field_validator("relevance_score", "intent_score", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        """Clamp scores into [0, 100]."""
        return clamp_score(v)


class LLMScore(LeadRadarModel):
    """Partial scores returned by the text-generation provider.

    Every field is optional; only well-typed values are kept.
    """

    candidate_id: str
    relevance_score: Optional[int] = Field(default=None)
    intent_score: Optional[int] = Field(default=None)
    entity_role: Optional[EntityRole] = Field(default=None)
    has_buying_signal: Optional[bool] = Field(default=None)
    reason: Optional[str] = Field(default=None)
    contact_hint: Optional[str] = Field(default=None)


class ScoredCandidate(LeadRadarModel):
    """Scored and classified candidate."""

    candidate_id: str
    relevance_score: int = Field(default=0, ge=0, le=100)
    intent_score: int = Field(default=0, ge=0, le=100)
    entity_role: EntityRole = Field(default=EntityRole.OTHER)
    source_type: SourceKind = Field(default=SourceKind.OTHER)
    has_buying_signal: bool = Field(default=False)
    lead_type: LeadType = Field(default=LeadType.DROP)
    reason: str = Field(default="")
    evidence: str = Field(default="")
    contact_hint: str = Field(default="")
    rule: str = Field(default="", description="Name of the rule that decided lead_type")
    notes: List[str] = Field(default_factory=list)


class Lead(LeadRadarModel):
    """An accepted lead; exists only within one response."""

    candidate_id: str
    title: str
    url: str
    source: str = Field(default="", description="Domain of the lead URL")
    company: str = Field(default="")
    source_type: SourceKind = Field(default=SourceKind.OTHER)
    entity_role: EntityRole = Field(default=EntityRole.OTHER)
    relevance_score: int = Field(default=0)
    intent_score: int = Field(default=0)
    has_buying_signal: bool = Field(default=False)
    confidence: int = Field(default=0, ge=0, le=100)
    lead_type: LeadType = Field(default=LeadType.WARM)
    why_match: str = Field(default="")
    evidence: str = Field(default="")
    contact_hint: str = Field(default="")
    dedupe_key: str = Field(default="")
    proof_refs: List[int] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


# ==============================================================================
# Request options
# ==============================================================================


def _coerce_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


class RunOptions(LeadRadarModel):
    """Per-request options; unknown values fall back to defaults."""

    mode: RunMode = Field(default=RunMode.DEEP)
    max_web_requests: Optional[int] = Field(default=None)
    target_count: Optional[int] = Field(default=None)
    geo_scope: Optional[GeoScope] = Field(default=None)
    geo: List[str] = Field(default_factory=list)
    dedupe_by: DedupeMode = Field(default=DedupeMode.MIXED)
    target: RunTarget = Field(default=RunTarget.BUYERS)
    exclude_domains: List[str] = Field(default_factory=list)
    exclude_urls: List[str] = Field(default_factory=list)
    use_llm: bool = Field(default=True)

    @field_validator("mode", mode="before")
    @classmethod
    def coerce_mode(cls, v: Any) -> RunMode:
        """Unknown modes become deep."""
        return _coerce_enum(RunMode, v, RunMode.DEEP)

    @field_validator("dedupe_by", mode="before")
    @classmethod
    def coerce_dedupe(cls, v: Any) -> DedupeMode:
        """Unknown dedupe modes become mixed."""
        return _coerce_enum(DedupeMode, v, DedupeMode.MIXED)

    @field_validator("target", mode="before")
    @classmethod
    def coerce_target(cls, v: Any) -> RunTarget:
        """Unknown targets become buyers."""
        return _coerce_enum(RunTarget, v, RunTarget.BUYERS)

    @field_validator("geo_scope", mode="before")
    @classmethod
    def coerce_geo_scope(cls, v: Any) -> Optional[GeoScope]:
        """Unknown geo scopes are ignored."""
        if v is None or v == "":
            return None
        return _coerce_enum(GeoScope, v, None)

    @field_validator("max_web_requests", "target_count", mode="before")
    @classmethod
    def positive_or_none(cls, v: Any) -> Optional[int]:
        """Keep positive numbers only."""
        try:
            number = int(round(float(v)))
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None

    @field_validator("geo", mode="before")
    @classmethod
    def normalize_geo(cls, v: Any) -> List[str]:
        """Deduplicate, lowercase and cap list values."""
        return normalize_list(v)

    @field_validator("exclude_domains", "exclude_urls", mode="before")
    @classmethod
    def normalize_exclusions(cls, v: Any) -> List[str]:
        """Keep non-empty strings."""
        if not isinstance(v, (list, tuple)):
            return []
        return [str(item).strip() for item in v if isinstance(item, str) and item.strip()]

    @property
    def buyer_only(self) -> bool:
        """Whether vendors must be dropped."""
        return self.target == RunTarget.BUYERS

    @property
    def competitor_scan(self) -> bool:
        """Whether the run looks for vendors/competitors."""
        return self.target == RunTarget.COMPETITORS


class ClassificationThresholds(LeadRadarModel):
    """Named, overridable classification thresholds (0-100)."""

    drop: int = Field(default=70, ge=0, le=100)
    relevance: int = Field(default=75, ge=0, le=100)
    hot: int = Field(default=80, ge=0, le=100)
    hot_intent: int = Field(default=70, ge=0, le=100)


# ==============================================================================
# Output
# ==============================================================================


class SearchPlanMeta(LeadRadarModel):
    """Queries actually sent (or planned) in this run."""

    queries_used: List[str] = Field(default_factory=list)


class Rejection(LeadRadarModel):
    """A filtered-out URL with its reason."""

    url: str
    reason: str
    stage: str = Field(default="")


class SearchDebug(LeadRadarModel):
    """Filtering diagnostics."""

    geo_scope: GeoScope = Field(default=GeoScope.GLOBAL)
    filtered_reasons: Dict[str, int] = Field(default_factory=dict)
    negative_keywords: List[str] = Field(default_factory=list)
    rejected_sample: List[Rejection] = Field(default_factory=list)


class WebStats(LeadRadarModel):
    """Counters of external calls."""

    search_calls: int = Field(default=0)
    fetch_calls: int = Field(default=0)
    llm_calls: int = Field(default=0)
    timeouts: int = Field(default=0)
    errors: int = Field(default=0)
    duration_ms: int = Field(default=0)


class BudgetMeta(LeadRadarModel):
    """Requested versus applied budgets."""

    max_web_requests_requested: Optional[int] = Field(default=None)
    max_web_requests_applied: int = Field(default=0)
    fetch_budget_applied: int = Field(default=0)
    target_count_applied: int = Field(default=0)


class KeyDiff(LeadRadarModel):
    """Dedupe-key diff against a prior run."""

    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)


class FallbackSuggestion(LeadRadarModel):
    """Deterministic ICP-based suggestion when no leads survive."""

    title: str
    lead_type: LeadType = Field(default=LeadType.WARM)
    industry: str = Field(default="")
    role: str = Field(default="")
    geo: str = Field(default="")
    search_query: str = Field(default="")
    why_match: str = Field(default="")


class PipelineMeta(LeadRadarModel):
    """Diagnostics attached to a pipeline result."""

    status_code: StatusCode = Field(default=StatusCode.OK)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    run_id: str = Field(default="")
    mode: RunMode = Field(default=RunMode.DEEP)
    search_plan: SearchPlanMeta = Field(default_factory=SearchPlanMeta)
    search_debug: SearchDebug = Field(default_factory=SearchDebug)
    web_stats: WebStats = Field(default_factory=WebStats)
    budget: BudgetMeta = Field(default_factory=BudgetMeta)
    proof_items: List[ProofItem] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    fallback_suggestions: List[FallbackSuggestion] = Field(default_factory=list)
    diff: Optional[KeyDiff] = Field(default=None)
    intent: Optional[Intent] = Field(default=None)


class PipelineResult(LeadRadarModel):
    """Ranked leads plus diagnostics."""

    leads: List[Lead] = Field(default_factory=list)
    meta: PipelineMeta = Field(default_factory=PipelineMeta)

    def dedupe_keys(self) -> List[str]:
        """Dedupe keys of all leads, in order."""
        return [lead.dedupe_key for lead in self.leads if lead.dedupe_key]

    def is_empty(self) -> bool:
        """Check if the result has no leads."""
        return len(self.leads) == 0
