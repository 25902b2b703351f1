# search_plan.py
"""Search plan construction.

Expands an Intent into a bounded, deduplicated list of web search queries:
buying-signal phrases crossed with offer terms, per-source templates (job
boards, tenders, communities), competitor templates for vendor scans, then
industry/role and generic qualifiers until the minimum count is met.
"""

from itertools import zip_longest
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .logging_utils import get_logger
from .models import (
    GeoProfile,
    GeoScope,
    Intent,
    Language,
    ModeProfile,
    RunTarget,
    SearchPlan,
    SearchQuery,
)
from .reference_data import (
    COMPETITOR_TEMPLATES,
    GENERIC_QUALIFIERS,
    MAX_QUERY_LENGTH,
    PLAN_MIN_QUERY_CEILING,
    SOLUTION_SUFFIXES,
    SOURCE_TEMPLATES,
)
from .text_utils import find_phrases, normalize_text, normalize_whitespace

MAX_TERMS = 4
MAX_SIGNALS = 3


def _languages(language: Language) -> Tuple[str, ...]:
    if language == Language.RU:
        return ("ru",)
    if language == Language.EN:
        return ("en",)
    return ("ru", "en")


def _interleave(*buckets: Sequence[SearchQuery]) -> List[SearchQuery]:
    """Round-robin merge so truncation keeps every template family."""
    merged: List[SearchQuery] = []
    for group in zip_longest(*buckets):
        merged.extend(query for query in group if query is not None)
    return merged


class SearchPlanBuilder:
    """Builds a SearchPlan for one run.

    Attributes:
        intent: The run's Intent
        geo_profile: The run's GeoProfile
        min_query_count: Lower bound of the plan size
        max_query_count: Upper bound of the plan size
    """

    def __init__(
        self,
        intent: Intent,
        geo_profile: GeoProfile,
        mode_profile: ModeProfile,
        target: RunTarget = RunTarget.BUYERS,
    ):
        self.logger = get_logger(__name__)
        self.intent = intent
        self.geo_profile = geo_profile
        self.target = target
        self.min_query_count = max(1, min(mode_profile.min_query_count, PLAN_MIN_QUERY_CEILING))
        self.max_query_count = max(mode_profile.max_query_count, self.min_query_count)
        self.languages = _languages(intent.constraints.language)

    # ------------------------------------------------------------------
    # Term selection
    # ------------------------------------------------------------------

    def _terms(self) -> List[str]:
        return self.intent.offer_terms()[:MAX_TERMS]

    def _signals(self, lang: str) -> List[str]:
        lexicon = self.intent.buying_signal_lexicon.ru if lang == "ru" else self.intent.buying_signal_lexicon.en
        limit = MAX_SIGNALS if len(self.languages) == 1 else 2
        return list(lexicon[:limit])

    # ------------------------------------------------------------------
    # Query families
    # ------------------------------------------------------------------

    def _signal_queries(self, terms: List[str]) -> List[SearchQuery]:
        queries = []
        for lang in self.languages:
            for term in terms:
                for signal in self._signals(lang):
                    for suffix in SOLUTION_SUFFIXES[lang]:
                        text = " ".join(part for part in (signal, term, suffix) if part)
                        queries.append(SearchQuery(text=text, template=f"buyer_signal_{lang}"))
        return queries

    def _source_queries(self, terms: List[str]) -> List[SearchQuery]:
        queries = []
        for lang in self.languages:
            signals = self._signals(lang) or [""]
            for name, pattern in SOURCE_TEMPLATES[lang]:
                for term in terms[:2]:
                    text = pattern.format(signal=signals[0], term=term)
                    queries.append(SearchQuery(text=text, template=name))
        return queries

    def _competitor_queries(self, terms: List[str]) -> List[SearchQuery]:
        queries = []
        for lang in self.languages:
            for name, pattern in COMPETITOR_TEMPLATES[lang]:
                for term in terms[:2]:
                    queries.append(SearchQuery(text=pattern.format(term=term), template=name))
        return queries

    def _secondary_queries(self, terms: List[str]) -> List[SearchQuery]:
        qualifiers = list(self.intent.icp.industries) + list(self.intent.icp.roles)
        return [
            SearchQuery(text=f"{term} {qualifier}", template="icp_qualifier")
            for term in terms
            for qualifier in qualifiers
        ]

    def _generic_queries(self, terms: List[str]) -> List[SearchQuery]:
        lang = self.languages[0]
        anchors = terms or list(self.intent.icp.industries[:1])
        queries = [
            SearchQuery(text=f"{qualifier} {anchor}", template="generic_qualifier")
            for anchor in anchors
            for qualifier in GENERIC_QUALIFIERS[lang]
        ]
        # Qualifiers alone keep the minimum reachable for an empty Intent.
        queries.extend(
            SearchQuery(text=qualifier, template="generic_qualifier")
            for qualifier in GENERIC_QUALIFIERS[lang]
        )
        return queries

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def qualify(self, text: str) -> str:
        """Append the geo clause unless scope is global or a marker is present."""
        text = normalize_whitespace(text)
        if (
            self.geo_profile.scope != GeoScope.GLOBAL
            and self.geo_profile.query_clause
            and not find_phrases(text, self.geo_profile.markers)
        ):
            text = f"{text} {self.geo_profile.query_clause}"
        return text[:MAX_QUERY_LENGTH].strip()

    def _add(self, plan: List[SearchQuery], seen: Set[str], queries: Iterable[SearchQuery], limit: int) -> None:
        for query in queries:
            if len(plan) >= limit:
                return
            text = self.qualify(query.text)
            key = normalize_text(text)
            if not key or key in seen:
                continue
            seen.add(key)
            plan.append(SearchQuery(text=text, template=query.template))

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self, prior_queries: Optional[List[str]] = None) -> SearchPlan:
        """Build the plan.

        Args:
            prior_queries: Queries of a previous run to place first
                (continue mode)

        Returns:
            SearchPlan with ``min_query_count <= len(queries) <= max_query_count``
        """
        terms = self._terms()
        plan: List[SearchQuery] = []
        seen: Set[str] = set()

        if prior_queries:
            self._add(
                plan,
                seen,
                (SearchQuery(text=q, template="prior_run") for q in prior_queries if isinstance(q, str)),
                self.max_query_count,
            )

        buckets = []
        if self.target in (RunTarget.BUYERS, RunTarget.MIXED):
            buckets.append(self._signal_queries(terms))
            buckets.append(self._source_queries(terms))
        if self.target in (RunTarget.COMPETITORS, RunTarget.MIXED):
            buckets.append(self._competitor_queries(terms))
        self._add(plan, seen, _interleave(*buckets), self.max_query_count)

        if len(plan) < self.min_query_count:
            self._add(plan, seen, self._secondary_queries(terms), self.min_query_count)
        if len(plan) < self.min_query_count:
            self._add(plan, seen, self._generic_queries(terms), self.min_query_count)

        self.logger.info(
            "Search plan built",
            extra={
                "query_count": len(plan),
                "min_query_count": self.min_query_count,
                "max_query_count": self.max_query_count,
                "target": self.target.value,
            },
        )
        return SearchPlan(
            queries=plan,
            min_query_count=self.min_query_count,
            max_query_count=self.max_query_count,
        )
