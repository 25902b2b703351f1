# search_executor.py
"""Search execution and candidate filtering.

Queries are dispatched one by one, in plan order, to the configured search
provider under a per-call time box and an overall call budget. Every
result is normalized and screened; survivors become Candidates, everything
else becomes a counted Rejection.
"""

import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from .errors import ProviderError, ProviderTimeout, RejectReason
from .geo import evaluate_geo_fit, search_geo_hint
from .logging_utils import get_logger
from .models import (
    Candidate,
    GeoProfile,
    ModeProfile,
    Rejection,
    RunOptions,
    SearchPlan,
    SearchRequest,
    SearchResultItem,
)
from .reference_data import CANDIDATE_POOL_FACTOR, EXPLICIT_INTENT_PHRASES
from .rules import UrlFeatures, domain_listed
from .source_kinds import blocked_reason, describe_kind_rule, source_kind_rejection, url_features
from .text_utils import canonicalize_url, contains_any, host_matches, is_absolute_url, site_filter
from .timebox import call_with_timeout

EXPLICIT_INTENT_ALL = EXPLICIT_INTENT_PHRASES["ru"] + EXPLICIT_INTENT_PHRASES["en"]


@dataclass
class SearchOutcome:
    """What the executor produced for one run."""

    candidates: List[Candidate] = field(default_factory=list)
    rejections: List[Rejection] = field(default_factory=list)
    queries_used: List[str] = field(default_factory=list)
    search_calls: int = 0
    successful_calls: int = 0
    timeouts: int = 0
    errors: int = 0
    last_error_code: Optional[str] = None
    budget_requested: Optional[int] = None
    budget_applied: int = 0
    budget_clamped: bool = False
    stopped_early: bool = False
    duration_ms: int = 0

    @property
    def search_unavailable(self) -> bool:
        """Whether calls were made and none of them succeeded."""
        return self.search_calls > 0 and self.successful_calls == 0


class CandidateFilter:
    """Screens raw search results into Candidates.

    Keeps the set of canonical URLs already accepted in this run, so one
    instance must be used per run.
    """

    def __init__(
        self,
        geo_profile: GeoProfile,
        exclude_domains: Iterable[str] = (),
        exclude_urls: Iterable[str] = (),
    ):
        self.geo_profile = geo_profile
        self.exclude_domains = tuple(d.lower().strip().lstrip(".") for d in exclude_domains if d)
        self.exclude_urls: Set[str] = {canonicalize_url(u) for u in exclude_urls if u}
        self._seen: Set[str] = set()
        self.logger = get_logger(__name__)

    def screen(
        self,
        item: SearchResultItem,
        query: str = "",
        provider: str = "",
        query_index: int = -1,
        result_index: int = -1,
    ) -> Tuple[Optional[Candidate], Optional[Rejection]]:
        """Screen one result.

        Returns:
            (candidate, None) when accepted, (None, rejection) otherwise
        """
        raw_url = (item.url or "").strip()
        if not is_absolute_url(raw_url):
            return None, Rejection(url=raw_url, reason=RejectReason.INVALID_URL.value, stage="search")

        url = canonicalize_url(raw_url)

        def reject(reason: RejectReason) -> Tuple[None, Rejection]:
            return None, Rejection(url=url, reason=reason.value, stage="search")

        features = url_features(url)
        site = site_filter(query)
        if site and not domain_listed(UrlFeatures(host=features.host, path=features.path), (site,)):
            return reject(RejectReason.SITE_MISMATCH)

        if url in self.exclude_urls or any(host_matches(features.host, d) for d in self.exclude_domains):
            return reject(RejectReason.EXCLUDED_BY_REQUEST)

        blocked = blocked_reason(url)
        if blocked is not None:
            return reject(blocked)

        preview = f"{item.title} {item.snippet}"
        kind, kind_rule = describe_kind_rule(url, item.title, item.snippet)
        kind_reason = source_kind_rejection(kind, contains_any(preview, EXPLICIT_INTENT_ALL))
        if kind_reason is not None:
            self.logger.debug("Source kind rejected", extra={"url": url, "kind": kind.value, "kind_rule": kind_rule})
            return reject(kind_reason)

        fit = evaluate_geo_fit(self.geo_profile, url, preview)
        if fit.allowed is False:
            return reject(RejectReason.GEO_MISMATCH)

        if url in self._seen:
            return reject(RejectReason.DUPLICATE_URL)
        self._seen.add(url)

        candidate_id = f"q{query_index}r{result_index}" if query_index >= 0 else f"p{result_index}"
        return Candidate(
            candidate_id=candidate_id,
            url=url,
            title=item.title,
            snippet=item.snippet,
            source_kind=kind,
            provider=provider,
            query_index=query_index,
            result_index=result_index,
            geo_allowed=fit.allowed,
        ), None

    def screen_all(
        self,
        items: Iterable[SearchResultItem],
        query: str = "",
        provider: str = "",
        query_index: int = -1,
    ) -> Tuple[List[Candidate], List[Rejection]]:
        """Screen a list of results, keeping provider order."""
        candidates: List[Candidate] = []
        rejections: List[Rejection] = []
        for result_index, item in enumerate(items):
            candidate, rejection = self.screen(item, query, provider, query_index, result_index)
            if candidate is not None:
                candidates.append(candidate)
            else:
                rejections.append(rejection)
        return candidates, rejections


class SearchExecutor:
    """Runs a SearchPlan against a search provider.

    Attributes:
        provider: Object with ``search(SearchRequest) -> SearchResponse``
            and a ``name`` attribute
        mode_profile: Timeouts and budgets of the run mode
    """

    def __init__(
        self,
        provider,
        candidate_filter: CandidateFilter,
        mode_profile: ModeProfile,
        options: Optional[RunOptions] = None,
    ):
        self.logger = get_logger(__name__)
        self.provider = provider
        self.candidate_filter = candidate_filter
        self.mode_profile = mode_profile
        self.options = options or RunOptions()

    def resolve_budget(self, plan: SearchPlan) -> Tuple[Optional[int], int, bool]:
        """Return (requested, applied, clamped) search call budgets."""
        requested = self.options.max_web_requests
        wanted = requested if requested is not None else self.mode_profile.max_web_requests
        applied = max(1, min(wanted, len(plan.queries)))
        clamped = requested is not None and requested > len(plan.queries)
        return requested, applied, clamped

    def run(self, plan: SearchPlan, target_count: int) -> SearchOutcome:
        """Execute the plan.

        Stops when the call budget is spent or enough candidates exist
        (``target_count`` times the pool factor). Timeouts and provider
        errors are counted and the next query runs.
        """
        outcome = SearchOutcome()
        requested, applied, clamped = self.resolve_budget(plan)
        outcome.budget_requested = requested
        outcome.budget_applied = applied
        outcome.budget_clamped = clamped
        pool_target = max(1, target_count) * CANDIDATE_POOL_FACTOR
        provider_name = getattr(self.provider, "name", "search")
        geo_hint = search_geo_hint(self.candidate_filter.geo_profile)
        start_time = time.time()

        for query_index, query in enumerate(plan.queries[:applied]):
            if len(outcome.candidates) >= pool_target:
                outcome.stopped_early = True
                break

            outcome.search_calls += 1
            outcome.queries_used.append(query.text)
            request = SearchRequest(
                query=query.text,
                limit=self.mode_profile.results_per_query,
                geo=geo_hint,
            )
            try:
                response = call_with_timeout(
                    self.provider.search,
                    self.mode_profile.search_timeout,
                    request,
                    provider=provider_name,
                )
            except ProviderTimeout:
                outcome.timeouts += 1
                continue
            except ProviderError as e:
                outcome.errors += 1
                outcome.last_error_code = e.code
                self.logger.warning(
                    "Search provider error",
                    extra={"provider": provider_name, "error": str(e), "error_code": e.code},
                )
                continue
            except Exception as e:
                outcome.errors += 1
                outcome.last_error_code = "SEARCH_NOT_AVAILABLE"
                self.logger.error(
                    f"Search call failed: {e}",
                    extra={"provider": provider_name, "query_index": query_index},
                )
                continue

            if not response.ok:
                outcome.errors += 1
                outcome.last_error_code = response.error_code or "SEARCH_NOT_AVAILABLE"
                continue

            outcome.successful_calls += 1
            candidates, rejections = self.candidate_filter.screen_all(
                response.results,
                query=query.text,
                provider=response.provider or provider_name,
                query_index=query_index,
            )
            outcome.candidates.extend(candidates)
            outcome.rejections.extend(rejections)

        outcome.duration_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            "Search completed",
            extra={
                "search_calls": outcome.search_calls,
                "candidates": len(outcome.candidates),
                "rejected": len(outcome.rejections),
                "timeouts": outcome.timeouts,
                "errors": outcome.errors,
                "stopped_early": outcome.stopped_early,
            },
        )
        return outcome
