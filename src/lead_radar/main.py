# main.py
"""Lead Radar Main Orchestrator.

This module provides the main entry point for the Lead Radar pipeline.
It orchestrates one prospecting run:
    1. Extract a structured Intent from the task text
    2. Resolve the Geo Profile
    3. Build the search plan
    4. Execute searches and filter candidates (or screen a provided list)
    5. Enrich a bounded subset of candidates with page text and proofs
    6. Score candidates (heuristics plus optional batched LLM)
    7. Classify Hot/Warm/Drop
    8. Deduplicate within the run and against a prior run
    9. Rank, truncate and attach diagnostics
"""

import json
import sys
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from .assembler import OutputAssembler, RunDiagnostics, build_lead
from .classifier import LeadClassifier, thresholds_from_config
from .config import config
from .dedup import Deduplicator, diff_keys
from .enricher import CandidateEnricher, ProofLedger
from .geo import resolve_geo_profile
from .intent_extractor import IntentExtractor
from .llm_client import LLMClient
from .logging_utils import LogContext, get_logger, setup_logging
from .models import (
    BudgetMeta,
    Candidate,
    ClassificationThresholds,
    KeyDiff,
    Lead,
    ModeProfile,
    PipelineResult,
    RunMode,
    RunOptions,
    SearchResultItem,
    StatusCode,
)
from .providers import build_search_provider
from .providers.http_fetcher import HttpPageFetcher
from .reference_data import MODE_PROFILES, REFERENCE_DATA_VERSION
from .scorer import Scorer, build_negative_keywords
from .search_executor import CandidateFilter, SearchExecutor
from .search_plan import SearchPlanBuilder

PROVIDED_LIST_SOURCE = "provided"


class LeadRadarPipeline:
    """Main orchestrator for the Lead Radar prospecting pipeline.

    External collaborators are injected or built lazily from configuration:
    a text-generation provider, a web search provider and a page fetcher.
    Any of them may be missing; the pipeline degrades instead of failing.

    Attributes:
        thresholds: Classification thresholds used by every run.
    """

    def __init__(
        self,
        generator: Optional[Any] = None,
        search_provider: Optional[Any] = None,
        fetcher: Optional[Any] = None,
        thresholds: Optional[ClassificationThresholds] = None,
    ):
        """Initialize the Lead Radar pipeline.

        Args:
            generator: Optional provider with ``generate(prompt, schema, options)``.
            search_provider: Optional provider with ``search(SearchRequest)``.
            fetcher: Optional provider with ``fetch(url, timeout)``.
            thresholds: Optional classification thresholds override.
        """
        self.logger = get_logger(__name__)

        self._generator = generator
        self._search_provider = search_provider
        self._fetcher = fetcher
        self.thresholds = thresholds or thresholds_from_config()

        # Track ownership for cleanup
        self._owns_generator = generator is None
        self._owns_search_provider = search_provider is None
        self._owns_fetcher = fetcher is None
        self._resolved: Set[str] = set()

    @property
    def generator(self) -> Optional[Any]:
        """Get or create the text-generation client, None if not configured."""
        if self._generator is None and "generator" not in self._resolved:
            self._resolved.add("generator")
            if config.llm_configured():
                self._generator = LLMClient()
        return self._generator

    @property
    def search_provider(self) -> Optional[Any]:
        """Get or create the web search provider, None if not configured."""
        if self._search_provider is None and "search" not in self._resolved:
            self._resolved.add("search")
            self._search_provider = build_search_provider(config)
        return self._search_provider

    @property
    def fetcher(self) -> Any:
        """Get or create the page fetcher."""
        if self._fetcher is None:
            self._fetcher = HttpPageFetcher(user_agent=config.FETCH_USER_AGENT)
        return self._fetcher

    def run(
        self,
        task_text: str,
        options: Optional[Union[RunOptions, Dict[str, Any]]] = None,
        previous: Optional[Union[PipelineResult, Dict[str, Any]]] = None,
        provided_results: Optional[Iterable[Union[SearchResultItem, Dict[str, Any]]]] = None,
    ) -> PipelineResult:
        """Execute one prospecting run.

        Args:
            task_text: What the business sells and whom it wants to reach.
            options: Run options (a RunOptions or its camelCase dict form).
            previous: Output of a prior run, used by continue/refresh modes.
            provided_results: Caller-supplied search results; when given,
                search is skipped and the list is ranked instead.

        Returns:
            PipelineResult with ranked leads and diagnostics. Provider
            failures never raise; they surface through ``meta``.
        """
        options = _coerce_options(options)
        previous = _coerce_previous(previous)
        run_id = uuid.uuid4().hex[:12]

        with LogContext(run_id=run_id, mode=options.mode.value):
            self.logger.info(
                "Starting Lead Radar run",
                extra={"target": options.target.value, "reference_data": REFERENCE_DATA_VERSION},
            )
            result = self._run(task_text, options, previous, provided_results, run_id)
            self.logger.info(
                "Run completed",
                extra={
                    "status_code": result.meta.status_code.value,
                    "leads": len(result.leads),
                    "duration_ms": result.meta.web_stats.duration_ms,
                },
            )
            if result.is_empty():
                self.logger.warning(
                    "Run produced no leads",
                    extra={"status_code": result.meta.status_code.value, "warnings": list(result.meta.warnings)},
                )
            return result

    def _run(
        self,
        task_text: str,
        options: RunOptions,
        previous: Optional[PipelineResult],
        provided_results: Optional[Iterable[Any]],
        run_id: str,
    ) -> PipelineResult:
        mode_profile: ModeProfile = MODE_PROFILES[options.mode]
        diagnostics = RunDiagnostics(run_id=run_id, mode=options.mode)
        generator = self.generator if options.use_llm else None

        prior_keys: List[str] = []
        prior_queries: List[str] = []
        target_count = options.target_count or mode_profile.target_count
        if previous is not None and options.mode in (RunMode.CONTINUE, RunMode.REFRESH):
            prior_keys = previous.dedupe_keys()
            if options.mode == RunMode.CONTINUE:
                prior_queries = list(previous.meta.search_plan.queries_used)
                target_count = max(1, target_count - len(previous.leads))
                options = options.model_copy(update={
                    "exclude_urls": list(options.exclude_urls) + [lead.url for lead in previous.leads],
                })
        elif options.mode in (RunMode.CONTINUE, RunMode.REFRESH):
            diagnostics.limit("no_previous_run")

        # Intent and geo
        with LogContext(stage="intent"):
            extraction = IntentExtractor(generator).extract(task_text, options, timeout=mode_profile.intent_timeout)
        if generator is not None:
            diagnostics.llm_calls += 1
        if extraction.warning:
            diagnostics.warn(f"intent_fallback:{extraction.warning}")
        intent = extraction.intent

        geo_profile = resolve_geo_profile(intent)
        if geo_profile.scope != intent.icp.geo_scope:
            intent = intent.with_geo_scope(geo_profile.scope)

        plan = SearchPlanBuilder(intent, geo_profile, mode_profile, options.target).build(prior_queries)
        candidate_filter = CandidateFilter(geo_profile, options.exclude_domains, options.exclude_urls)

        # Search (or screen the provided list)
        with LogContext(stage="search"):
            candidates, status_code, search_budget = self._collect_candidates(
                plan, candidate_filter, mode_profile, options, target_count, provided_results, diagnostics,
            )

        # Enrichment
        if provided_results is not None:
            fetch_budget = mode_profile.fetch_budget
        else:
            fetch_budget = min(mode_profile.fetch_budget, max(0, search_budget - 1))
        diagnostics.budget = BudgetMeta(
            max_web_requests_requested=options.max_web_requests,
            max_web_requests_applied=search_budget,
            fetch_budget_applied=fetch_budget,
            target_count_applied=target_count,
        )

        ledger = ProofLedger()
        enricher = CandidateEnricher(
            self.fetcher if (candidates and fetch_budget > 0) else None,
            geo_profile,
            fetch_timeout=mode_profile.fetch_timeout,
            fetch_budget=fetch_budget,
        )
        with LogContext(stage="enrich"):
            enrichment = enricher.enrich(candidates, ledger)
        candidates = enrichment.candidates
        diagnostics.add_rejections(enrichment.rejections)
        diagnostics.fetch_calls += enrichment.fetch_calls
        diagnostics.timeouts += enrichment.timeouts
        diagnostics.errors += enrichment.errors

        # Scoring and classification
        negative_keywords = build_negative_keywords(intent, candidates, options)
        scorer = Scorer(
            None if config.LLM_SCORING_DISABLED else generator,
            batch_size=config.LLM_SCORING_BATCH_SIZE,
            batch_timeout=mode_profile.llm_batch_timeout,
        )
        with LogContext(stage="score"):
            scoring = scorer.score(candidates, intent, geo_profile, negative_keywords)
        diagnostics.llm_calls += scoring.llm_calls
        if scoring.llm_failures:
            diagnostics.warn("llm_scoring_fallback")
            diagnostics.limit("scored_by_heuristics_only" if scoring.llm_failures == scoring.llm_calls
                              else "partially_scored_by_heuristics")

        classifier = LeadClassifier(self.thresholds, options)
        with LogContext(stage="classify"):
            accepted, rejections = classifier.classify_batch(candidates, scoring.scores)
        diagnostics.add_rejections(rejections)

        # Dedupe
        by_id: Dict[str, Candidate] = {c.candidate_id: c for c in candidates}
        leads: List[Lead] = [build_lead(by_id[s.candidate_id], s, options.dedupe_by) for s in accepted]
        in_run = Deduplicator().dedupe(leads)
        diagnostics.add_rejections(in_run.rejections)

        diff: Optional[KeyDiff] = None
        if options.mode == RunMode.REFRESH and previous is not None:
            diff = diff_keys(prior_keys, [lead.dedupe_key for lead in in_run.leads])

        against_prior = Deduplicator(prior_keys).dedupe(in_run.leads)
        diagnostics.add_rejections(against_prior.rejections)

        return OutputAssembler(target_count).assemble(
            against_prior.leads,
            status_code,
            intent,
            geo_profile,
            negative_keywords,
            ledger.items,
            diagnostics,
            diff=diff,
        )

    def _collect_candidates(
        self,
        plan,
        candidate_filter: CandidateFilter,
        mode_profile: ModeProfile,
        options: RunOptions,
        target_count: int,
        provided_results: Optional[Iterable[Any]],
        diagnostics: RunDiagnostics,
    ):
        """Return (candidates, status code, applied search budget)."""
        if provided_results is not None:
            items = [_coerce_item(item) for item in provided_results]
            candidates, rejections = candidate_filter.screen_all(items, provider=PROVIDED_LIST_SOURCE)
            diagnostics.add_rejections(rejections)
            self.logger.info(
                "Ranking provided result list",
                extra={"items": len(items), "candidates": len(candidates)},
            )
            return candidates, StatusCode.RANK_PROVIDED_LIST, 0

        provider = self.search_provider
        if provider is None:
            diagnostics.queries_used = plan.texts
            diagnostics.limit("web_search_not_configured")
            self.logger.warning("No web search provider configured")
            return [], StatusCode.NO_WEB_SEARCH_CONFIGURED, 0

        executor = SearchExecutor(provider, candidate_filter, mode_profile, options)
        outcome = executor.run(plan, target_count)
        diagnostics.queries_used = outcome.queries_used
        diagnostics.add_rejections(outcome.rejections)
        diagnostics.search_calls += outcome.search_calls
        diagnostics.timeouts += outcome.timeouts
        diagnostics.errors += outcome.errors
        if outcome.budget_clamped:
            diagnostics.warn("budget_clamped")
        if outcome.stopped_early:
            diagnostics.limit("stopped_early_target_reached")

        if outcome.search_unavailable:
            diagnostics.limit(f"search_unavailable:{outcome.last_error_code or 'SEARCH_NOT_AVAILABLE'}")
            return outcome.candidates, StatusCode.SEARCH_NOT_AVAILABLE, outcome.budget_applied
        return outcome.candidates, StatusCode.OK, outcome.budget_applied

    def close(self) -> None:
        """Close owned providers and release resources."""
        if self._owns_generator and self._generator is not None:
            self._generator.close()

        if self._owns_search_provider and self._search_provider is not None:
            self._search_provider.close()

        if self._owns_fetcher and self._fetcher is not None:
            self._fetcher.close()

        self.logger.debug("Pipeline resources closed")

    def __enter__(self) -> "LeadRadarPipeline":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


def _coerce_options(options: Optional[Union[RunOptions, Dict[str, Any]]]) -> RunOptions:
    if isinstance(options, RunOptions):
        return options
    return RunOptions.model_validate(options or {})


def _coerce_previous(previous: Optional[Union[PipelineResult, Dict[str, Any]]]) -> Optional[PipelineResult]:
    if previous is None or isinstance(previous, PipelineResult):
        return previous
    return PipelineResult.model_validate(previous)


def _coerce_item(item: Union[SearchResultItem, Dict[str, Any]]) -> SearchResultItem:
    if isinstance(item, SearchResultItem):
        return item
    return SearchResultItem.model_validate(item)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for Lead Radar.

    Reads the task text from the arguments (or stdin), runs the pipeline
    and prints the result as JSON.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    argv = sys.argv[1:] if argv is None else argv
    logger = setup_logging(service_name="lead-radar")

    task_text = " ".join(argv).strip() or sys.stdin.read().strip()
    if not task_text:
        logger.error("No task text given")
        return 1

    logger.info(
        "Lead Radar starting",
        extra={
            "app_env": config.APP_ENV,
            "llm_provider": config.LLM_PROVIDER,
            "search_provider": config.SEARCH_PROVIDER,
        }
    )

    try:
        with LeadRadarPipeline() as pipeline:
            result = pipeline.run(task_text)
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0

    except Exception as e:
        logger.exception(f"Lead Radar failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
