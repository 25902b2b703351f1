# assembler.py
"""Output assembly: lead construction, ranking and run diagnostics."""

import re
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .logging_utils import get_logger
from .models import (
    BudgetMeta,
    Candidate,
    DedupeMode,
    FallbackSuggestion,
    GeoProfile,
    Intent,
    KeyDiff,
    Lead,
    LeadType,
    PipelineMeta,
    PipelineResult,
    ProofItem,
    Rejection,
    RunMode,
    ScoredCandidate,
    SearchDebug,
    SearchPlanMeta,
    StatusCode,
    WebStats,
)
from .dedup import dedupe_key
from .reference_data import MAX_FALLBACK_SUGGESTIONS, REJECTED_SAMPLE_SIZE
from .text_utils import clamp_score, domain_of, normalize_whitespace

RELEVANCE_WEIGHT = 0.55
INTENT_WEIGHT = 0.35
SIGNAL_BONUS = 10

_TITLE_SPLIT_RE = re.compile(r"\s+[|\-–—:]\s+")


def compute_confidence(scored: ScoredCandidate) -> int:
    """Blend relevance, intent and the buying signal into 0-100."""
    value = RELEVANCE_WEIGHT * scored.relevance_score + INTENT_WEIGHT * scored.intent_score
    if scored.has_buying_signal:
        value += SIGNAL_BONUS
    return clamp_score(value)


def company_name(title: str, url: str) -> str:
    """Best guess at who published the page."""
    parts = [p for p in _TITLE_SPLIT_RE.split(normalize_whitespace(title)) if p]
    if len(parts) > 1:
        return parts[-1][:80]
    return domain_of(url)


def build_lead(candidate: Candidate, scored: ScoredCandidate, mode: DedupeMode) -> Lead:
    """Combine a candidate and its classification into a Lead."""
    return Lead(
        candidate_id=candidate.candidate_id,
        title=candidate.title or domain_of(candidate.url),
        url=candidate.url,
        source=domain_of(candidate.url),
        company=company_name(candidate.title, candidate.url),
        source_type=scored.source_type,
        entity_role=scored.entity_role,
        relevance_score=scored.relevance_score,
        intent_score=scored.intent_score,
        has_buying_signal=scored.has_buying_signal,
        confidence=compute_confidence(scored),
        lead_type=scored.lead_type,
        why_match=scored.reason,
        evidence=scored.evidence,
        contact_hint=scored.contact_hint,
        dedupe_key=dedupe_key(candidate.url, scored.evidence or candidate.text, mode),
        proof_refs=list(candidate.proof_refs),
        notes=list(scored.notes),
    )


def rank_leads(leads: Iterable[Lead], target_count: int) -> List[Lead]:
    """Sort by confidence (stable for ties) and truncate to the target."""
    ordered = sorted(leads, key=lambda lead: lead.confidence, reverse=True)
    return ordered[: max(0, target_count)]


def fallback_suggestions(intent: Intent, geo_profile: GeoProfile) -> List[FallbackSuggestion]:
    """Deterministic Warm ICP segments used when no lead survives."""
    industries = list(intent.icp.industries) or [""]
    roles = list(intent.icp.roles) or [""]
    geo = geo_profile.query_clause or (intent.icp.geo[0] if intent.icp.geo else "")
    product = intent.offer.product_or_service
    count = min(MAX_FALLBACK_SUGGESTIONS, max(len(industries), len(roles)))

    suggestions = []
    for i in range(count):
        industry = industries[i % len(industries)]
        role = roles[i % len(roles)]
        query = normalize_whitespace(f"{role} {industry} {product} {geo}")
        suggestions.append(FallbackSuggestion(
            title=normalize_whitespace(f"{industry}: {role}").strip(": "),
            lead_type=LeadType.WARM,
            industry=industry,
            role=role,
            geo=geo,
            search_query=query,
            why_match=f"ICP segment for {product}" if product else "ICP segment",
        ))
    return suggestions


@dataclass
class RunDiagnostics:
    """Counters and notes collected while a run progresses."""

    run_id: str = ""
    mode: RunMode = RunMode.DEEP
    started_at: float = field(default_factory=time.time)
    queries_used: List[str] = field(default_factory=list)
    rejections: List[Rejection] = field(default_factory=list)
    limitations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    search_calls: int = 0
    fetch_calls: int = 0
    llm_calls: int = 0
    timeouts: int = 0
    errors: int = 0
    budget: BudgetMeta = field(default_factory=BudgetMeta)

    def add_rejections(self, rejections: Iterable[Rejection]) -> None:
        self.rejections.extend(rejections)

    def limit(self, note: str) -> None:
        if note not in self.limitations:
            self.limitations.append(note)

    def warn(self, note: str) -> None:
        if note not in self.warnings:
            self.warnings.append(note)

    def filtered_reasons(self) -> Dict[str, int]:
        return dict(Counter(r.reason for r in self.rejections))

    def rejected_sample(self) -> List[Rejection]:
        return self.rejections[:REJECTED_SAMPLE_SIZE]


class OutputAssembler:
    """Builds the final PipelineResult."""

    def __init__(self, target_count: int):
        self.logger = get_logger(__name__)
        self.target_count = target_count

    def assemble(
        self,
        leads: Sequence[Lead],
        status_code: StatusCode,
        intent: Optional[Intent],
        geo_profile: GeoProfile,
        negative_keywords: Sequence[str],
        proof_items: Sequence[ProofItem],
        diagnostics: RunDiagnostics,
        diff: Optional[KeyDiff] = None,
    ) -> PipelineResult:
        """Rank leads and attach diagnostics."""
        ranked = rank_leads(leads, self.target_count)
        if not ranked and status_code == StatusCode.OK:
            status_code = StatusCode.NO_RELEVANT_RESULTS
        if not ranked:
            diagnostics.limit("no_leads_after_filtering")

        suggestions = fallback_suggestions(intent, geo_profile) if (not ranked and intent) else []

        meta = PipelineMeta(
            status_code=status_code,
            run_id=diagnostics.run_id,
            mode=diagnostics.mode,
            search_plan=SearchPlanMeta(queries_used=list(diagnostics.queries_used)),
            search_debug=SearchDebug(
                geo_scope=geo_profile.scope,
                filtered_reasons=diagnostics.filtered_reasons(),
                negative_keywords=list(negative_keywords),
                rejected_sample=diagnostics.rejected_sample(),
            ),
            web_stats=WebStats(
                search_calls=diagnostics.search_calls,
                fetch_calls=diagnostics.fetch_calls,
                llm_calls=diagnostics.llm_calls,
                timeouts=diagnostics.timeouts,
                errors=diagnostics.errors,
                duration_ms=int((time.time() - diagnostics.started_at) * 1000),
            ),
            budget=diagnostics.budget,
            proof_items=list(proof_items),
            limitations=list(diagnostics.limitations),
            assumptions=list(intent.assumptions_applied) if intent else [],
            warnings=list(diagnostics.warnings),
            fallback_suggestions=suggestions,
            diff=diff,
            intent=intent,
        )

        self.logger.info(
            "Output assembled",
            extra={
                "status_code": status_code.value,
                "leads": len(ranked),
                "hot": sum(1 for lead in ranked if lead.lead_type == LeadType.HOT),
                "fallback_suggestions": len(suggestions),
            },
        )
        return PipelineResult(leads=ranked, meta=meta)
