# classifier.py
"""Lead classifier module: deterministic Hot/Warm/Drop decision table.

This module provides the LeadClassifier class which turns merged candidate
scores into ScoredCandidate objects. The decision is an ordered rule table
(first match wins) followed by two downgrade passes for Hot leads.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .config import config
from .errors import RejectReason
from .logging_utils import get_logger
from .models import (
    Candidate,
    CandidateScore,
    ClassificationThresholds,
    EntityRole,
    LeadType,
    Rejection,
    RunOptions,
    ScoredCandidate,
    SourceKind,
)
from .reference_data import HOT_ELIGIBLE_DOMAINS, HOT_INELIGIBLE_HOSTS
from .rules import Rule, UrlFeatures, domain_listed, resolve_first
from .source_kinds import url_features

DROPPED_SOURCE_KINDS = frozenset({
    SourceKind.DICTIONARY,
    SourceKind.FORUM_QNA,
    SourceKind.BLOG_ARTICLE,
})

HOT_SOURCE_KINDS = frozenset({
    SourceKind.TENDER,
    SourceKind.JOB,
    SourceKind.SOCIAL_POST,
    SourceKind.COMPANY_PAGE,
})

# Kinds that are Hot-eligible regardless of their domain
INHERENTLY_HOT_KINDS = frozenset({
    SourceKind.TENDER,
    SourceKind.JOB,
    SourceKind.SOCIAL_POST,
})

# Drop rules mapped to the rejection reason reported in diagnostics
DROP_REASONS: Dict[str, RejectReason] = {
    "non_lead_source": RejectReason.SOURCE_KIND_DROPPED,
    "vendor_in_buyer_run": RejectReason.VENDOR_IN_BUYER_RUN,
    "below_drop_threshold": RejectReason.RELEVANCE_BELOW_THRESHOLD,
    "default": RejectReason.RELEVANCE_BELOW_THRESHOLD,
}


@dataclass(frozen=True)
class ClassificationInput:
    """Everything the decision table looks at."""

    source_kind: SourceKind
    entity_role: EntityRole
    relevance_score: int
    intent_score: int
    has_buying_signal: bool
    buyer_only: bool
    hot_role: EntityRole


def build_rules(thresholds: ClassificationThresholds) -> Tuple[Rule, ...]:
    """Ordered classification rules for the given thresholds."""
    return (
        Rule(
            "non_lead_source",
            lambda c: c.source_kind in DROPPED_SOURCE_KINDS,
            LeadType.DROP,
        ),
        Rule(
            "vendor_in_buyer_run",
            lambda c: c.buyer_only and c.entity_role == EntityRole.VENDOR,
            LeadType.DROP,
        ),
        Rule(
            "below_drop_threshold",
            lambda c: c.relevance_score < thresholds.drop,
            LeadType.DROP,
        ),
        Rule(
            "hot",
            lambda c: (
                c.entity_role == c.hot_role
                and c.relevance_score >= thresholds.hot
                and c.intent_score >= thresholds.hot_intent
                and c.has_buying_signal
                and c.source_kind in HOT_SOURCE_KINDS
            ),
            LeadType.HOT,
        ),
        Rule(
            "warm",
            lambda c: c.relevance_score >= thresholds.relevance,
            LeadType.WARM,
        ),
    )


def hot_eligible_domain(url: str) -> bool:
    """Whether a company page URL sits on an own domain in a Hot-eligible zone."""
    features = url_features(url)
    subject = UrlFeatures(host=features.host, path=features.path)
    if domain_listed(subject, HOT_INELIGIBLE_HOSTS):
        return False
    return domain_listed(subject, HOT_ELIGIBLE_DOMAINS)


def thresholds_from_config() -> ClassificationThresholds:
    """Build thresholds from environment configuration."""
    return ClassificationThresholds(
        drop=config.LEAD_DROP_THRESHOLD,
        relevance=config.LEAD_RELEVANCE_THRESHOLD,
        hot=config.LEAD_HOT_THRESHOLD,
        hot_intent=config.LEAD_HOT_INTENT_THRESHOLD,
    )


class LeadClassifier:
    """Classifier for Hot/Warm/Drop lead decisions.

    Attributes:
        thresholds: Named classification thresholds.
        options: Run options (buyer-only and competitor-scan flags).
    """

    def __init__(
        self,
        thresholds: Optional[ClassificationThresholds] = None,
        options: Optional[RunOptions] = None,
    ):
        """Initialize the Lead Classifier.

        Args:
            thresholds: Optional thresholds override. Defaults to config values.
            options: Optional run options. Defaults to a buyer run.
        """
        self.logger = get_logger(__name__)
        self.thresholds = thresholds or thresholds_from_config()
        self.options = options or RunOptions()
        self._rules = build_rules(self.thresholds)

    def decide(self, source_kind: SourceKind, score: CandidateScore) -> Tuple[LeadType, str]:
        """Run the decision table; returns (lead type, rule name)."""
        hot_role = EntityRole.VENDOR if self.options.competitor_scan else EntityRole.BUYER
        subject = ClassificationInput(
            source_kind=source_kind,
            entity_role=score.entity_role,
            relevance_score=score.relevance_score,
            intent_score=score.intent_score,
            has_buying_signal=score.has_buying_signal,
            buyer_only=self.options.buyer_only,
            hot_role=hot_role,
        )
        return resolve_first(self._rules, subject, LeadType.DROP)

    def _post_process(self, candidate: Candidate, score: CandidateScore, lead_type: LeadType) -> Tuple[LeadType, List[str]]:
        """Apply Hot downgrades; returns the final type and notes."""
        notes: List[str] = []
        if lead_type != LeadType.HOT:
            return lead_type, notes

        if candidate.source_kind not in INHERENTLY_HOT_KINDS:
            if not hot_eligible_domain(candidate.url):
                notes.append("hot_downgraded: domain not in hot-eligible list")
                lead_type = LeadType.WARM

        if self.options.competitor_scan and score.entity_role == EntityRole.VENDOR and lead_type == LeadType.HOT:
            notes.append("hot_downgraded: competitor scan caps vendors at Warm")
            lead_type = LeadType.WARM

        return lead_type, notes

    def classify(self, candidate: Candidate, score: CandidateScore) -> ScoredCandidate:
        """Classify one scored candidate."""
        lead_type, rule = self.decide(candidate.source_kind, score)
        lead_type, notes = self._post_process(candidate, score, lead_type)
        return ScoredCandidate(
            candidate_id=candidate.candidate_id,
            relevance_score=score.relevance_score,
            intent_score=score.intent_score,
            entity_role=score.entity_role,
            source_type=candidate.source_kind,
            has_buying_signal=score.has_buying_signal,
            lead_type=lead_type,
            reason=score.reason,
            evidence=score.evidence,
            contact_hint=score.contact_hint,
            rule=rule,
            notes=notes,
        )

    def classify_batch(
        self,
        candidates: Sequence[Candidate],
        scores: Sequence[CandidateScore],
    ) -> Tuple[List[ScoredCandidate], List[Rejection]]:
        """Classify candidates; Drops are returned as rejections.

        Returns:
            (accepted Hot/Warm candidates in input order, rejections)
        """
        by_id = {score.candidate_id: score for score in scores}
        accepted: List[ScoredCandidate] = []
        rejections: List[Rejection] = []
        counts = {lead_type: 0 for lead_type in LeadType}

        for candidate in candidates:
            score = by_id.get(candidate.candidate_id)
            if score is None:
                continue
            scored = self.classify(candidate, score)
            counts[scored.lead_type] += 1
            if scored.lead_type == LeadType.DROP:
                rejections.append(Rejection(
                    url=candidate.url,
                    reason=DROP_REASONS.get(scored.rule, RejectReason.RELEVANCE_BELOW_THRESHOLD).value,
                    stage="classify",
                ))
            else:
                accepted.append(scored)

        self.logger.info(
            "Classification completed",
            extra={
                "hot": counts[LeadType.HOT],
                "warm": counts[LeadType.WARM],
                "drop": counts[LeadType.DROP],
            },
        )
        return accepted, rejections
