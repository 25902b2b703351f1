# scorer.py
"""Candidate scoring.

Two paths run for every candidate:

* the heuristic path (always computed, deterministic), and
* the optional LLM path, batched and time-boxed.

``merge_scores`` combines them field by field: an LLM field wins when it is
present and well-typed, otherwise the heuristic value stays. A failed LLM
batch leaves every candidate in it on its heuristic result.
"""

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import MalformedProviderResponse
from .logging_utils import get_logger
from .models import (
    Candidate,
    CandidateScore,
    EntityRole,
    GeoProfile,
    Intent,
    Language,
    LLMScore,
    RunOptions,
    SourceKind,
)
from .reference_data import (
    BUYING_SIGNAL_LEXICON,
    CONTACT_PHRASES,
    EXPLICIT_INTENT_PHRASES,
    NOISE_MIN_CANDIDATES,
    NOISE_VOCABULARY,
    OFFER_TERM_GLOSSARY,
    VENDOR_NEGATIVE_KEYWORDS,
    VENDOR_PHRASES,
)
from .rules import Rule, resolve_first
from .text_utils import (
    clamp_score,
    detect_language,
    domain_of,
    find_phrases,
    normalize_list,
    sanitize_snippet,
    stems,
    tokenize,
)
from .timebox import call_with_timeout

logger = get_logger(__name__)

# Relevance weights
RELEVANCE_BASE = 10
OVERLAP_WEIGHT = 50
OVERLAP_SATURATION = 2
PRIMARY_PHRASE_BONUS = 10
BUYING_INTENT_BONUS = 15
BRAND_BONUS = 10
GEO_TERM_BONUS = 5
CONTACT_BONUS = 5
NOISE_PENALTY = 15
NOISE_PENALTY_CAP = 30
NEGATIVE_PENALTY = 10
NEGATIVE_PENALTY_CAP = 30

# Intent weights
LEXICON_HIT_POINTS = 30
LEXICON_CAP = 60
EXPLICIT_INTENT_BONUS = 20
CONTACT_INTENT_BONUS = 10
VENDOR_DOMINANCE_PENALTY = 25

# Vendor phrases needed to call a page vendor-heavy
VENDOR_HEAVY_HITS = 2

EXPLICIT_INTENT_ALL = EXPLICIT_INTENT_PHRASES["ru"] + EXPLICIT_INTENT_PHRASES["en"]
BUYING_SIGNALS_ALL = BUYING_SIGNAL_LEXICON["ru"] + BUYING_SIGNAL_LEXICON["en"]
VENDOR_PHRASES_ALL = VENDOR_PHRASES["ru"] + VENDOR_PHRASES["en"]
CONTACT_SIGNAL_TYPES = ("email", "phone", "social_link")

LLM_SCORE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": "string"},
                    "relevanceScore": {"type": "integer", "minimum": 0, "maximum": 100},
                    "intentScore": {"type": "integer", "minimum": 0, "maximum": 100},
                    "entityRole": {"type": "string", "enum": [r.value for r in EntityRole]},
                    "hasBuyingSignal": {"type": "boolean"},
                    "reason": {"type": "string"},
                    "contactHint": {"type": "string"},
                },
            },
        },
    },
}


# ==============================================================================
# Entity role
# ==============================================================================


@dataclass(frozen=True)
class RoleSignals:
    """Inputs of the entity-role rule cascade."""

    source_kind: SourceKind
    buyer_hits: int
    vendor_hits: int


ENTITY_ROLE_RULES = (
    Rule("dictionary_source", lambda s: s.source_kind == SourceKind.DICTIONARY, EntityRole.OTHER),
    Rule("forum_source", lambda s: s.source_kind == SourceKind.FORUM_QNA, EntityRole.OTHER),
    Rule("article_source", lambda s: s.source_kind == SourceKind.BLOG_ARTICLE, EntityRole.MEDIA),
    Rule("directory_source", lambda s: s.source_kind == SourceKind.DIRECTORY, EntityRole.DIRECTORY),
    Rule("buyer_phrase", lambda s: s.buyer_hits > 0, EntityRole.BUYER),
    Rule("vendor_heavy", lambda s: s.vendor_hits >= VENDOR_HEAVY_HITS, EntityRole.VENDOR),
)


def resolve_entity_role(signals: RoleSignals) -> EntityRole:
    """First matching rule decides the role; default is ``other``."""
    role, _ = resolve_first(ENTITY_ROLE_RULES, signals, EntityRole.OTHER)
    return role


# ==============================================================================
# Negative keywords
# ==============================================================================


def build_negative_keywords(
    intent: Intent,
    candidates: Sequence[Candidate],
    options: Optional[RunOptions] = None,
) -> Tuple[str, ...]:
    """Build the run's shared negative-keyword set.

    Intent negatives, plus the vendor-negative list unless the run scans
    competitors, plus noise-vocabulary tokens seen in at least
    ``NOISE_MIN_CANDIDATES`` candidates.
    """
    options = options or RunOptions()
    keywords = list(intent.negative_lexicon.all_phrases()) + list(intent.constraints.must_not_have)
    if not options.competitor_scan:
        keywords.extend(VENDOR_NEGATIVE_KEYWORDS)

    counts: Counter = Counter()
    for candidate in candidates:
        counts.update(set(tokenize(candidate.text)) & NOISE_VOCABULARY)
    keywords.extend(sorted(token for token, n in counts.items() if n >= NOISE_MIN_CANDIDATES))

    return tuple(normalize_list(keywords, max_items=64))


# ==============================================================================
# Heuristic path
# ==============================================================================


def scoring_terms(intent: Intent) -> List[str]:
    """Offer terms plus glossary translations.

    A term written in a different language than the intent's (an English
    offer for a Russian-language search, say) also matches pages in the
    intent's language through ``OFFER_TERM_GLOSSARY``.
    """
    terms = intent.offer_terms()
    target = intent.constraints.language
    if target == Language.MIXED:
        return terms

    translations: List[str] = []
    for term in terms:
        language = detect_language(term)
        if language in ("mixed", target.value):
            continue
        for english, russian in OFFER_TERM_GLOSSARY:
            source, translated = (english, russian) if language == "en" else (russian, english)
            if find_phrases(term, source):
                translations.extend(translated)
    return normalize_list(terms + translations, max_items=64)


def _buying_phrases(intent: Intent) -> List[str]:
    # An intent built without a lexicon still sees the stock buying signals
    return intent.buying_signal_lexicon.all_phrases() or list(BUYING_SIGNALS_ALL)


def _intent_stems(terms: Sequence[str]) -> set:
    result = set()
    for term in terms:
        result |= stems(term)
    return result


def _has_contact(candidate: Candidate) -> bool:
    if any(p.signal_type in CONTACT_SIGNAL_TYPES for p in candidate.merged_proofs):
        return True
    return bool(find_phrases(candidate.text, CONTACT_PHRASES))


def _contact_hint(candidate: Candidate) -> str:
    for signal_type in CONTACT_SIGNAL_TYPES:
        for proof in candidate.merged_proofs:
            if proof.signal_type == signal_type:
                return f"{signal_type}: {proof.signal_value}"
    return ""


def _brand_hit(intent: Intent, host: str) -> bool:
    for keyword in intent.offer.keywords:
        if "." in keyword and keyword in host:
            return True
    tokens = {t for term in intent.offer_terms() for t in tokenize(term) if len(t) >= 5 and t.isascii()}
    return any(token in host for token in tokens)


def _evidence(text: str, hits: Iterable[str], fallback: str) -> str:
    lowered = text.lower()
    for hit in hits:
        position = lowered.find(hit)
        if position >= 0:
            start = max(0, position - 40)
            return sanitize_snippet(text[start:start + 160])
    return sanitize_snippet(fallback)


def heuristic_score(
    candidate: Candidate,
    intent: Intent,
    geo_profile: GeoProfile,
    negative_keywords: Sequence[str] = (),
) -> CandidateScore:
    """Score a candidate with deterministic lexical rules."""
    text = candidate.text
    host = domain_of(candidate.url)
    reasons: List[str] = []

    # Relevance
    terms = scoring_terms(intent)
    intent_stems = _intent_stems(terms)
    overlap = intent_stems & stems(text)
    saturation = max(1, min(len(intent_stems), OVERLAP_SATURATION))
    relevance = RELEVANCE_BASE + min(1.0, len(overlap) / saturation) * OVERLAP_WEIGHT

    primary_hits = find_phrases(text, terms)
    if primary_hits:
        relevance += PRIMARY_PHRASE_BONUS
        reasons.append(f"offer: {', '.join(primary_hits[:3])}")

    explicit_hits = find_phrases(text, EXPLICIT_INTENT_ALL)
    if explicit_hits:
        relevance += BUYING_INTENT_BONUS
    if _brand_hit(intent, host):
        relevance += BRAND_BONUS
    geo_hits = find_phrases(text, geo_profile.terms) if geo_profile.terms else []
    if geo_hits:
        relevance += GEO_TERM_BONUS
    has_contact = _has_contact(candidate)
    if has_contact:
        relevance += CONTACT_BONUS

    negative_hits = find_phrases(text, negative_keywords)
    noise_hits = [t for t in find_phrases(text, sorted(NOISE_VOCABULARY)) if t not in negative_hits]
    relevance -= min(NOISE_PENALTY_CAP, NOISE_PENALTY * len(noise_hits))
    relevance -= min(NEGATIVE_PENALTY_CAP, NEGATIVE_PENALTY * len(negative_hits))
    if negative_hits:
        reasons.append(f"negative: {', '.join(negative_hits[:3])}")

    # Intent
    lexicon_hits = find_phrases(text, _buying_phrases(intent))
    vendor_hits = find_phrases(text, VENDOR_PHRASES_ALL)
    buyer_hits = normalize_list(lexicon_hits + explicit_hits, max_items=64)

    intent_score = min(LEXICON_CAP, LEXICON_HIT_POINTS * len(lexicon_hits))
    if explicit_hits:
        intent_score += EXPLICIT_INTENT_BONUS
    if has_contact:
        intent_score += CONTACT_INTENT_BONUS
    if vendor_hits and not buyer_hits:
        intent_score -= VENDOR_DOMINANCE_PENALTY
    if buyer_hits:
        reasons.append(f"signals: {', '.join(buyer_hits[:3])}")

    role = resolve_entity_role(RoleSignals(
        source_kind=candidate.source_kind,
        buyer_hits=len(buyer_hits),
        vendor_hits=len(vendor_hits),
    ))

    return CandidateScore(
        candidate_id=candidate.candidate_id,
        relevance_score=clamp_score(relevance),
        intent_score=clamp_score(intent_score),
        entity_role=role,
        has_buying_signal=bool(lexicon_hits or explicit_hits),
        reason="; ".join(reasons) or "weak lexical match",
        evidence=_evidence(text, buyer_hits + primary_hits, candidate.snippet or candidate.title),
        contact_hint=_contact_hint(candidate),
        scored_by="heuristic",
    )


# ==============================================================================
# LLM path
# ==============================================================================


def _score_value(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return clamp_score(value)


def parse_llm_item(raw: Any) -> Optional[LLMScore]:
    """Keep only the well-typed fields of one LLM item."""
    if not isinstance(raw, dict):
        return None
    candidate_id = raw.get("id", raw.get("candidateId"))
    if not isinstance(candidate_id, str) or not candidate_id:
        return None

    role = raw.get("entityRole")
    try:
        role = EntityRole(role) if isinstance(role, str) else None
    except ValueError:
        role = None
    signal = raw.get("hasBuyingSignal")
    reason = raw.get("reason")
    contact = raw.get("contactHint")

    return LLMScore(
        candidate_id=candidate_id,
        relevance_score=_score_value(raw.get("relevanceScore")),
        intent_score=_score_value(raw.get("intentScore")),
        entity_role=role,
        has_buying_signal=signal if isinstance(signal, bool) else None,
        reason=reason.strip() if isinstance(reason, str) and reason.strip() else None,
        contact_hint=contact.strip() if isinstance(contact, str) and contact.strip() else None,
    )


def parse_llm_batch(data: Any, candidate_ids: Sequence[str]) -> Dict[str, LLMScore]:
    """Parse a batch answer into per-candidate partial scores.

    Raises:
        MalformedProviderResponse: If the answer has no usable items
    """
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise MalformedProviderResponse("LLM scoring answer has no items list", provider="llm")
    wanted = set(candidate_ids)
    parsed: Dict[str, LLMScore] = {}
    for raw in items:
        item = parse_llm_item(raw)
        if item is not None and item.candidate_id in wanted and item.candidate_id not in parsed:
            parsed[item.candidate_id] = item
    if not parsed:
        raise MalformedProviderResponse("LLM scoring answer matched no candidates", provider="llm")
    return parsed


def merge_scores(heuristic: CandidateScore, llm: Optional[LLMScore]) -> CandidateScore:
    """Merge an optional LLM result over the heuristic result.

    Per field: the LLM value wins when present, else the heuristic value
    is kept. Evidence is always heuristic.
    """
    if llm is None:
        return heuristic
    update: Dict[str, Any] = {}
    for name in ("relevance_score", "intent_score", "entity_role", "has_buying_signal", "reason", "contact_hint"):
        value = getattr(llm, name)
        if value is not None:
            update[name] = value
    if not update:
        return heuristic
    update["scored_by"] = "llm" if len(update) == 6 else "merged"
    return heuristic.model_copy(update=update)


def _intent_digest(intent: Intent) -> Dict[str, Any]:
    return {
        "offer": intent.offer.product_or_service,
        "keywords": intent.offer.keywords[:8],
        "industries": intent.icp.industries[:5],
        "roles": intent.icp.roles[:5],
        "geo": intent.icp.geo[:5],
        "geoScope": intent.icp.geo_scope.value,
        "language": intent.constraints.language.value,
    }


def build_batch_prompt(intent: Intent, batch: Sequence[Candidate]) -> str:
    """Compact prompt for one scoring batch."""
    rows = [
        {
            "id": c.candidate_id,
            "url": c.url,
            "sourceKind": c.source_kind.value,
            "title": sanitize_snippet(c.title, 120),
            "text": sanitize_snippet(c.page_text or c.snippet, 400),
        }
        for c in batch
    ]
    return (
        "Score each page as a sales lead for this offer. relevanceScore and "
        "intentScore are 0-100. entityRole is who published the page. "
        "hasBuyingSignal is true only for explicit purchase, hiring or tender "
        "intent. Return one item per id.\n\n"
        f"Intent: {json.dumps(_intent_digest(intent), ensure_ascii=False)}\n"
        f"Pages: {json.dumps(rows, ensure_ascii=False)}"
    )


@dataclass
class ScoringOutcome:
    """Merged scores plus LLM diagnostics."""

    scores: List[CandidateScore] = field(default_factory=list)
    llm_calls: int = 0
    llm_failures: int = 0
    usage_tokens: int = 0


class Scorer:
    """Scores candidates with heuristics and an optional LLM.

    Attributes:
        generator: Optional provider with ``generate(prompt, schema, options)``
        batch_size: Candidates per LLM call
        batch_timeout: Seconds per LLM call
    """

    def __init__(
        self,
        generator: Optional[Any] = None,
        batch_size: int = 12,
        batch_timeout: float = 25.0,
    ):
        self.logger = get_logger(__name__)
        self.generator = generator
        self.batch_size = max(1, batch_size)
        self.batch_timeout = batch_timeout

    def _score_batch(self, intent: Intent, batch: Sequence[Candidate], outcome: ScoringOutcome) -> Dict[str, LLMScore]:
        outcome.llm_calls += 1
        try:
            result = call_with_timeout(
                self.generator.generate,
                self.batch_timeout,
                build_batch_prompt(intent, batch),
                LLM_SCORE_SCHEMA,
                {"temperature": 0.0, "max_tokens": 150 * len(batch) + 200},
                provider="llm",
            )
            parsed = parse_llm_batch(result.data, [c.candidate_id for c in batch])
        except Exception as e:
            outcome.llm_failures += 1
            self.logger.warning(
                "LLM scoring batch fell back to heuristics",
                extra={"batch_size": len(batch), "error": str(e), "error_code": getattr(e, "code", None)},
            )
            return {}
        outcome.usage_tokens += result.usage_tokens
        return parsed

    def score(
        self,
        candidates: Sequence[Candidate],
        intent: Intent,
        geo_profile: GeoProfile,
        negative_keywords: Sequence[str] = (),
    ) -> ScoringOutcome:
        """Score all candidates, keeping input order."""
        outcome = ScoringOutcome()
        heuristics = [heuristic_score(c, intent, geo_profile, negative_keywords) for c in candidates]

        llm_scores: Dict[str, LLMScore] = {}
        if self.generator is not None:
            for start in range(0, len(candidates), self.batch_size):
                llm_scores.update(self._score_batch(intent, candidates[start:start + self.batch_size], outcome))

        outcome.scores = [merge_scores(h, llm_scores.get(h.candidate_id)) for h in heuristics]
        self.logger.info(
            "Scoring completed",
            extra={
                "candidates": len(candidates),
                "llm_calls": outcome.llm_calls,
                "llm_failures": outcome.llm_failures,
                "llm_scored": len(llm_scores),
            },
        )
        return outcome
