# enricher.py
"""Candidate enrichment with fetched page text and structural proofs."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import ProviderTimeout, RejectReason
from .geo import evaluate_geo_fit
from .logging_utils import get_logger
from .models import Candidate, FetchedPage, GeoProfile, ProofItem, Rejection, SourceKind
from .providers.http_fetcher import extract_links
from .reference_data import MAX_PROOF_SNIPPET
from .text_utils import sanitize_snippet
from .timebox import call_with_timeout


class ProofLedger:
    """Append-only list of proof items, referenced by index."""

    def __init__(self):
        self._items: List[ProofItem] = []

    def append(self, item: ProofItem) -> int:
        """Store an item and return its index."""
        self._items.append(item)
        return len(self._items) - 1

    @property
    def items(self) -> Tuple[ProofItem, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> ProofItem:
        return self._items[index]


@dataclass
class EnrichmentOutcome:
    """Enriched candidates plus fetch diagnostics."""

    candidates: List[Candidate] = field(default_factory=list)
    rejections: List[Rejection] = field(default_factory=list)
    fetch_calls: int = 0
    timeouts: int = 0
    errors: int = 0


# Kinds whose own page usually adds contacts or intent wording.
_FETCH_PRIORITY = {
    SourceKind.COMPANY_PAGE: 0,
    SourceKind.TENDER: 1,
    SourceKind.JOB: 1,
    SourceKind.SOCIAL_POST: 2,
    SourceKind.DIRECTORY: 3,
}


def preview_proof(candidate: Candidate) -> ProofItem:
    """Default proof built from the search preview."""
    return ProofItem(
        url=candidate.url,
        source_type=candidate.source_kind.value,
        signal_type="preview",
        signal_value=sanitize_snippet(candidate.title, MAX_PROOF_SNIPPET),
        evidence_snippet=sanitize_snippet(candidate.snippet or candidate.title, MAX_PROOF_SNIPPET),
    )


def structural_proofs(candidate: Candidate, page: FetchedPage) -> List[ProofItem]:
    """Proofs extracted from a fetched page: title, contacts, social links."""
    proofs: List[ProofItem] = []
    if page.title:
        proofs.append(ProofItem(
            url=candidate.url,
            source_type="generic",
            signal_type="page_title",
            signal_value=sanitize_snippet(page.title, MAX_PROOF_SNIPPET),
            evidence_snippet=sanitize_snippet(page.text, MAX_PROOF_SNIPPET),
        ))

    links = extract_links(page.html, page.url or candidate.url)
    for email in links.emails:
        proofs.append(ProofItem(
            url=candidate.url, source_type="contact", signal_type="email",
            signal_value=email, evidence_snippet=f"mailto:{email}",
        ))
    for phone in links.phones:
        proofs.append(ProofItem(
            url=candidate.url, source_type="contact", signal_type="phone",
            signal_value=phone, evidence_snippet=f"tel:{phone}",
        ))
    for link in links.social:
        proofs.append(ProofItem(
            url=candidate.url, source_type="social", signal_type="social_link",
            signal_value=link, evidence_snippet=sanitize_snippet(link, MAX_PROOF_SNIPPET),
        ))
    return proofs


class CandidateEnricher:
    """Fetches full text for a bounded subset of candidates.

    Every candidate gets a preview proof. Fetched candidates also get
    structural proofs and a final geo re-check against the full text.
    Candidates left unfetched with an undecided geo get the same final
    check against their preview text, so nothing leaves enrichment
    undecided. Fetch failures keep the preview and move on.
    """

    def __init__(
        self,
        fetcher,
        geo_profile: GeoProfile,
        fetch_timeout: float,
        fetch_budget: int,
    ):
        self.logger = get_logger(__name__)
        self.fetcher = fetcher
        self.geo_profile = geo_profile
        self.fetch_timeout = fetch_timeout
        self.fetch_budget = max(0, fetch_budget)

    def _fetch_order(self, candidates: List[Candidate]) -> List[int]:
        """Indices to fetch: undecided geo first, then by kind priority."""
        eligible = [
            i for i, c in enumerate(candidates) if c.source_kind in _FETCH_PRIORITY
        ]
        eligible.sort(key=lambda i: (
            candidates[i].geo_allowed is not None,
            _FETCH_PRIORITY[candidates[i].source_kind],
        ))
        return eligible[: self.fetch_budget]

    def _fetch(self, url: str, outcome: EnrichmentOutcome) -> Optional[FetchedPage]:
        outcome.fetch_calls += 1
        try:
            page = call_with_timeout(self.fetcher.fetch, self.fetch_timeout, url, self.fetch_timeout, provider="fetch")
        except ProviderTimeout:
            outcome.timeouts += 1
            return None
        except Exception as e:
            outcome.errors += 1
            self.logger.warning("Page fetch failed, keeping preview", extra={"url": url, "error": str(e)})
            return None
        if page is None or page.blocked:
            return None
        return page

    def enrich(self, candidates: List[Candidate], ledger: ProofLedger) -> EnrichmentOutcome:
        """Enrich candidates, appending their proofs to ``ledger``."""
        outcome = EnrichmentOutcome()
        to_fetch = set(self._fetch_order(candidates)) if self.fetcher is not None else set()

        for index, candidate in enumerate(candidates):
            proofs = [preview_proof(candidate)]
            update = {}

            page = self._fetch(candidate.url, outcome) if index in to_fetch else None
            if page is not None:
                proofs.extend(structural_proofs(candidate, page))
                update["page_text"] = page.text
                if not candidate.title and page.title:
                    update["title"] = page.title
                geo_text = f"{candidate.text} {page.text}"
            elif candidate.geo_allowed is None:
                geo_text = candidate.text
            else:
                geo_text = None

            if geo_text is not None:
                fit = evaluate_geo_fit(self.geo_profile, candidate.url, geo_text, final=True)
                if fit.allowed is False:
                    outcome.rejections.append(Rejection(
                        url=candidate.url, reason=RejectReason.GEO_MISMATCH.value, stage="enrich",
                    ))
                    continue
                update["geo_allowed"] = fit.allowed

            refs = [ledger.append(proof) for proof in proofs]
            update["merged_proofs"] = proofs
            update["proof_refs"] = refs
            outcome.candidates.append(candidate.model_copy(update=update))

        self.logger.info(
            "Enrichment completed",
            extra={
                "candidates": len(outcome.candidates),
                "enriched": sum(1 for c in outcome.candidates if c.is_enriched),
                "fetch_calls": outcome.fetch_calls,
                "geo_rejected": len(outcome.rejections),
                "timeouts": outcome.timeouts,
            },
        )
        return outcome
