# src/lead_radar/tests/test_enricher.py
"""
Unit tests for Lead Radar candidate enrichment.

Tests cover:
- Preview proofs for every candidate
- Structural proofs from fetched pages
- Fetch budget and fetch order
- Final geo re-check on full page text
- Final geo check on undecided candidates left unfetched
- Fetch failures keeping the preview
"""
from unittest.mock import MagicMock

import pytest

from lead_radar.enricher import CandidateEnricher, ProofLedger, preview_proof
from lead_radar.geo import resolve_geo_profile
from lead_radar.intent_extractor import build_heuristic_intent
from lead_radar.models import (
    ICP,
    Candidate,
    Constraints,
    FetchedPage,
    GeoScope,
    Intent,
    Language,
    SourceKind,
)

CONTACT_HTML = (
    "<html><head><title>Acme</title></head><body>"
    '<a href="mailto:info@acme.ru">Почта</a>'
    '<a href="tel:+7 (495) 123-45-67">Телефон</a>'
    '<a href="https://t.me/acme">Telegram</a>'
    "</body></html>"
)


def make_candidate(candidate_id, url, kind=SourceKind.COMPANY_PAGE, geo_allowed=True, title="Acme", snippet=""):
    return Candidate(
        candidate_id=candidate_id,
        url=url,
        title=title,
        snippet=snippet,
        source_kind=kind,
        geo_allowed=geo_allowed,
    )


@pytest.fixture
def cis_profile():
    return resolve_geo_profile(Intent(
        icp=ICP(geo_scope=GeoScope.CIS),
        constraints=Constraints(language=Language.RU),
    ))


@pytest.fixture
def mock_fetcher():
    """Create a mock page fetcher returning a page with contacts."""
    fetcher = MagicMock()
    fetcher.fetch.side_effect = lambda url, timeout: FetchedPage(
        url=url,
        title="Acme",
        text="Бухгалтерское обслуживание в Москве",
        html=CONTACT_HTML,
    )
    return fetcher


class TestProofLedger:
    """Tests for ProofLedger."""

    @pytest.mark.unit
    def test_append_returns_index(self):
        ledger = ProofLedger()
        candidate = make_candidate("p0", "https://acme.ru/")

        assert ledger.append(preview_proof(candidate)) == 0
        assert ledger.append(preview_proof(candidate)) == 1
        assert len(ledger) == 2
        assert ledger[1].url == "https://acme.ru/"


class TestCandidateEnricher:
    """Tests for CandidateEnricher.enrich()."""

    @pytest.mark.unit
    def test_without_fetcher_every_candidate_gets_a_preview(self, cis_profile):
        candidates = [
            make_candidate("p0", "https://acme.ru/", snippet="Ищем бухгалтера"),
            make_candidate("p1", "https://beta.ru/"),
        ]
        ledger = ProofLedger()

        outcome = CandidateEnricher(None, cis_profile, fetch_timeout=1.0, fetch_budget=3).enrich(candidates, ledger)

        assert outcome.fetch_calls == 0
        assert [c.proof_refs for c in outcome.candidates] == [[0], [1]]
        assert ledger[0].signal_type == "preview"
        assert ledger[0].evidence_snippet == "Ищем бухгалтера"
        assert all(c.page_text is None for c in outcome.candidates)

    @pytest.mark.unit
    def test_fetched_page_adds_structural_proofs(self, cis_profile, mock_fetcher):
        ledger = ProofLedger()
        enricher = CandidateEnricher(mock_fetcher, cis_profile, fetch_timeout=1.0, fetch_budget=3)

        outcome = enricher.enrich([make_candidate("p0", "https://acme.com/")], ledger)

        candidate = outcome.candidates[0]
        assert candidate.page_text == "Бухгалтерское обслуживание в Москве"
        signal_types = [proof.signal_type for proof in candidate.merged_proofs]
        assert signal_types == ["preview", "page_title", "email", "phone", "social_link"]
        assert candidate.merged_proofs[3].signal_value == "+74951234567"
        assert candidate.proof_refs == [0, 1, 2, 3, 4]
        mock_fetcher.fetch.assert_called_once_with("https://acme.com/", 1.0)

    @pytest.mark.unit
    def test_fetch_budget_and_order(self, cis_profile, mock_fetcher):
        """Test undecided candidates are fetched first and the budget holds."""
        candidates = [
            make_candidate("p0", "https://acme.ru/", geo_allowed=True),
            make_candidate("p1", "https://beta.com/", geo_allowed=None),
            make_candidate("p2", "https://otvet.mail.ru/question/1", kind=SourceKind.FORUM_QNA),
        ]
        enricher = CandidateEnricher(mock_fetcher, cis_profile, fetch_timeout=1.0, fetch_budget=1)

        outcome = enricher.enrich(candidates, ProofLedger())

        assert outcome.fetch_calls == 1
        mock_fetcher.fetch.assert_called_once_with("https://beta.com/", 1.0)
        assert outcome.candidates[1].geo_allowed is True

    @pytest.mark.unit
    def test_final_geo_recheck_rejects(self, cis_profile):
        fetcher = MagicMock()
        fetcher.fetch.return_value = FetchedPage(
            url="https://acme.com/",
            title="Acme",
            text="Acme provides bookkeeping services for companies across Texas and Ohio.",
        )
        enricher = CandidateEnricher(fetcher, cis_profile, fetch_timeout=1.0, fetch_budget=3)

        outcome = enricher.enrich([make_candidate("p0", "https://acme.com/", geo_allowed=None)], ProofLedger())

        assert outcome.candidates == []
        assert [(r.reason, r.stage) for r in outcome.rejections] == [("geo_mismatch", "enrich")]

    @pytest.mark.unit
    def test_blocked_page_keeps_preview(self, cis_profile):
        fetcher = MagicMock()
        fetcher.fetch.return_value = FetchedPage(url="https://acme.ru/", blocked=True)
        enricher = CandidateEnricher(fetcher, cis_profile, fetch_timeout=1.0, fetch_budget=3)

        outcome = enricher.enrich([make_candidate("p0", "https://acme.ru/")], ProofLedger())

        assert outcome.fetch_calls == 1
        assert outcome.candidates[0].page_text is None
        assert len(outcome.candidates[0].merged_proofs) == 1

    @pytest.mark.unit
    def test_fetch_error_is_counted(self, cis_profile):
        fetcher = MagicMock()
        fetcher.fetch.side_effect = RuntimeError("connection reset")
        enricher = CandidateEnricher(fetcher, cis_profile, fetch_timeout=1.0, fetch_budget=3)

        outcome = enricher.enrich([make_candidate("p0", "https://acme.ru/")], ProofLedger())

        assert outcome.errors == 1
        assert len(outcome.candidates) == 1


class TestUnfetchedGeoCheck:
    """Tests for the final geo check on candidates that were never fetched."""

    @pytest.fixture
    def germany_profile(self):
        return resolve_geo_profile(build_heuristic_intent("We sell accounting outsourcing to companies in Germany"))

    @pytest.mark.unit
    def test_custom_scope_without_fetcher(self, germany_profile):
        """Test an undecided page with no marker is rejected, a .de page kept."""
        snippet = "We are looking for an accounting outsourcing partner"
        candidates = [
            make_candidate("p0", "https://acme.com/", geo_allowed=None, snippet=snippet),
            make_candidate("p1", "https://acme.de/", geo_allowed=None, snippet=snippet),
        ]

        outcome = CandidateEnricher(None, germany_profile, fetch_timeout=1.0, fetch_budget=0).enrich(
            candidates, ProofLedger()
        )

        assert germany_profile.scope == GeoScope.CUSTOM
        assert [c.candidate_id for c in outcome.candidates] == ["p1"]
        assert outcome.candidates[0].geo_allowed is True
        assert [(r.url, r.reason, r.stage) for r in outcome.rejections] == [
            ("https://acme.com/", "geo_mismatch", "enrich"),
        ]

    @pytest.mark.unit
    def test_cis_scope_outside_fetch_budget(self, cis_profile, mock_fetcher):
        candidates = [
            make_candidate("p0", "https://acme.com/", geo_allowed=None, snippet="Looking for a bookkeeper"),
            make_candidate("p1", "https://beta.com/", geo_allowed=None, snippet="Ищем бухгалтера на аутсорс в компанию"),
        ]
        enricher = CandidateEnricher(mock_fetcher, cis_profile, fetch_timeout=1.0, fetch_budget=0)

        outcome = enricher.enrich(candidates, ProofLedger())

        mock_fetcher.fetch.assert_not_called()
        assert [c.candidate_id for c in outcome.candidates] == ["p1"]
        assert outcome.candidates[0].geo_allowed is True
        assert [r.reason for r in outcome.rejections] == ["geo_mismatch"]

    @pytest.mark.unit
    def test_blocked_fetch_still_decides_geo(self, cis_profile):
        fetcher = MagicMock()
        fetcher.fetch.return_value = FetchedPage(url="https://acme.com/", blocked=True)
        enricher = CandidateEnricher(fetcher, cis_profile, fetch_timeout=1.0, fetch_budget=3)

        outcome = enricher.enrich(
            [make_candidate("p0", "https://acme.com/", geo_allowed=None, snippet="Looking for a bookkeeper")],
            ProofLedger(),
        )

        assert outcome.fetch_calls == 1
        assert outcome.candidates == []
        assert outcome.rejections[0].stage == "enrich"

    @pytest.mark.unit
    def test_decided_candidates_are_not_rechecked(self, cis_profile):
        candidate = make_candidate("p0", "https://acme.com/", geo_allowed=True, snippet="Looking for a bookkeeper")

        outcome = CandidateEnricher(None, cis_profile, fetch_timeout=1.0, fetch_budget=0).enrich(
            [candidate], ProofLedger()
        )

        assert [c.candidate_id for c in outcome.candidates] == ["p0"]
        assert outcome.rejections == []
