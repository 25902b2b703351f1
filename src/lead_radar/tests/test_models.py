# src/lead_radar/tests/test_models.py
"""
Unit tests for Lead Radar Pydantic models.

Tests cover:
- Enum values (RunMode, SourceKind, LeadType, StatusCode)
- List-field normalization on Intent sub-models
- Immutability of stage-to-stage values
- Score clamping on CandidateScore
- RunOptions coercion of unknown values
- camelCase serialization of output models
"""
import pytest
from pydantic import ValidationError

from lead_radar.models import (
    ICP,
    Candidate,
    CandidateScore,
    DedupeMode,
    GeoScope,
    Intent,
    Language,
    Lead,
    LeadType,
    Lexicon,
    Offer,
    PipelineMeta,
    PipelineResult,
    RunMode,
    RunOptions,
    RunTarget,
    SourceKind,
    StatusCode,
)


class TestEnums:
    """Tests for the string enumerations."""

    @pytest.mark.unit
    def test_source_kind_values(self):
        assert SourceKind.FORUM_QNA.value == "forum/qna"
        assert SourceKind.BLOG_ARTICLE.value == "blog/article"
        assert SourceKind.SOCIAL_POST.value == "social-post"
        assert SourceKind.COMPANY_PAGE.value == "company-page"

    @pytest.mark.unit
    def test_lead_type_values(self):
        assert [t.value for t in LeadType] == ["Hot", "Warm", "Drop"]

    @pytest.mark.unit
    def test_status_codes(self):
        assert {s.value for s in StatusCode} == {
            "OK",
            "NO_RELEVANT_RESULTS",
            "SEARCH_NOT_AVAILABLE",
            "NO_WEB_SEARCH_CONFIGURED",
            "RANK_PROVIDED_LIST",
        }

    @pytest.mark.unit
    def test_run_mode_from_string(self):
        assert RunMode("quick") == RunMode.QUICK


class TestIntentModels:
    """Tests for Intent and its sub-models."""

    @pytest.mark.unit
    def test_offer_lists_normalized(self):
        """Test keywords are deduplicated and lowercased."""
        offer = Offer(product_or_service="  Accounting   Outsourcing ", keywords=["Tax", "tax ", "VAT"])
        assert offer.product_or_service == "accounting outsourcing"
        assert offer.keywords == ["tax", "vat"]

    @pytest.mark.unit
    def test_icp_accepts_camel_case(self):
        icp = ICP.model_validate({"geoScope": "cis", "companySize": "smb", "geo": ["Россия"]})
        assert icp.geo_scope == GeoScope.CIS
        assert icp.company_size == "smb"
        assert icp.geo == ["россия"]

    @pytest.mark.unit
    def test_lexicon_for_language(self):
        lexicon = Lexicon(ru=["ищем"], en=["looking for"])
        assert lexicon.for_language(Language.RU) == ["ищем"]
        assert lexicon.for_language(Language.EN) == ["looking for"]
        assert lexicon.all_phrases() == ["ищем", "looking for"]

    @pytest.mark.unit
    def test_offer_terms_order(self):
        intent = Intent(offer=Offer(
            product_or_service="accounting outsourcing",
            keywords=["бухгалтерия", "accounting outsourcing"],
            synonyms=["ведение бухгалтерии"],
        ))
        assert intent.offer_terms() == ["accounting outsourcing", "бухгалтерия", "ведение бухгалтерии"]

    @pytest.mark.unit
    def test_intent_is_immutable(self):
        """Test stage values cannot be edited in place."""
        intent = Intent(task_text="x")
        with pytest.raises(ValidationError):
            intent.task_text = "y"

    @pytest.mark.unit
    def test_with_geo_scope_returns_copy(self):
        intent = Intent(icp=ICP(geo_scope=GeoScope.CUSTOM))
        updated = intent.with_geo_scope(GeoScope.GLOBAL, ["Germany"])
        assert updated.icp.geo_scope == GeoScope.GLOBAL
        assert updated.icp.geo == ["germany"]
        assert intent.icp.geo_scope == GeoScope.CUSTOM


class TestCandidateModels:
    """Tests for Candidate and CandidateScore."""

    @pytest.mark.unit
    def test_candidate_text_joins_known_parts(self):
        candidate = Candidate(candidate_id="c1", url="https://a.ru/", title="T", snippet="S")
        assert candidate.text == "T S"
        assert not candidate.is_enriched
        enriched = candidate.model_copy(update={"page_text": "Body"})
        assert enriched.text == "T S Body"
        assert enriched.is_enriched

    @pytest.mark.unit
    def test_candidate_score_is_clamped(self):
        score = CandidateScore(candidate_id="c1", relevance_score=150, intent_score=-10)
        assert score.relevance_score == 100
        assert score.intent_score == 0


class TestRunOptions:
    """Tests for RunOptions coercion."""

    @pytest.mark.unit
    def test_defaults(self):
        options = RunOptions()
        assert options.mode == RunMode.DEEP
        assert options.dedupe_by == DedupeMode.MIXED
        assert options.target == RunTarget.BUYERS
        assert options.buyer_only
        assert not options.competitor_scan

    @pytest.mark.unit
    def test_unknown_values_fall_back(self):
        """Test unknown values normalize to defaults instead of raising."""
        options = RunOptions.model_validate({
            "mode": "turbo",
            "dedupeBy": "bogus",
            "maxWebRequests": "-3",
            "targetCount": "abc",
            "geoScope": "mars",
            "target": "everyone",
            "excludeDomains": ["ok.ru", 5, ""],
        })
        assert options.mode == RunMode.DEEP
        assert options.dedupe_by == DedupeMode.MIXED
        assert options.max_web_requests is None
        assert options.target_count is None
        assert options.geo_scope is None
        assert options.target == RunTarget.BUYERS
        assert options.exclude_domains == ["ok.ru"]

    @pytest.mark.unit
    def test_known_values_parsed(self):
        options = RunOptions.model_validate({
            "mode": "Quick",
            "dedupeBy": "url",
            "maxWebRequests": "12",
            "geoScope": "global",
            "target": "competitors",
        })
        assert options.mode == RunMode.QUICK
        assert options.dedupe_by == DedupeMode.URL
        assert options.max_web_requests == 12
        assert options.geo_scope == GeoScope.GLOBAL
        assert options.competitor_scan


class TestOutputModels:
    """Tests for Lead and PipelineResult serialization."""

    @pytest.mark.unit
    def test_lead_dumps_camel_case(self):
        lead = Lead(
            candidate_id="q0r0",
            title="Tender",
            url="https://zakupki.gov.ru/x",
            source_type=SourceKind.TENDER,
            lead_type=LeadType.HOT,
            dedupe_key="https://zakupki.gov.ru/x",
            proof_refs=[0, 1],
        )
        data = lead.to_dict()
        assert data["leadType"] == "Hot"
        assert data["sourceType"] == "tender"
        assert data["dedupeKey"] == "https://zakupki.gov.ru/x"
        assert data["proofRefs"] == [0, 1]

    @pytest.mark.unit
    def test_pipeline_result_helpers(self):
        result = PipelineResult(
            leads=[
                Lead(candidate_id="a", title="A", url="https://a.ru/", dedupe_key="k1"),
                Lead(candidate_id="b", title="B", url="https://b.ru/", dedupe_key=""),
            ],
            meta=PipelineMeta(status_code=StatusCode.OK),
        )
        assert result.dedupe_keys() == ["k1"]
        assert not result.is_empty()
        assert PipelineResult().is_empty()

    @pytest.mark.unit
    def test_pipeline_result_round_trips_from_dict(self):
        """Test a serialized result can be read back as a prior run."""
        original = PipelineResult(
            leads=[Lead(candidate_id="a", title="A", url="https://a.ru/", dedupe_key="k1")],
            meta=PipelineMeta(status_code=StatusCode.OK),
        )
        restored = PipelineResult.model_validate(original.to_dict())
        assert restored.dedupe_keys() == ["k1"]
        assert restored.meta.status_code == StatusCode.OK
