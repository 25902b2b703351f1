# src/lead_radar/tests/test_search_plan.py
"""
Unit tests for Lead Radar search plan construction.

Tests cover:
- Plan size bounds for every mode and target
- Query distinctness after normalization
- Geo clause qualification and query length cap
- Prior-run queries placed first
- Competitor templates for vendor scans
"""
import pytest

from lead_radar.geo import resolve_geo_profile
from lead_radar.models import (
    ICP,
    Constraints,
    GeoProfile,
    GeoScope,
    Intent,
    Language,
    Lexicon,
    Offer,
    RunMode,
    RunTarget,
)
from lead_radar.reference_data import BUYING_SIGNAL_LEXICON, MAX_QUERY_LENGTH, MODE_PROFILES
from lead_radar.search_plan import SearchPlanBuilder
from lead_radar.text_utils import normalize_text


def accounting_intent() -> Intent:
    return Intent(
        offer=Offer(
            product_or_service="accounting outsourcing",
            keywords=["бухгалтерия", "аутсорс", "бухгалтер"],
            synonyms=["бухгалтерский аутсорсинг", "ведение бухгалтерии"],
        ),
        icp=ICP(geo_scope=GeoScope.CIS, industries=["розничная торговля"], roles=["финансовый директор"]),
        constraints=Constraints(language=Language.RU),
        buying_signal_lexicon=Lexicon(ru=list(BUYING_SIGNAL_LEXICON["ru"]), en=list(BUYING_SIGNAL_LEXICON["en"])),
    )


def crm_intent() -> Intent:
    return Intent(
        offer=Offer(product_or_service="crm software"),
        icp=ICP(geo_scope=GeoScope.GLOBAL),
        constraints=Constraints(language=Language.EN),
        buying_signal_lexicon=Lexicon(en=list(BUYING_SIGNAL_LEXICON["en"])),
    )


INTENTS = [accounting_intent, crm_intent, Intent]


class TestPlanBounds:
    """Tests for plan size and distinctness."""

    @pytest.mark.unit
    @pytest.mark.parametrize("make_intent", INTENTS)
    @pytest.mark.parametrize("mode", list(RunMode))
    @pytest.mark.parametrize("target", list(RunTarget))
    def test_bounds_and_distinct(self, make_intent, mode, target):
        intent = make_intent()
        builder = SearchPlanBuilder(intent, resolve_geo_profile(intent), MODE_PROFILES[mode], target)

        plan = builder.build()

        assert plan.min_query_count <= len(plan.queries) <= plan.max_query_count
        keys = [normalize_text(text) for text in plan.texts]
        assert len(keys) == len(set(keys))
        assert all(len(text) <= MAX_QUERY_LENGTH for text in plan.texts)

    @pytest.mark.unit
    def test_quick_mode_is_smaller_than_deep(self):
        intent = accounting_intent()
        profile = resolve_geo_profile(intent)
        quick = SearchPlanBuilder(intent, profile, MODE_PROFILES[RunMode.QUICK]).build()
        deep = SearchPlanBuilder(intent, profile, MODE_PROFILES[RunMode.DEEP]).build()
        assert len(quick.queries) <= 12
        assert len(deep.queries) > len(quick.queries)


class TestQualify:
    """Tests for geo qualification of queries."""

    @pytest.fixture
    def builder(self):
        intent = accounting_intent()
        return SearchPlanBuilder(intent, resolve_geo_profile(intent), MODE_PROFILES[RunMode.QUICK])

    @pytest.mark.unit
    def test_appends_geo_clause(self, builder):
        assert builder.qualify("ищем бухгалтера") == "ищем бухгалтера Россия"

    @pytest.mark.unit
    def test_keeps_query_with_geo_marker(self, builder):
        assert builder.qualify("ищем бухгалтера в Москве") == "ищем бухгалтера в Москве"

    @pytest.mark.unit
    def test_caps_length(self, builder):
        assert len(builder.qualify("x" * 300)) == MAX_QUERY_LENGTH

    @pytest.mark.unit
    def test_global_scope_adds_nothing(self):
        intent = crm_intent()
        builder = SearchPlanBuilder(intent, GeoProfile(scope=GeoScope.GLOBAL), MODE_PROFILES[RunMode.QUICK])
        assert builder.qualify("looking for crm software") == "looking for crm software"


class TestPlanContent:
    """Tests for query families and ordering."""

    @pytest.mark.unit
    def test_prior_queries_first(self):
        intent = crm_intent()
        builder = SearchPlanBuilder(intent, GeoProfile(scope=GeoScope.GLOBAL), MODE_PROFILES[RunMode.CONTINUE])

        plan = builder.build(["old query one", "old query two", "old query one"])

        assert plan.texts[:2] == ["old query one", "old query two"]
        assert plan.queries[0].template == "prior_run"
        assert plan.texts.count("old query one") == 1

    @pytest.mark.unit
    def test_buyer_plan_uses_signals_and_sources(self):
        intent = accounting_intent()
        plan = SearchPlanBuilder(intent, resolve_geo_profile(intent), MODE_PROFILES[RunMode.DEEP]).build()
        templates = {query.template for query in plan.queries}
        assert "buyer_signal_ru" in templates
        assert {"job", "tender"} & templates
        assert "competitor" not in templates

    @pytest.mark.unit
    def test_competitor_plan(self):
        intent = crm_intent()
        builder = SearchPlanBuilder(
            intent, GeoProfile(scope=GeoScope.GLOBAL), MODE_PROFILES[RunMode.DEEP], RunTarget.COMPETITORS
        )
        plan = builder.build()
        templates = {query.template for query in plan.queries}
        assert "competitor" in templates
        assert "buyer_signal_en" not in templates
