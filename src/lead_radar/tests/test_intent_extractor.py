# src/lead_radar/tests/test_intent_extractor.py
"""
Unit tests for Lead Radar intent extraction.

Tests cover:
- Heuristic intent for Russian and English tasks
- Requested geo settings overriding detection
- Exclusion phrases becoming negative keywords
- Provider answers merged over the heuristic intent
- Fallback on provider errors, timeouts and malformed answers
"""
import time
from unittest.mock import MagicMock

import pytest

from lead_radar.errors import ProviderError
from lead_radar.intent_extractor import IntentExtractor, build_heuristic_intent, merge_intent
from lead_radar.models import GenerationResult, GeoScope, Language, RunOptions
from lead_radar.reference_data import DEFAULT_INDUSTRIES

RU_TASK = "Мы оказываем услуги по бухгалтерскому аутсорсингу. Ищем клиентов в Москве."
EN_TASK = "We sell CRM software to small businesses worldwide"


@pytest.fixture
def mock_generator():
    """Create a mock text-generation provider."""
    return MagicMock()


class TestHeuristicIntent:
    """Tests for build_heuristic_intent()."""

    @pytest.mark.unit
    def test_russian_task(self):
        intent = build_heuristic_intent(RU_TASK)

        assert intent.constraints.language == Language.RU
        assert intent.offer.product_or_service == "бухгалтерскому аутсорсингу"
        assert "аутсорсингу" in intent.offer.keywords
        assert intent.icp.geo_scope == GeoScope.CIS
        assert intent.icp.geo == ["москв"]
        assert intent.icp.industries == list(DEFAULT_INDUSTRIES["ru"])
        assert "ищем" in intent.buying_signal_lexicon.ru
        assert "language_detected:ru" in intent.assumptions_applied
        assert "company_size_defaulted" in intent.assumptions_applied

    @pytest.mark.unit
    def test_english_task(self):
        intent = build_heuristic_intent(EN_TASK)

        assert intent.constraints.language == Language.EN
        assert intent.offer.product_or_service.startswith("crm software")
        assert intent.icp.geo_scope == GeoScope.GLOBAL
        assert intent.icp.company_size == "smb"
        assert "company_size_defaulted" not in intent.assumptions_applied

    @pytest.mark.unit
    def test_default_geo_scope_by_language(self):
        intent = build_heuristic_intent("Продаем складские стеллажи")
        assert intent.icp.geo_scope == GeoScope.CIS
        assert "geo_scope_defaulted:cis" in intent.assumptions_applied

    @pytest.mark.unit
    def test_requested_geo_scope_wins(self):
        intent = build_heuristic_intent(RU_TASK, RunOptions(geo_scope="global"))
        assert intent.icp.geo_scope == GeoScope.GLOBAL
        assert "geo_scope_requested:global" in intent.assumptions_applied

    @pytest.mark.unit
    def test_requested_geo_names_make_custom_scope(self):
        intent = build_heuristic_intent(EN_TASK, RunOptions(geo=["Germany"]))
        assert intent.icp.geo_scope == GeoScope.CUSTOM
        assert intent.icp.geo[0] == "germany"

    @pytest.mark.unit
    def test_exclusions_become_negative_keywords(self):
        intent = build_heuristic_intent("Продаем CRM, кроме банков")
        assert "банков" in intent.constraints.must_not_have
        assert "банков" in intent.negative_lexicon.ru

    @pytest.mark.unit
    def test_empty_text_never_raises(self):
        intent = build_heuristic_intent("")
        assert intent.offer.product_or_service == ""
        assert intent.constraints.language == Language.MIXED


class TestMergeIntent:
    """Tests for merge_intent()."""

    @pytest.mark.unit
    def test_provider_values_override(self):
        heuristic = build_heuristic_intent(RU_TASK)
        merged = merge_intent(heuristic, {
            "offer": {"productOrService": "Бухгалтерский аутсорсинг", "keywords": ["бухгалтерия"]},
            "icp": {"geoScope": "custom", "geo": ["Казахстан"]},
        })

        assert merged.offer.product_or_service == "бухгалтерский аутсорсинг"
        assert merged.offer.keywords == ["бухгалтерия"]
        assert merged.icp.geo_scope == GeoScope.CUSTOM
        assert merged.icp.geo == ["казахстан"]
        assert merged.icp.industries == heuristic.icp.industries
        assert "intent_from_llm" in merged.assumptions_applied

    @pytest.mark.unit
    def test_malformed_fields_keep_heuristic_values(self):
        heuristic = build_heuristic_intent(RU_TASK)
        merged = merge_intent(heuristic, {
            "offer": {"productOrService": "", "keywords": "not a list"},
            "constraints": {"language": "klingon"},
            "icp": "nonsense",
        })

        assert merged.offer.product_or_service == heuristic.offer.product_or_service
        assert merged.offer.keywords == heuristic.offer.keywords
        assert merged.constraints.language == Language.RU
        assert merged.icp.geo_scope == heuristic.icp.geo_scope

    @pytest.mark.unit
    def test_requested_scope_beats_provider(self):
        hints = RunOptions(geo_scope="cis")
        heuristic = build_heuristic_intent(EN_TASK, hints)
        merged = merge_intent(heuristic, {"icp": {"geoScope": "global"}}, hints)
        assert merged.icp.geo_scope == GeoScope.CIS


class TestIntentExtractor:
    """Tests for IntentExtractor.extract()."""

    @pytest.mark.unit
    def test_without_provider_uses_heuristics(self):
        extraction = IntentExtractor(None).extract(RU_TASK)
        assert extraction.used_fallback is True
        assert extraction.warning is None
        assert extraction.intent.icp.geo_scope == GeoScope.CIS

    @pytest.mark.unit
    def test_provider_answer_is_merged(self, mock_generator):
        mock_generator.generate.return_value = GenerationResult(
            data={"offer": {"productOrService": "бухгалтерский аутсорсинг"}},
            usage_tokens=120,
        )

        extraction = IntentExtractor(mock_generator).extract(RU_TASK)

        assert extraction.used_fallback is False
        assert extraction.intent.offer.product_or_service == "бухгалтерский аутсорсинг"
        prompt, schema, options = mock_generator.generate.call_args[0]
        assert RU_TASK in prompt
        assert "offer" in schema["properties"]
        assert options["temperature"] == 0.1

    @pytest.mark.unit
    def test_provider_error_falls_back(self, mock_generator):
        mock_generator.generate.side_effect = ProviderError("boom", provider="llm", code="LLM_ERROR")

        extraction = IntentExtractor(mock_generator).extract(RU_TASK)

        assert extraction.used_fallback is True
        assert extraction.warning == "LLM_ERROR"
        assert "intent_fallback" in extraction.intent.assumptions_applied

    @pytest.mark.unit
    def test_unexpected_exception_falls_back(self, mock_generator):
        mock_generator.generate.side_effect = RuntimeError("unexpected")
        extraction = IntentExtractor(mock_generator).extract(RU_TASK)
        assert extraction.used_fallback is True
        assert extraction.warning == "MALFORMED_RESPONSE"

    @pytest.mark.unit
    def test_empty_payload_falls_back(self, mock_generator):
        mock_generator.generate.return_value = GenerationResult(data={})
        extraction = IntentExtractor(mock_generator).extract(RU_TASK)
        assert extraction.used_fallback is True
        assert extraction.warning == "MALFORMED_RESPONSE"

    @pytest.mark.unit
    def test_timeout_falls_back(self):
        """Test a provider that overruns its time box is abandoned."""
        generator = MagicMock()
        generator.generate.side_effect = lambda *args: time.sleep(0.5)

        extraction = IntentExtractor(generator).extract(RU_TASK, timeout=0.05)

        assert extraction.used_fallback is True
        assert extraction.warning == "PROVIDER_TIMEOUT"
