# intent_extractor.py
"""Intent extraction: free text to a structured Intent.

The primary path asks the text-generation provider for a schema-shaped
Intent and merges it over a lexical heuristic Intent. The heuristic path
alone is used when the provider is missing, fails, times out or answers
with malformed data. Extraction never raises.
"""

import json
import re
from typing import Any, Dict, List, Optional

from .geo import detect_geo_scope
from .logging_utils import get_logger
from .models import (
    ICP,
    Constraints,
    GeoScope,
    Intent,
    IntentExtraction,
    Language,
    Lexicon,
    Offer,
    RunOptions,
)
from .reference_data import (
    BUYING_SIGNAL_LEXICON,
    COMPANY_SIZE_MARKERS,
    DEFAULT_COMPANY_SIZE,
    DEFAULT_GEO_SCOPE_BY_LANGUAGE,
    DEFAULT_INDUSTRIES,
    DEFAULT_NEGATIVE_LEXICON,
    DEFAULT_ROLES,
    OFFER_STOPWORDS,
)
from .text_utils import detect_language, find_phrases, normalize_list, normalize_whitespace, tokenize
from .timebox import call_with_timeout

_QUOTED_RE = re.compile(r"[«\"“„]([^»\"”“]{2,80})[»\"”“]")
_DOMAIN_RE = re.compile(
    r"\b((?:[a-z0-9-]+\.)+(?:ru|com|io|net|org|kz|by|ai|app|co|рф|pro|biz|online|tech))\b",
    re.IGNORECASE,
)
_OFFER_PATTERNS = (
    re.compile(
        r"(?<!\w)(?:мы\s+)?(?:продаем|продаём|предлагаем|оказываем услуги(?:\s+по)?|занимаемся|делаем|разрабатываем)"
        r"\s+([^.,;:!?\n]{3,80})",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:we\s+)?(?:sell|offer|provide|build|develop)\s+([^.,;:!?\n]{3,80})",
        re.IGNORECASE,
    ),
)
_EXCLUSION_RE = re.compile(
    r"(?:кроме|исключая|не нужны|except|excluding)\s+([^.,;:!?\n]{3,40})",
    re.IGNORECASE,
)
_MUST_HAVE_RE = re.compile(
    r"(?:обязательно|только|must have|only)\s+([^.,;:!?\n]{3,40})",
    re.IGNORECASE,
)

MAX_OFFER_WORDS = 6

INTENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "offer": {
            "type": "object",
            "properties": {
                "productOrService": {"type": "string"},
                "keywords": {"type": "array", "items": {"type": "string"}},
                "synonyms": {"type": "array", "items": {"type": "string"}},
            },
        },
        "icp": {
            "type": "object",
            "properties": {
                "geo": {"type": "array", "items": {"type": "string"}},
                "companySize": {"type": "string"},
                "industries": {"type": "array", "items": {"type": "string"}},
                "roles": {"type": "array", "items": {"type": "string"}},
                "geoScope": {"type": "string", "enum": ["cis", "global", "custom"]},
            },
        },
        "constraints": {
            "type": "object",
            "properties": {
                "language": {"type": "string", "enum": ["ru", "en", "mixed"]},
                "mustHave": {"type": "array", "items": {"type": "string"}},
                "mustNotHave": {"type": "array", "items": {"type": "string"}},
            },
        },
        "buyingSignalLexicon": {
            "type": "object",
            "properties": {
                "ru": {"type": "array", "items": {"type": "string"}},
                "en": {"type": "array", "items": {"type": "string"}},
            },
        },
        "negativeLexicon": {
            "type": "object",
            "properties": {
                "ru": {"type": "array", "items": {"type": "string"}},
                "en": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}


def _lang_key(language: Language) -> str:
    return "en" if language == Language.EN else "ru"


def _offer_phrase(text: str, quoted: List[str]) -> str:
    for pattern in _OFFER_PATTERNS:
        match = pattern.search(text)
        if match:
            words = match.group(1).split()[:MAX_OFFER_WORDS]
            phrase = " ".join(words).strip(" -–\"'«»")
            if phrase:
                return phrase
    if quoted:
        return quoted[0]
    content = [token for token in tokenize(text) if token not in OFFER_STOPWORDS]
    return " ".join(content[:4])


def build_heuristic_intent(text: str, hints: Optional[RunOptions] = None) -> Intent:
    """Build an Intent from text with lexical rules only.

    Args:
        text: Free-text task description
        hints: Request options whose geo settings override detection

    Returns:
        A fully populated Intent
    """
    hints = hints or RunOptions()
    clean = normalize_whitespace(text)
    assumptions: List[str] = []

    language = Language(detect_language(clean))
    lang = _lang_key(language)
    assumptions.append(f"language_detected:{language.value}")

    quoted = normalize_list(_QUOTED_RE.findall(clean))
    domains = normalize_list(_DOMAIN_RE.findall(clean))
    product = _offer_phrase(clean, quoted)

    keywords = [
        token for token in tokenize(product)
        if token not in OFFER_STOPWORDS and len(token) >= 4
    ]
    keywords = normalize_list(keywords + quoted + domains, max_items=12)
    synonyms = [phrase for phrase in quoted if phrase != product.lower()]

    detected_scope, detected_geo = detect_geo_scope(clean)
    if hints.geo_scope is not None:
        geo_scope = hints.geo_scope
        assumptions.append(f"geo_scope_requested:{geo_scope.value}")
    elif hints.geo:
        geo_scope = GeoScope.CUSTOM
        assumptions.append("geo_scope_requested:custom")
    elif detected_scope is not None:
        geo_scope = detected_scope
    else:
        geo_scope = DEFAULT_GEO_SCOPE_BY_LANGUAGE[language.value]
        assumptions.append(f"geo_scope_defaulted:{geo_scope.value}")
    geo = normalize_list(list(hints.geo) + detected_geo)

    company_size = DEFAULT_COMPANY_SIZE
    for size, markers in COMPANY_SIZE_MARKERS:
        if find_phrases(clean, markers):
            company_size = size
            break
    else:
        assumptions.append("company_size_defaulted")

    assumptions.append("industries_defaulted")
    assumptions.append("roles_defaulted")

    exclusions = normalize_list(_EXCLUSION_RE.findall(clean))
    must_have = normalize_list(_MUST_HAVE_RE.findall(clean))
    negative = Lexicon(
        ru=list(DEFAULT_NEGATIVE_LEXICON["ru"]) + (exclusions if lang == "ru" else []),
        en=list(DEFAULT_NEGATIVE_LEXICON["en"]) + (exclusions if lang == "en" else []),
    )

    return Intent(
        task_text=clean,
        offer=Offer(product_or_service=product, keywords=keywords, synonyms=synonyms),
        icp=ICP(
            geo=geo,
            company_size=company_size,
            industries=list(DEFAULT_INDUSTRIES[lang]),
            roles=list(DEFAULT_ROLES[lang]),
            geo_scope=geo_scope,
        ),
        constraints=Constraints(language=language, must_have=must_have, must_not_have=exclusions),
        buying_signal_lexicon=Lexicon(
            ru=list(BUYING_SIGNAL_LEXICON["ru"]),
            en=list(BUYING_SIGNAL_LEXICON["en"]),
        ),
        negative_lexicon=negative,
        assumptions_applied=assumptions,
    )


def _pick_str(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return fallback


def _pick_list(value: Any, fallback: List[str]) -> List[str]:
    items = normalize_list(value) if isinstance(value, list) else []
    return items or list(fallback)


def _pick_enum(enum_cls, value: Any, fallback):
    try:
        return enum_cls(str(value).strip().lower()) if isinstance(value, str) else fallback
    except ValueError:
        return fallback


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def merge_intent(
    heuristic: Intent,
    data: Dict[str, Any],
    hints: Optional[RunOptions] = None,
) -> Intent:
    """Merge a provider answer over the heuristic Intent.

    Each field takes the provider value when it is present and well-typed
    (non-empty for lists and strings); otherwise the heuristic value stays.
    Requested geo settings always win over both.
    """
    hints = hints or RunOptions()
    offer = _section(data, "offer")
    icp = _section(data, "icp")
    constraints = _section(data, "constraints")
    buying = _section(data, "buyingSignalLexicon")
    negative = _section(data, "negativeLexicon")

    geo_scope = _pick_enum(GeoScope, icp.get("geoScope"), heuristic.icp.geo_scope)
    if hints.geo_scope is not None:
        geo_scope = hints.geo_scope
    elif hints.geo:
        geo_scope = GeoScope.CUSTOM
    geo = _pick_list(icp.get("geo"), heuristic.icp.geo)
    if hints.geo:
        geo = normalize_list(list(hints.geo) + geo)

    assumptions = [a for a in heuristic.assumptions_applied if a.startswith(("language_", "geo_scope_requested"))]
    assumptions.append("intent_from_llm")

    return Intent(
        task_text=heuristic.task_text,
        offer=Offer(
            product_or_service=_pick_str(offer.get("productOrService"), heuristic.offer.product_or_service),
            keywords=_pick_list(offer.get("keywords"), heuristic.offer.keywords),
            synonyms=_pick_list(offer.get("synonyms"), heuristic.offer.synonyms),
        ),
        icp=ICP(
            geo=geo,
            company_size=_pick_str(icp.get("companySize"), heuristic.icp.company_size),
            industries=_pick_list(icp.get("industries"), heuristic.icp.industries),
            roles=_pick_list(icp.get("roles"), heuristic.icp.roles),
            geo_scope=geo_scope,
        ),
        constraints=Constraints(
            language=_pick_enum(Language, constraints.get("language"), heuristic.constraints.language),
            must_have=_pick_list(constraints.get("mustHave"), heuristic.constraints.must_have),
            must_not_have=_pick_list(constraints.get("mustNotHave"), heuristic.constraints.must_not_have),
        ),
        buying_signal_lexicon=Lexicon(
            ru=_pick_list(buying.get("ru"), heuristic.buying_signal_lexicon.ru),
            en=_pick_list(buying.get("en"), heuristic.buying_signal_lexicon.en),
        ),
        negative_lexicon=Lexicon(
            ru=_pick_list(negative.get("ru"), heuristic.negative_lexicon.ru),
            en=_pick_list(negative.get("en"), heuristic.negative_lexicon.en),
        ),
        assumptions_applied=assumptions,
    )


class IntentExtractor:
    """Turns a free-text task into an Intent.

    Attributes:
        generator: Optional text-generation provider exposing
            ``generate(prompt, schema, options)``.
    """

    def __init__(self, generator: Optional[Any] = None):
        self.logger = get_logger(__name__)
        self.generator = generator

    def extract(
        self,
        text: str,
        hints: Optional[RunOptions] = None,
        timeout: float = 20.0,
    ) -> IntentExtraction:
        """Extract an Intent; never raises.

        Args:
            text: Free-text task description
            hints: Request options (geo overrides)
            timeout: Seconds to wait for the provider

        Returns:
            IntentExtraction; ``used_fallback`` is True when the heuristic
            Intent was returned, ``warning`` names the provider failure
        """
        heuristic = build_heuristic_intent(text, hints)

        if self.generator is None:
            self.logger.info("No text-generation provider, using heuristic intent")
            return IntentExtraction(intent=heuristic, used_fallback=True)

        prompt = self._build_prompt(heuristic)
        try:
            result = call_with_timeout(
                self.generator.generate,
                timeout,
                prompt,
                INTENT_SCHEMA,
                {"temperature": 0.1, "max_tokens": 900},
                provider="llm",
            )
            if not isinstance(result.data, dict) or not result.data:
                raise ValueError("empty intent payload")
            intent = merge_intent(heuristic, result.data, hints)
        except Exception as e:
            code = getattr(e, "code", "MALFORMED_RESPONSE")
            self.logger.warning(
                "Intent extraction fell back to heuristics",
                extra={"error": str(e), "error_code": code},
            )
            return IntentExtraction(
                intent=heuristic.model_copy(
                    update={"assumptions_applied": heuristic.assumptions_applied + ["intent_fallback"]}
                ),
                used_fallback=True,
                warning=code,
            )

        self.logger.info(
            "Intent extracted",
            extra={
                "offer": intent.offer.product_or_service,
                "geo_scope": intent.icp.geo_scope.value,
                "language": intent.constraints.language.value,
                "usage_tokens": result.usage_tokens,
            },
        )
        return IntentExtraction(intent=intent, used_fallback=False)

    def _build_prompt(self, heuristic: Intent) -> str:
        """Build the extraction prompt with heuristic hints."""
        hints = {
            "language": heuristic.constraints.language.value,
            "geoScope": heuristic.icp.geo_scope.value,
            "geo": heuristic.icp.geo,
        }
        return (
            "Extract what this business sells and whom it should sell to.\n"
            "Keep phrases short and in the language of the task. Buying-signal "
            "phrases are what a customer writes when looking for this offer.\n\n"
            f"Task:\n{heuristic.task_text}\n\n"
            f"Detected hints: {json.dumps(hints, ensure_ascii=False)}"
        )
