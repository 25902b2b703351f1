# geo.py
"""Geo scope detection, profile resolution and candidate geo fit."""

from typing import List, Optional, Tuple

from .logging_utils import get_logger
from .models import GeoFit, GeoProfile, GeoScope, Intent
from .reference_data import (
    CIS_COUNTRY_TLDS,
    CIS_MARKERS,
    CIS_QUERY_CLAUSE,
    CIS_TLDS,
    COUNTRY_GROUPS,
    GLOBAL_MARKERS,
)
from .text_utils import count_letters, domain_of, find_phrases, is_majority_cyrillic, normalize_list

logger = get_logger(__name__)

# Snippet-sized texts without any marker stay undecided until enrichment.
UNDECIDED_MAX_TEXT = 400
# A CIS run rejects text this long that is mostly Latin and has no marker.
LATIN_REJECT_MIN_LETTERS = 40


def detect_geo_scope(text: str) -> Tuple[Optional[GeoScope], List[str]]:
    """Detect a geo scope and the geo names mentioned in free text.

    Returns:
        (scope, geo names); scope is None when the text says nothing
    """
    foreign: List[str] = []
    for tld, aliases in COUNTRY_GROUPS:
        if tld in CIS_COUNTRY_TLDS:
            continue
        foreign.extend(find_phrases(text, aliases))
    cis_hits = find_phrases(text, CIS_MARKERS)

    if foreign:
        return GeoScope.CUSTOM, normalize_list(foreign + cis_hits)
    if cis_hits:
        return GeoScope.CIS, normalize_list(cis_hits)
    if find_phrases(text, GLOBAL_MARKERS):
        return GeoScope.GLOBAL, []
    return None, []


def _country_groups_for(geo: List[str]) -> List[Tuple[str, Tuple[str, ...]]]:
    groups = []
    for tld, aliases in COUNTRY_GROUPS:
        if any(find_phrases(name, aliases) for name in geo):
            groups.append((tld, aliases))
    return groups


def resolve_geo_profile(intent: Intent) -> GeoProfile:
    """Build the run's GeoProfile from the Intent's geo scope.

    A custom scope without any geo names cannot filter anything and is
    resolved as global.
    """
    scope = intent.icp.geo_scope
    language = intent.constraints.language.value

    if scope == GeoScope.CIS:
        markers = normalize_list(list(CIS_MARKERS) + list(intent.icp.geo), max_items=128)
        return GeoProfile(
            scope=GeoScope.CIS,
            markers=markers,
            tld_allowlist=list(CIS_TLDS),
            query_clause=CIS_QUERY_CLAUSE.get(language, CIS_QUERY_CLAUSE["ru"]),
            terms=markers,
        )

    if scope == GeoScope.CUSTOM and intent.icp.geo:
        groups = _country_groups_for(intent.icp.geo)
        markers = list(intent.icp.geo)
        for _, aliases in groups:
            markers.extend(aliases)
        markers = normalize_list(markers, max_items=64)
        return GeoProfile(
            scope=GeoScope.CUSTOM,
            markers=markers,
            tld_allowlist=[tld for tld, _ in groups] or None,
            query_clause=intent.icp.geo[0],
            terms=markers,
        )

    if scope == GeoScope.CUSTOM:
        logger.info("Custom geo scope without geo names, using global")
    return GeoProfile(scope=GeoScope.GLOBAL)


def evaluate_geo_fit(profile: GeoProfile, url: str, text: str, final: bool = False) -> GeoFit:
    """Check whether a page fits the run's geo profile.

    Args:
        profile: The run's GeoProfile
        url: Candidate URL
        text: Whatever text is known (title/snippet, or full page)
        final: Whether ``text`` is the full page; final checks never
            return undecided

    Returns:
        GeoFit; ``allowed`` is None when short text gives no evidence
    """
    if profile.scope == GeoScope.GLOBAL:
        return GeoFit(allowed=True, reason="global")

    host = domain_of(url)
    if profile.tld_allowlist and any(host.endswith(tld) for tld in profile.tld_allowlist):
        return GeoFit(allowed=True, reason="tld")

    if find_phrases(text, profile.markers):
        return GeoFit(allowed=True, reason="marker")

    if profile.scope == GeoScope.CIS:
        if is_majority_cyrillic(text):
            return GeoFit(allowed=True, reason="cyrillic")
        cyrillic, latin = count_letters(text)
        if latin >= LATIN_REJECT_MIN_LETTERS and latin > cyrillic:
            return GeoFit(allowed=False, reason="latin_text")

    if not final and len(text or "") < UNDECIDED_MAX_TEXT:
        return GeoFit(allowed=None, reason="undecided")
    return GeoFit(allowed=False, reason="no_marker")


def search_geo_hint(profile: GeoProfile) -> str:
    """Country hint passed to the search provider."""
    if profile.scope == GeoScope.CIS:
        return "ru"
    if profile.scope == GeoScope.CUSTOM and profile.tld_allowlist:
        return profile.tld_allowlist[0].lstrip(".")
    return ""
