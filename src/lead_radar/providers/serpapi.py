"""SerpApi web search provider.

Queries the SerpApi JSON endpoint (Google or Yandex engines) and maps its
``organic_results`` to ``SearchResultItem`` values.
"""

from typing import Any, Dict, List

from lead_radar.errors import MalformedProviderResponse, ProviderUnavailable
from lead_radar.models import SearchRequest, SearchResponse, SearchResultItem
from lead_radar.providers import register_search_provider
from lead_radar.providers.base import BaseSearchProvider

# Google ``gl``/``hl`` per geo hint
GEO_LOCALES = {
    "ru": ("ru", "ru"),
    "kz": ("kz", "ru"),
    "by": ("by", "ru"),
    "uz": ("uz", "ru"),
    "de": ("de", "de"),
    "us": ("us", "en"),
    "uk": ("uk", "en"),
}


@register_search_provider("serpapi")
class SerpApiSearchProvider(BaseSearchProvider):
    """Search provider backed by SerpApi."""

    name = "serpapi"
    base_url = "https://serpapi.com/search.json"

    def fetch_results(self, request: SearchRequest) -> Dict[str, Any]:
        if not self.api_key:
            raise ProviderUnavailable("SerpApi key is not configured", provider=self.name)

        params: Dict[str, Any] = {
            "api_key": self.api_key,
            "engine": "yandex" if request.source == "yandex" else "google",
        }
        if params["engine"] == "yandex":
            params["text"] = request.query
        else:
            params["q"] = request.query
            params["num"] = request.limit
            locale = GEO_LOCALES.get(request.geo)
            if locale:
                params["gl"], params["hl"] = locale

        return self.get_json(self.base_url, params)

    def parse_results(self, payload: Dict[str, Any], request: SearchRequest) -> SearchResponse:
        if not isinstance(payload, dict):
            raise MalformedProviderResponse("SerpApi payload is not an object", provider=self.name)
        if payload.get("error"):
            # "Google hasn't returned any results" is an empty page, not an outage
            if "hasn't returned any results" in str(payload["error"]):
                return SearchResponse(ok=True, provider=self.name)
            raise ProviderUnavailable(str(payload["error"]), provider=self.name)

        organic = payload.get("organic_results") or []
        if not isinstance(organic, list):
            raise MalformedProviderResponse("organic_results is not a list", provider=self.name)

        results: List[SearchResultItem] = []
        for index, item in enumerate(organic[: request.limit]):
            if not isinstance(item, dict):
                continue
            results.append(SearchResultItem(
                url=str(item.get("link") or ""),
                title=str(item.get("title") or ""),
                snippet=str(item.get("snippet") or ""),
                rank=int(item.get("position") or index + 1),
            ))
        return SearchResponse(ok=True, results=results, provider=self.name)
