"""Providers package for Lead Radar.

This package holds the external collaborators of the pipeline: web search
providers and page fetchers.

The SEARCH_PROVIDERS registry maps provider names (the ``SEARCH_PROVIDER``
setting) to their classes. Providers are registered when their modules are
imported.
"""

from typing import TYPE_CHECKING, Dict, List, Optional, Type

if TYPE_CHECKING:
    from lead_radar.config import LeadRadarConfig
    from lead_radar.providers.base import BaseSearchProvider

# Registry mapping provider names to search provider classes
SEARCH_PROVIDERS: Dict[str, Type["BaseSearchProvider"]] = {}


def register_search_provider(name: str):
    """Decorator to register a search provider class.

    Args:
        name: The provider identifier (e.g., "serpapi")

    Returns:
        Decorator function that registers the class

    Example:
        @register_search_provider("serpapi")
        class SerpApiSearchProvider(BaseSearchProvider):
            ...
    """
    def decorator(cls: Type["BaseSearchProvider"]) -> Type["BaseSearchProvider"]:
        SEARCH_PROVIDERS[name.lower()] = cls
        return cls
    return decorator


def get_search_provider(name: str) -> Optional[Type["BaseSearchProvider"]]:
    """Get a search provider class by name, or None if unknown."""
    return SEARCH_PROVIDERS.get((name or "").lower())


def get_available_providers() -> List[str]:
    """Get a list of all registered search provider names."""
    return list(SEARCH_PROVIDERS.keys())


def build_search_provider(
    cfg: "LeadRadarConfig",
) -> Optional["BaseSearchProvider"]:
    """Instantiate the configured search provider.

    Returns:
        Provider instance, or None when search is not configured
    """
    if not cfg.search_configured():
        return None
    provider_cls = get_search_provider(cfg.SEARCH_PROVIDER)
    if provider_cls is None:
        return None
    return provider_cls(api_key=cfg.SEARCH_API_KEY, base_url=cfg.SEARCH_BASE_URL)


# Import implementations to trigger registration
from lead_radar.providers.serpapi import SerpApiSearchProvider  # noqa: E402,F401


__all__ = [
    "SEARCH_PROVIDERS",
    "register_search_provider",
    "get_search_provider",
    "get_available_providers",
    "build_search_provider",
]
