"""Abstract base classes for Lead Radar providers.

Search providers turn a ``SearchRequest`` into a ``SearchResponse``. Page
fetchers turn a URL into a ``FetchedPage``. Both share a requests session
with retries on throttling answers only; timeouts are surfaced as
``ProviderTimeout`` and never retried.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from lead_radar.errors import ProviderError, ProviderTimeout, ProviderUnavailable
from lead_radar.logging_utils import get_logger
from lead_radar.models import FetchedPage, SearchRequest, SearchResponse


class _SessionMixin:
    """Lazily created requests session shared by provider subclasses."""

    max_retries: int = 1
    retry_delay: float = 0.5
    user_agent: str = "LeadRadar/1.0"

    _session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=self.max_retries,
                connect=0,
                read=0,
                backoff_factor=self.retry_delay,
                status_forcelist=[429, 502, 503],
                allowed_methods=["GET"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            session.headers.update({
                "User-Agent": self.user_agent,
                "Accept-Language": "ru,en;q=0.8",
            })
            self._session = session
        return self._session

    def close(self) -> None:
        """Close the requests session and release resources."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes session."""
        self.close()
        return False


class BaseSearchProvider(_SessionMixin, ABC):
    """Abstract base class for web search providers.

    Concrete providers implement ``fetch_results`` (the raw API call) and
    ``parse_results`` (mapping the raw payload to ``SearchResponse``).
    ``search`` wraps both with timing, logging and error mapping.

    Attributes:
        name: Provider identifier, matches the registry key
        base_url: API endpoint
        request_timeout: Socket timeout in seconds
    """

    name: str = "base"
    base_url: str = ""
    request_timeout: float = 20.0

    def __init__(
        self,
        api_key: str = "",
        base_url: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        """Initialize the search provider.

        Args:
            api_key: Provider API key
            base_url: Optional endpoint override
            request_timeout: Optional socket timeout override
        """
        self.api_key = api_key
        if base_url:
            self.base_url = base_url
        if request_timeout is not None:
            self.request_timeout = request_timeout
        self.logger = get_logger(f"providers.{self.name}")

    @abstractmethod
    def fetch_results(self, request: SearchRequest) -> Dict[str, Any]:
        """Call the provider API and return its raw JSON payload.

        Raises:
            ProviderError: If the call fails
        """

    @abstractmethod
    def parse_results(self, payload: Dict[str, Any], request: SearchRequest) -> SearchResponse:
        """Map a raw payload to a ``SearchResponse``.

        Raises:
            MalformedProviderResponse: If the payload breaks the contract
        """

    def search(self, request: SearchRequest) -> SearchResponse:
        """Run one search.

        Returns:
            SearchResponse; ``ok`` is False when the provider failed

        Raises:
            ProviderTimeout: If the request timed out
        """
        start_time = time.time()
        try:
            payload = self.fetch_results(request)
            response = self.parse_results(payload, request)
        except ProviderTimeout:
            raise
        except ProviderError as e:
            self.logger.warning(
                "Search failed",
                extra={"provider": self.name, "error": str(e), "error_code": e.code},
            )
            return SearchResponse(
                ok=False,
                provider=self.name,
                duration_ms=int((time.time() - start_time) * 1000),
                error_code=e.code,
                error_message=str(e),
            )

        duration_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            "Search completed",
            extra={
                "provider": self.name,
                "query": request.query[:120],
                "result_count": len(response.results),
                "duration_ms": duration_ms,
            },
        )
        return response.model_copy(update={"duration_ms": duration_ms, "provider": self.name})

    def get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET a JSON document, mapping transport failures to provider errors."""
        try:
            response = self.session.get(url, params=params, timeout=self.request_timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise ProviderTimeout(f"{self.name} request timed out", provider=self.name) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ProviderUnavailable(
                f"{self.name} returned HTTP {status}", provider=self.name
            ) from e
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(f"{self.name} request error: {e}", provider=self.name) from e
        try:
            return response.json()
        except ValueError as e:
            raise ProviderUnavailable(
                f"{self.name} returned a non-JSON body", provider=self.name
            ) from e

    def __repr__(self) -> str:
        """Return a string representation of the provider."""
        return f"{self.__class__.__name__}(name={self.name}, base_url={self.base_url})"


class BasePageFetcher(_SessionMixin, ABC):
    """Abstract base class for page fetchers."""

    @abstractmethod
    def fetch(self, url: str, timeout: float) -> FetchedPage:
        """Fetch a page.

        Returns:
            FetchedPage; ``blocked`` is True when the page could not be read

        Raises:
            ProviderTimeout: If the request timed out
        """
