# llm_client.py
"""REST client for structured text generation (OpenAI-compatible APIs)."""

import json
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import config
from .errors import MalformedProviderResponse, ProviderTimeout, ProviderUnavailable
from .logging_utils import get_logger
from .models import GenerationResult


class LLMClient:
    """Text-generation client returning schema-shaped JSON.

    Talks to either the public OpenAI API or an Azure OpenAI deployment
    through plain REST calls via requests. Callers see a single operation,
    ``generate(prompt, schema, options)``, and get ``GenerationResult``
    back or a ``ProviderError`` subclass.
    """

    # Default request timeout in seconds; callers time-box on top of this
    DEFAULT_TIMEOUT = 30

    # Retries only for throttling and 5xx answers, never for timeouts
    MAX_RETRIES = 1

    BASE_RETRY_DELAY = 0.5

    def __init__(
        self,
        provider: Optional[str] = None,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        """Initialize the LLM client.

        Args:
            provider: "openai" or "azure". Defaults to config value.
            endpoint: API base URL. Defaults to config value.
            model: Model (or Azure deployment) name. Defaults to config value.
            api_key: API key. Defaults to config value.
            api_version: Azure API version. Defaults to config value.
            timeout: Request timeout in seconds.
        """
        self.logger = get_logger(__name__)

        self.provider = (provider or config.LLM_PROVIDER).lower()
        self.endpoint = (endpoint or config.LLM_ENDPOINT).rstrip("/")
        self.model = model or config.LLM_MODEL
        self.api_version = api_version or config.LLM_API_VERSION
        self.timeout = timeout
        self._api_key = api_key or config.LLM_API_KEY

        # Lazy-initialized session
        self._session: Optional[requests.Session] = None

    def _get_session(self) -> requests.Session:
        """Get or create a requests session with retry configuration."""
        if self._session is None:
            self._session = requests.Session()

            retry_strategy = Retry(
                total=self.MAX_RETRIES,
                connect=0,
                read=0,
                backoff_factor=self.BASE_RETRY_DELAY,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["POST"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self._session.mount("https://", adapter)
            self._session.mount("http://", adapter)

        return self._session

    def _get_auth_headers(self) -> Dict[str, str]:
        """Get authentication headers for the configured provider."""
        headers = {"Content-Type": "application/json"}
        if self.provider == "azure":
            headers["api-key"] = self._api_key
        else:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_api_url(self) -> str:
        """Build the chat completions URL for the configured provider."""
        if self.provider == "azure":
            return (
                f"{self.endpoint}/openai/deployments/{self.model}"
                f"/chat/completions?api-version={self.api_version}"
            )
        return f"{self.endpoint}/chat/completions"

    def _make_request(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> Dict[str, Any]:
        """Make one chat completion request.

        Raises:
            ProviderTimeout: On request timeout
            ProviderUnavailable: On connection or HTTP errors
            MalformedProviderResponse: If the body is not JSON
        """
        payload: Dict[str, Any] = {
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        if self.provider != "azure":
            payload["model"] = self.model

        self.logger.debug(
            "Making LLM API request",
            extra={"model": self.model, "message_count": len(messages)},
        )

        try:
            response = self._get_session().post(
                self._build_api_url(),
                headers=self._get_auth_headers(),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise ProviderTimeout(
                f"LLM API request timed out after {self.timeout}s", provider="llm"
            ) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            self.logger.error(
                f"LLM API request failed: {e}",
                extra={"status_code": status},
            )
            raise ProviderUnavailable(
                f"LLM API returned HTTP {status}", provider="llm", code=f"HTTP_{status}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(
                f"LLM API request error: {e}", provider="llm", code="LLM_UNREACHABLE"
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedProviderResponse(
                "LLM API returned a non-JSON body", provider="llm"
            ) from e

    def generate(
        self,
        prompt: str,
        schema: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> GenerationResult:
        """Generate a JSON object shaped like ``schema``.

        Args:
            prompt: The task prompt
            schema: JSON schema (or example shape) the answer must follow
            options: Optional ``temperature`` and ``max_tokens``

        Returns:
            GenerationResult with the parsed object and token usage

        Raises:
            ProviderError: On any transport, HTTP or parsing failure
        """
        options = options or {}
        system_prompt = (
            "You are a precise B2B lead research assistant. "
            "Answer with a single JSON object that follows this schema, "
            "no prose, no markdown:\n"
            f"{json.dumps(schema, ensure_ascii=False)}"
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

        result = self._make_request(
            messages=messages,
            temperature=float(options.get("temperature", 0.2)),
            max_tokens=int(options.get("max_tokens", 2048)),
        )

        choices = result.get("choices") or []
        if not choices:
            raise MalformedProviderResponse("No choices in API response", provider="llm")
        content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            raise MalformedProviderResponse("Empty content in API response", provider="llm")

        try:
            data = json.loads(_strip_code_fence(content))
        except json.JSONDecodeError as e:
            self.logger.error(
                f"Failed to parse JSON response: {e}",
                extra={"content": content[:500]},
            )
            raise MalformedProviderResponse(
                f"Invalid JSON in response: {e}", provider="llm"
            ) from e
        if not isinstance(data, dict):
            raise MalformedProviderResponse("Response JSON is not an object", provider="llm")

        usage = result.get("usage") or {}
        return GenerationResult(
            data=data,
            usage_tokens=int(usage.get("total_tokens") or 0),
        )

    def get_usage_stats(self) -> Dict[str, Any]:
        """Get client configuration for diagnostics."""
        return {
            "provider": self.provider,
            "endpoint": self.endpoint,
            "model": self.model,
            "using_api_key": bool(self._api_key),
        }

    def close(self) -> None:
        """Close the HTTP session and clean up resources."""
        if self._session:
            self._session.close()
            self._session = None
            self.logger.debug("LLM client session closed")

    def __enter__(self) -> "LLMClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()
