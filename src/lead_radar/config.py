# config.py
import logging
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class LeadRadarConfig:
    """Lead Radar configuration class that loads settings from environment variables."""

    def __init__(self):
        """Initialize the Lead Radar configuration with environment variables."""
        self.logger = logging.getLogger(__name__)

        # Application environment
        self.APP_ENV = self._get_required("APP_ENV", "dev")
        self.LOG_LEVEL = self._get_optional("LOG_LEVEL", "INFO")

        # Text-generation provider settings
        self.LLM_PROVIDER = self._get_optional("LLM_PROVIDER", "none").lower()
        self.LLM_ENDPOINT = self._get_optional(
            "LLM_ENDPOINT", "https://api.openai.com/v1"
        )
        self.LLM_API_KEY = self._get_optional("LLM_API_KEY")
        self.LLM_MODEL = self._get_optional("LLM_MODEL", "gpt-4o-mini")
        # Only used by Azure-style deployments
        self.LLM_API_VERSION = self._get_optional("LLM_API_VERSION", "2024-10-21")

        # Web search provider settings
        self.SEARCH_PROVIDER = self._get_optional("SEARCH_PROVIDER", "none").lower()
        self.SEARCH_API_KEY = self._get_optional("SEARCH_API_KEY")
        self.SEARCH_BASE_URL = self._get_optional(
            "SEARCH_BASE_URL", "https://serpapi.com/search.json"
        )

        # Page fetch settings
        self.FETCH_USER_AGENT = self._get_optional(
            "FETCH_USER_AGENT",
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
        )

        # Classification thresholds (0-100 scale)
        self.LEAD_DROP_THRESHOLD = self._get_int("LEAD_DROP_THRESHOLD", 70, 0, 100)
        self.LEAD_RELEVANCE_THRESHOLD = self._get_int("LEAD_RELEVANCE_THRESHOLD", 75, 0, 100)
        self.LEAD_HOT_THRESHOLD = self._get_int("LEAD_HOT_THRESHOLD", 80, 0, 100)
        self.LEAD_HOT_INTENT_THRESHOLD = self._get_int("LEAD_HOT_INTENT_THRESHOLD", 70, 0, 100)

        # LLM scoring
        self.LLM_SCORING_BATCH_SIZE = self._get_int("LLM_SCORING_BATCH_SIZE", 12, 1, 50)
        self.LLM_SCORING_DISABLED = self._get_bool("LLM_SCORING_DISABLED")

    def llm_configured(self) -> bool:
        """Check whether a text-generation provider is configured."""
        return self.LLM_PROVIDER not in ("", "none", "off", "disabled") and bool(
            self.LLM_API_KEY
        )

    def search_configured(self) -> bool:
        """Check whether a web search provider is configured."""
        if self.SEARCH_PROVIDER in ("", "none", "off", "disabled"):
            return False
        if self.SEARCH_PROVIDER == "serpapi":
            return bool(self.SEARCH_API_KEY)
        return True

    def _get_required(self, name: str, default: Optional[str] = None) -> str:
        """Get a required configuration value from environment variables.

        Args:
            name: The name of the environment variable
            default: Optional default value if not found

        Returns:
            The value of the environment variable or default if provided

        Raises:
            ValueError: If the environment variable is not found and no default is provided
        """
        if name in os.environ:
            return os.environ[name]
        if default is not None:
            logging.warning(
                "Environment variable %s not found, using default value", name
            )
            return default
        raise ValueError(
            f"Environment variable {name} not found and no default provided"
        )

    def _get_optional(self, name: str, default: str = "") -> str:
        """Get an optional configuration value from environment variables.

        Args:
            name: The name of the environment variable
            default: Default value if not found (default: "")

        Returns:
            The value of the environment variable or the default value
        """
        if name in os.environ:
            return os.environ[name]
        return default

    def _get_int(self, name: str, default: int, minimum: int, maximum: int) -> int:
        """Get an integer setting, clamped to [minimum, maximum].

        Raises:
            ValueError: If the variable is set but is not an integer
        """
        raw = self._get_optional(name).strip()
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from None
        if not minimum <= value <= maximum:
            self.logger.warning("%s=%d out of range, clamped to [%d, %d]", name, value, minimum, maximum)
        return max(minimum, min(maximum, value))

    def _get_bool(self, name: str) -> bool:
        """Get a boolean configuration value from environment variables.

        Args:
            name: The name of the environment variable

        Returns:
            True if the environment variable exists and is set to 'true' or '1', False otherwise
        """
        return name in os.environ and os.environ[name].lower() in ["true", "1"]


# Create a global instance of LeadRadarConfig
config = LeadRadarConfig()
