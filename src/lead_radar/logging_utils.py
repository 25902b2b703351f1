# logging_utils.py
"""Logging for Lead Radar runs.

Every record carries the fields of the active run context (``run_id``,
``mode``, ``stage``) so that one run can be followed across the search,
enrichment and scoring stages. Context lives in a ``ContextVar``; provider
calls that run on worker threads get a copy of it (see ``timebox``).

Extra fields are made log-safe: values under secret-looking keys are
masked and long text values (page text, snippets, prompts) are cut.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import config

ROOT_LOGGER_NAME = "lead_radar"

# Top-level keys of a structured record; everything else goes under "extra"
CONTEXT_FIELDS = ("run_id", "mode", "stage")

SECRET_KEY_MARKERS = ("api_key", "apikey", "token", "secret", "password", "authorization")
MASK = "***"
MAX_FIELD_LENGTH = 300

NOISY_LOGGERS = ("urllib3", "requests", "charset_normalizer", "concurrent.futures")

_run_context: ContextVar[Dict[str, Any]] = ContextVar("lead_radar_log_context", default={})

# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


def safe_value(key: str, value: Any) -> Any:
    """Mask secrets and shorten long strings for log output."""
    lowered = key.lower()
    if any(marker in lowered for marker in SECRET_KEY_MARKERS):
        return MASK if value else value
    if isinstance(value, str) and len(value) > MAX_FIELD_LENGTH:
        return value[:MAX_FIELD_LENGTH] + "..."
    return value


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """User-supplied fields of a record, log-safe."""
    extras = {}
    for key, value in record.__dict__.items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        extras[key] = safe_value(key, value)
    return extras


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; run context fields sit at the top level."""

    def __init__(self, service_name: str = "lead-radar"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        extras = record_extras(record)
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            if name in extras:
                log_data[name] = extras.pop(name)
        if extras:
            log_data["extra"] = extras
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Single-line output for local runs: run id and stage, then key=value extras."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        extras = record_extras(record)
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        run = extras.pop("run_id", "-")
        stage = extras.pop("stage", "")
        extras.pop("mode", None)
        prefix = f"[{timestamp}] {level} [{run}{'/' + stage if stage else ''}]"
        fields = " ".join(f"{key}={value}" for key, value in extras.items())

        line = f"{prefix} {record.getMessage()}"
        if fields:
            line = f"{line} | {fields}"
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: Optional[str] = None,
    structured: Optional[bool] = None,
    service_name: str = "lead-radar",
) -> logging.LoggerAdapter:
    """Configure the root logger for a Lead Radar process.

    Args:
        level: Log level name. Defaults to ``config.LOG_LEVEL``.
        structured: JSON output. Defaults to True unless ``APP_ENV`` is dev.
        service_name: Service name put on structured records.

    Returns:
        The ``lead_radar`` logger
    """
    level = (level or config.LOG_LEVEL or "INFO").upper()
    log_level = getattr(logging, level, logging.INFO)
    if structured is None:
        structured = config.APP_ENV != "dev"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(StructuredFormatter(service_name) if structured else ConsoleFormatter())
    root_logger.addHandler(handler)

    # Provider HTTP chatter only shows up in DEBUG
    third_party_level = logging.WARNING if log_level > logging.DEBUG else log_level
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logger = get_logger(ROOT_LOGGER_NAME)
    logger.debug("Logging initialized", extra={"log_level": level, "structured": structured})
    return logger


def get_logger(name: str) -> logging.LoggerAdapter:
    """Logger under the ``lead_radar`` namespace that adds the run context."""
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return ContextAdapter(logging.getLogger(name), {})


def current_context() -> Dict[str, Any]:
    """Copy of the active run context."""
    return dict(_run_context.get())


class LogContext:
    """Adds fields to every record logged inside the block.

    Blocks nest; inner fields override outer ones until the inner block
    exits.

    Example:
        >>> with LogContext(run_id="3f2a9c", mode="quick"):
        ...     with LogContext(stage="search"):
        ...         logger.info("Search completed")
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token = None

    def __enter__(self) -> "LogContext":
        merged = current_context()
        merged.update(self.fields)
        self._token = _run_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _run_context.reset(self._token)


class ContextAdapter(logging.LoggerAdapter):
    """Merges the run context under the call's own ``extra`` fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = current_context()
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs
