# timebox.py
"""Time-boxed execution of external provider calls."""

import contextvars
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Optional, TypeVar

from .errors import ProviderTimeout
from .logging_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Shared pool for provider calls. A call that overruns its time box keeps
# its worker until the provider returns; its result is discarded.
_executor: Optional[ThreadPoolExecutor] = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="lead-radar-call")
    return _executor


def call_with_timeout(
    func: Callable[..., T],
    timeout: float,
    *args: Any,
    provider: str = "",
    **kwargs: Any,
) -> T:
    """Run ``func`` and wait at most ``timeout`` seconds for it.

    Args:
        func: The provider call to run
        timeout: Seconds to wait before giving up
        provider: Provider name for error reporting

    Returns:
        Whatever ``func`` returns

    Raises:
        ProviderTimeout: If ``func`` does not finish in time. The call is
            abandoned, never retried.
        Exception: Anything ``func`` raises is re-raised unchanged.
    """
    # Worker threads log with the caller's run context
    context = contextvars.copy_context()
    future = _get_executor().submit(context.run, func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        logger.warning(
            "Provider call timed out",
            extra={"provider": provider, "timeout_s": timeout},
        )
        raise ProviderTimeout(
            f"{provider or 'provider'} call exceeded {timeout:.1f}s",
            provider=provider,
        ) from None
