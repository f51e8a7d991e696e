"""Rate limiting utilities for Kubernetes API calls."""

from __future__ import annotations

import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from kubernetes.client.exceptions import ApiException

from ..exceptions import ConfigurationError

_F = TypeVar("_F", bound=Callable[..., Any])

# Replaced at startup from OperatorConfig.k8s_rate_limit_per_second
_K8S_RATE_LIMIT_PER_SECOND = 10.0

# Shared by all reconciliation worker threads
_k8s_last_call_time: float = 0.0
_k8s_lock = threading.Lock()


def set_rate_limit(per_second: float) -> None:
    """Set how many Kubernetes API calls per second all workers may make together.

    Raises:
        ConfigurationError: If ``per_second`` is not positive
    """
    global _K8S_RATE_LIMIT_PER_SECOND
    if per_second <= 0:
        raise ConfigurationError(f"K8S_RATE_LIMIT_PER_SECOND must be positive, got {per_second}")
    _K8S_RATE_LIMIT_PER_SECOND = per_second


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.

    Spaces calls at least ``1 / k8s_rate_limit_per_second`` seconds apart to
    avoid overwhelming the API server.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global _k8s_last_call_time
        min_interval = 1.0 / _K8S_RATE_LIMIT_PER_SECOND

        with _k8s_lock:
            time_since_last_call = time.time() - _k8s_last_call_time
            if time_since_last_call < min_interval:
                time.sleep(min_interval - time_since_last_call)
            _k8s_last_call_time = time.time()

        return func(*args, **kwargs)

    return wrapper  # type: ignore


def is_rate_limit_error(e: Exception) -> bool:
    """Check whether an exception is an API server throttling response."""
    if not isinstance(e, ApiException):
        return False
    return e.status == 429 or (e.status == 503 and "rate limit" in str(e).lower())


def handle_rate_limit_error(e: Exception, attempt: int, max_retries: int = 3) -> bool:
    """Back off after a rate limit error.

    Args:
        e: Exception raised by the API call
        attempt: Zero-based retry attempt
        max_retries: Maximum number of retries

    Returns:
        True if the caller should retry, False otherwise
    """
    if not is_rate_limit_error(e) or attempt >= max_retries:
        return False

    # Exponential backoff: 1s, 2s, 4s
    time.sleep(2 ** attempt)
    return True
