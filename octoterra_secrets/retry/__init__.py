"""Retry module for resilient destination API calls with exponential backoff."""

from .config import RetryConfiguration
from .exceptions import RetryExhaustedException
from .tenacity_base import get_tenacity_decorator
from .decorators import (
    with_api_retry,
    API_RETRYABLE_EXCEPTIONS,
    API_RETRYABLE_STATUS_CODES,
    is_api_retryable_error,
    is_api_retryable_error_state,
    RetryAfterWaitStrategy,
)

__all__ = [
    "RetryConfiguration",
    "RetryExhaustedException",
    "get_tenacity_decorator",
    "with_api_retry",
    "API_RETRYABLE_EXCEPTIONS",
    "API_RETRYABLE_STATUS_CODES",
    "is_api_retryable_error",
    "is_api_retryable_error_state",
    "RetryAfterWaitStrategy",
]
