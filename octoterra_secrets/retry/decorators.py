"""Retry decorators for calls to the destination Octopus HTTP API."""

import email.utils
import logging
from datetime import timezone
from functools import wraps
from typing import Callable, Optional

import tenacity
from requests.exceptions import ConnectionError, HTTPError, Timeout

from .config import RetryConfiguration
from .exceptions import RetryExhaustedException
from .tenacity_base import get_tenacity_decorator

logger = logging.getLogger(__name__)


# Transport failures worth another attempt; HTTPError is filtered by status code
API_RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    Timeout,
    HTTPError,
)

# Status codes retried in addition to every 5xx
API_RETRYABLE_STATUS_CODES = frozenset({429})


def is_api_retryable_error(exception: BaseException) -> bool:
    """Check whether a failed API call is worth retrying.

    Connection errors and timeouts are retried. HTTP errors are retried for
    429 and 5xx responses only; any other 4xx fails immediately.
    """
    if isinstance(exception, HTTPError):
        response = getattr(exception, "response", None)
        status_code = response.status_code if response is not None else None
        if status_code is None:
            return False
        return status_code in API_RETRYABLE_STATUS_CODES or 500 <= status_code < 600

    return isinstance(exception, API_RETRYABLE_EXCEPTIONS)


def is_api_retryable_error_state(retry_state: tenacity.RetryCallState) -> bool:
    """Tenacity predicate wrapping :func:`is_api_retryable_error`."""
    if retry_state.outcome is None:
        return False

    exception = retry_state.outcome.exception()
    if exception is None:
        return False

    return is_api_retryable_error(exception)


class RetryAfterWaitStrategy:
    """Wait strategy that respects Retry-After headers from HTTP responses.

    Uses the Retry-After header value if available, otherwise the
    configuration's exponential backoff.
    """

    def __init__(self, config: RetryConfiguration):
        self.config = config

    def __call__(self, retry_state: tenacity.RetryCallState) -> float:
        retry_after = self._get_retry_after_from_response(retry_state)
        if retry_after is not None:
            return self.config.cap(retry_after)

        return self.config.backoff(retry_state.attempt_number)

    def _get_retry_after_from_response(
        self,
        retry_state: tenacity.RetryCallState,
    ) -> Optional[float]:
        if retry_state.outcome is None:
            return None

        exception = retry_state.outcome.exception()
        if not isinstance(exception, HTTPError):
            return None

        response = getattr(exception, "response", None)
        if response is None:
            return None

        # requests headers are case-insensitive
        retry_after = response.headers.get("Retry-After")
        if retry_after and isinstance(retry_after, str):
            return self._parse_retry_after(retry_after)

        return None

    def _parse_retry_after(self, value: str) -> float:
        """Parse a Retry-After value given in seconds or as an HTTP date."""
        try:
            return float(value)
        except ValueError:
            pass

        try:
            parsed_date = email.utils.parsedate_to_datetime(value)
            if parsed_date.tzinfo is None:
                parsed_date = parsed_date.replace(tzinfo=timezone.utc)
            now_utc = email.utils.localtime().astimezone(timezone.utc)
            delta = (parsed_date.astimezone(timezone.utc) - now_utc).total_seconds()
            if delta > 0:
                return delta
        except (ValueError, TypeError):
            pass

        logger.warning(f"Failed to parse Retry-After header: {value}")
        return 1.0


def with_api_retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: float = 0.5,
) -> Callable:
    """Decorator to add API-specific retry logic to a function.

    Handles HTTP 429 and 5xx errors, timeouts and connection issues, waiting
    as long as a Retry-After header asks or backing off exponentially. Any
    failure that escapes, whether retries ran out or the error was not
    retryable, is raised as a RetryExhaustedException chained to the cause.

    Examples:
        @with_api_retry(max_attempts=5)
        def get_variable_set(variable_set_id):
            response = session.get(url)
            response.raise_for_status()
            return response.json()
    """
    config = RetryConfiguration(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        jitter=jitter,
    )

    def decorator(func: Callable) -> Callable:
        decorated_func = get_tenacity_decorator(
            config,
            retry_if=is_api_retryable_error_state,
            wait=RetryAfterWaitStrategy(config),
        )(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return decorated_func(*args, **kwargs)
            except tenacity.RetryError as e:
                last_exception = e.last_attempt.exception()
                raise RetryExhaustedException(
                    message=f"All {max_attempts} API retry attempts exhausted",
                    attempts=max_attempts,
                    last_exception=last_exception,
                ) from last_exception
            except Exception as e:
                raise RetryExhaustedException(
                    message="API call failed (non-retryable)",
                    attempts=1,
                    last_exception=e,
                ) from e

        return wrapper
    return decorator
