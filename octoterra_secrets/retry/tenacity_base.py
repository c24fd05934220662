"""Tenacity integration utilities for retry logic."""

import logging
from typing import Callable

import tenacity
from tenacity import retry, stop_after_attempt

from .config import RetryConfiguration

logger = logging.getLogger(__name__)


def before_sleep_log(
    retry_state: tenacity.RetryCallState,
    logger: logging.Logger = logger,
) -> None:
    """Log before each retry attempt.

    Only the exception type and message are logged; request bodies never are.
    """
    if retry_state.outcome is None:
        return

    exception = retry_state.outcome.exception()
    if exception:
        logger.warning(
            f"Retrying (attempt {retry_state.attempt_number}) "
            f"after exception: {type(exception).__name__}: {exception}"
        )


def get_tenacity_decorator(
    config: RetryConfiguration,
    retry_if: Callable[[tenacity.RetryCallState], bool],
    wait: Callable[[tenacity.RetryCallState], float],
) -> Callable:
    """Create a tenacity decorator stopping after ``config.max_attempts``.

    Args:
        config: Attempt limit and backoff settings
        retry_if: Predicate over the call state deciding whether to retry
        wait: Wait strategy returning the seconds before the next attempt
    """
    return retry(
        wait=wait,
        stop=stop_after_attempt(config.max_attempts),
        retry=retry_if,
        before_sleep=before_sleep_log,
    )
