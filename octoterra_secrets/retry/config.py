"""Backoff settings for destination API retries."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryConfiguration:
    """How often and how long to wait when an API call is retried.

    The delay before attempt ``n + 1`` is ``base_delay * 2 ** (n - 1)`` plus a
    fixed ``jitter``, capped at ``max_delay``. A Retry-After header sent by
    the server replaces the computed delay, under the same cap.

    Attributes:
        max_attempts: Attempts per call, the first one included
        base_delay: Delay in seconds after the first failed attempt
        max_delay: Cap in seconds on any single wait
        jitter: Fixed seconds added to every computed delay
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter: float = 0.5

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be > 0, got {self.base_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay must be >= base_delay, got {self.max_delay} < {self.base_delay}"
            )
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")

    def backoff(self, attempt_number: int) -> float:
        """Seconds to wait after failed attempt ``attempt_number`` (1-based)."""
        delay = self.base_delay * (2 ** (attempt_number - 1)) + self.jitter
        return min(delay, self.max_delay)

    def cap(self, delay: float) -> float:
        return min(delay, self.max_delay)
