"""
Reconnect backoff for push channels.
"""

from typing import Dict, Any
from enum import Enum


class RetryStrategy(Enum):
    """Retry strategies."""
    IMMEDIATE = "immediate"
    EXPONENTIAL_BACKOFF = "exponential_backoff"
    LINEAR_BACKOFF = "linear_backoff"
    FIXED_DELAY = "fixed_delay"


class ReconnectPolicy:
    """
    Bounded reconnect schedule for a single push channel.

    The attempt counter grows with each scheduled reconnect and is reset once
    the channel delivers again, so the bound applies to consecutive failures.
    """

    def __init__(
        self,
        max_retries: int = 5,
        strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_BACKOFF,
        base_delay: float = 1.0,
        max_delay: float = 30.0
    ):
        """
        Initialize reconnect policy.

        Args:
            max_retries: Maximum number of consecutive reconnects
            strategy: Retry strategy
            base_delay: Base delay in seconds
            max_delay: Maximum delay in seconds
        """
        self.max_retries = max_retries
        self.strategy = strategy
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.attempts = 0

    @classmethod
    def from_config(cls, stream_config: Dict[str, Any]) -> "ReconnectPolicy":
        """
        Build a policy from the ``stream`` section of a validated config.

        Args:
            stream_config: Stream configuration dictionary

        Returns:
            Reconnect policy
        """
        return cls(
            max_retries=stream_config["max_retries"],
            strategy=RetryStrategy(stream_config["strategy"]),
            base_delay=stream_config["base_delay"],
            max_delay=stream_config["max_delay"],
        )

    def should_retry(self) -> bool:
        """
        Check if another reconnect may be attempted.

        Returns:
            True if should retry, False otherwise
        """
        return self.attempts < self.max_retries

    def get_retry_delay(self) -> float:
        """
        Get the delay before the next reconnect.

        Returns:
            Delay in seconds
        """
        if self.strategy == RetryStrategy.IMMEDIATE:
            return 0.0
        elif self.strategy == RetryStrategy.EXPONENTIAL_BACKOFF:
            delay = self.base_delay * (2 ** self.attempts)
            return min(delay, self.max_delay)
        elif self.strategy == RetryStrategy.LINEAR_BACKOFF:
            delay = self.base_delay * (self.attempts + 1)
            return min(delay, self.max_delay)
        else:
            return self.base_delay

    def record_retry(self) -> int:
        """
        Record that a reconnect is being scheduled.

        Returns:
            The attempt number just recorded
        """
        self.attempts += 1
        return self.attempts

    def reset(self) -> None:
        """Reset the attempt counter after a successful delivery."""
        self.attempts = 0
