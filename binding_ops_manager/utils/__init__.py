"""Utility modules for shared functionality."""

from .constants import (
    DEFAULT_MERGE_MAX_ATTEMPTS,
    DEFAULT_MERGE_RETRY_DELAY_SECONDS,
    REPOSITORY_PATTERN,
)
from .retry import RetryOutcome, RetryStatus, retry_on_rate_limit, retry_with_fixed_delay

__all__ = [
    "DEFAULT_MERGE_MAX_ATTEMPTS",
    "DEFAULT_MERGE_RETRY_DELAY_SECONDS",
    "REPOSITORY_PATTERN",
    "RetryOutcome",
    "RetryStatus",
    "retry_on_rate_limit",
    "retry_with_fixed_delay",
]
