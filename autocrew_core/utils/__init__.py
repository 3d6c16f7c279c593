"""Shared utilities for AutoCrew core."""

from .logging_config import log_with_context, setup_logging
from .retry_utils import RetryConfig, retry_with_exponential_backoff

__all__ = [
    "log_with_context",
    "setup_logging",
    "RetryConfig",
    "retry_with_exponential_backoff",
]
