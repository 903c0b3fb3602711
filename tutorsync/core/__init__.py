"""
Core Module - shared failure semantics.

Components:
- retry: bounded retry with linear backoff (RetryExecutor, RetryOptions)
- errors: exception hierarchy (TutorSyncError, ApiError)
- background: tracking for fire-and-forget asyncio tasks
"""

from tutorsync.core.background import BackgroundTasks
from tutorsync.core.errors import ApiError, TutorSyncError, is_retryable
from tutorsync.core.retry import RetryExecutor, RetryOptions, RetryState

__all__ = [
    "ApiError",
    "BackgroundTasks",
    "RetryExecutor",
    "RetryOptions",
    "RetryState",
    "TutorSyncError",
    "is_retryable",
]
