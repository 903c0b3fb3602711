"""Remote API contracts and their httpx implementations."""

from tutorsync.api.client import (
    DEFAULT_USER_ID,
    ApiConfig,
    ExecutionApi,
    ExecutionApiClient,
    ProgressApi,
    ProgressApiClient,
    TutorialApi,
    TutorialApiClient,
)

__all__ = [
    "DEFAULT_USER_ID",
    "ApiConfig",
    "ExecutionApi",
    "ExecutionApiClient",
    "ProgressApi",
    "ProgressApiClient",
    "TutorialApi",
    "TutorialApiClient",
]
