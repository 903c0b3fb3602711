"""
HTTP clients for the tutorial, progress and code execution APIs.

Thin request/response mapping over httpx.AsyncClient. Every failure
(unreachable server, non-2xx status, undecodable body) is raised as
ApiError so callers handle exactly one exception type.

Usage:
    async with TutorialApiClient(ApiConfig()) as tutorials:
        listing = await tutorials.list_tutorials()

    async with ProgressApiClient(ApiConfig()) as progress_api:
        progress = await progress_api.get_progress("default")
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, TypeAdapter, ValidationError

from tutorsync.core.errors import ApiError
from tutorsync.models import (
    ExecutionResult,
    Exercise,
    Progress,
    Section,
    Tutorial,
    TutorialMetadata,
)

M = TypeVar("M")

DEFAULT_USER_ID = "default"


class ApiConfig(BaseModel):
    """Connection settings for the tutorial backend."""

    base_url: str = "http://localhost:8080/api"
    timeout_seconds: float = 30.0

    # Endpoints
    tutorials_endpoint: str = "/tutorials"
    exercises_endpoint: str = "/exercises"
    progress_endpoint: str = "/progress"
    execute_endpoint: str = "/execute"


class TutorialApi(Protocol):
    """Remote tutorial content."""

    async def list_tutorials(self) -> list[TutorialMetadata]: ...

    async def get_tutorial(self, tutorial_id: str) -> Tutorial: ...

    async def get_tutorial_sections(self, tutorial_id: str) -> list[Section]: ...

    async def get_exercises(self, tutorial_id: str) -> list[Exercise]: ...


class ProgressApi(Protocol):
    """Remote progress authority."""

    async def get_progress(self, user_id: str = DEFAULT_USER_ID) -> Progress: ...

    async def update_progress(self, progress: Progress, user_id: str = DEFAULT_USER_ID) -> None: ...

    async def mark_section_complete(
        self, tutorial_id: str, section_id: str, user_id: str = DEFAULT_USER_ID
    ) -> None: ...


class ExecutionApi(Protocol):
    """Remote code runner."""

    async def execute_code(self, code: str, snippet: bool = False) -> ExecutionResult: ...


class _BaseApiClient:
    def __init__(self, config: ApiConfig | None = None, http_client: httpx.AsyncClient | None = None):
        self.config = config or ApiConfig()
        self._client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url.rstrip("/"),
                headers={"Content-Type": "application/json"},
                timeout=self.config.timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"{method} {url} returned {status}")
            raise ApiError(
                f"{method} {url} failed",
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"Connection error on {method} {url}: {e}")
            raise ApiError(f"{method} {url} failed: {e}") from e
        return response

    async def _request_json(
        self, method: str, url: str, adapter: TypeAdapter[M], **kwargs: Any
    ) -> M:
        response = await self._request(method, url, **kwargs)
        try:
            return adapter.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiError(
                f"{method} {url} returned an unexpected body: {e}", retryable=False
            ) from e

    async def _get_json(self, url: str, adapter: TypeAdapter[M], **kwargs: Any) -> M:
        return await self._request_json("GET", url, adapter, **kwargs)


_METADATA_LIST = TypeAdapter(list[TutorialMetadata])
_TUTORIAL = TypeAdapter(Tutorial)
_SECTIONS = TypeAdapter(list[Section])
_EXERCISES = TypeAdapter(list[Exercise])
_PROGRESS = TypeAdapter(Progress)
_EXECUTION = TypeAdapter(ExecutionResult)


class TutorialApiClient(_BaseApiClient):
    """Read-only client for tutorial content."""

    async def list_tutorials(self) -> list[TutorialMetadata]:
        tutorials = await self._get_json(self.config.tutorials_endpoint, _METADATA_LIST)
        logger.debug(f"Fetched {len(tutorials)} tutorials")
        return tutorials

    async def get_tutorial(self, tutorial_id: str) -> Tutorial:
        return await self._get_json(f"{self.config.tutorials_endpoint}/{tutorial_id}", _TUTORIAL)

    async def get_tutorial_sections(self, tutorial_id: str) -> list[Section]:
        return await self._get_json(
            f"{self.config.tutorials_endpoint}/{tutorial_id}/sections", _SECTIONS
        )

    async def get_exercises(self, tutorial_id: str) -> list[Exercise]:
        return await self._get_json(f"{self.config.exercises_endpoint}/{tutorial_id}", _EXERCISES)


class ProgressApiClient(_BaseApiClient):
    """Client for the per-user progress endpoints."""

    async def get_progress(self, user_id: str = DEFAULT_USER_ID) -> Progress:
        return await self._get_json(
            self.config.progress_endpoint, _PROGRESS, params={"userId": user_id}
        )

    async def update_progress(self, progress: Progress, user_id: str = DEFAULT_USER_ID) -> None:
        await self._request(
            "POST",
            self.config.progress_endpoint,
            params={"userId": user_id},
            json=progress.to_payload(),
        )
        logger.debug(f"Uploaded progress for {user_id}")

    async def mark_section_complete(
        self, tutorial_id: str, section_id: str, user_id: str = DEFAULT_USER_ID
    ) -> None:
        await self._request(
            "POST",
            f"{self.config.progress_endpoint}/section",
            params={"userId": user_id},
            json={"tutorialId": tutorial_id, "sectionId": section_id},
        )
        logger.debug(f"Synced {tutorial_id}/{section_id} for {user_id}")


class ExecutionApiClient(_BaseApiClient):
    """Client for the sandboxed code runner."""

    async def execute_code(self, code: str, snippet: bool = False) -> ExecutionResult:
        """
        Run Go source on the backend.

        Args:
            code: Program source, or a bare snippet when ``snippet`` is set
            snippet: Ask the server to wrap the code in a main package
        """
        body: dict[str, Any] = {"code": code}
        if snippet:
            body["snippet"] = True
        result = await self._request_json("POST", self.config.execute_endpoint, _EXECUTION, json=body)
        logger.debug(f"Execution finished with exit code {result.exit_code} in {result.duration}")
        return result
