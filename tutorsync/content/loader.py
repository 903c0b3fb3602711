"""
Tutorial loader: cache-first reads with background revalidation.

Reads go to the TutorialCache first. A cached tutorial is returned at
once while a background task refetches it; a miss blocks on a foreground
fetch through the retry executor. Expected failures end up in ``error``
instead of propagating.

Usage:
    loader = TutorialLoader(TutorialApiClient(config))
    listing = await loader.load_tutorials()
    tutorial = await loader.load_tutorial("go-basics")
    ...
    await loader.drain()
"""

from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from loguru import logger

from tutorsync.api.client import TutorialApi
from tutorsync.content.cache import TutorialCache
from tutorsync.core.background import BackgroundTasks
from tutorsync.core.errors import ApiError, is_retryable
from tutorsync.core.retry import RetryOptions
from tutorsync.models import LEVELS, Exercise, Section, Tutorial, TutorialMetadata

T = TypeVar("T")


class TutorialLoader:
    """Serves tutorial reads for the UI layer."""

    def __init__(
        self,
        api: TutorialApi,
        cache: TutorialCache | None = None,
        retry_options: RetryOptions | None = None,
    ):
        self.api = api
        self.cache = cache if cache is not None else TutorialCache()
        if retry_options is None:
            retry_options = RetryOptions(retry_on=(ApiError,), retry_if=is_retryable)
        self.retry_options = retry_options
        self._background = BackgroundTasks()

        self.tutorials: list[TutorialMetadata] = []
        self.current_tutorial: Tutorial | None = None
        self.loading = False
        self.error: str | None = None

    async def _fetch(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await self.retry_options.execute(operation)

    # =========================================================================
    # Listing
    # =========================================================================

    async def load_tutorials(self, force_refresh: bool = False) -> list[TutorialMetadata]:
        """
        Load the tutorial listing.

        The cached listing has no TTL: it is reused until a caller passes
        ``force_refresh``. If a network fetch fails, whatever listing is
        cached is served and ``error`` is still set.
        """
        if not force_refresh and self.cache.has_metadata:
            self.tutorials = self.cache.get_metadata()
            return self.tutorials

        self.loading = True
        self.error = None
        try:
            tutorials = await self._fetch(self.api.list_tutorials)
            self.cache.set_metadata(tutorials)
            self.tutorials = tutorials
        except ApiError as e:
            logger.error(f"Failed to load tutorials: {e}")
            self.error = f"Failed to load tutorials: {e}"
            if self.cache.has_metadata:
                self.tutorials = self.cache.get_metadata()
        finally:
            self.loading = False

        return self.tutorials

    def get_tutorial_by_id(self, tutorial_id: str) -> TutorialMetadata | None:
        return next((t for t in self.tutorials if t.id == tutorial_id), None)

    def tutorials_by_level(self) -> dict[str, list[TutorialMetadata]]:
        """Group the listing by level. Missing levels count as Beginner."""
        grouped: dict[str, list[TutorialMetadata]] = {level: [] for level in LEVELS}
        for tutorial in self.tutorials:
            level = tutorial.level or "Beginner"
            if level in grouped:
                grouped[level].append(tutorial)
        return grouped

    # =========================================================================
    # Single tutorial
    # =========================================================================

    async def load_tutorial(self, tutorial_id: str, force_refresh: bool = False) -> Tutorial | None:
        """
        Load one tutorial, stale-while-revalidate.

        Args:
            tutorial_id: Tutorial to load
            force_refresh: Skip the cache and fetch in the foreground

        Returns:
            The tutorial, or None if it could not be loaded (see ``error``)
        """
        if not force_refresh:
            cached = self.cache.get_tutorial(tutorial_id)
            if cached is not None:
                self.current_tutorial = cached
                self.error = None
                self._background.spawn(
                    self._revalidate(tutorial_id), name=f"revalidate:{tutorial_id}"
                )
                return cached

        self.loading = True
        self.error = None
        try:
            tutorial = await self._fetch(lambda: self.api.get_tutorial(tutorial_id))
            self.cache.set_tutorial(tutorial_id, tutorial)
            self.current_tutorial = tutorial
            return tutorial
        except ApiError as e:
            logger.error(f"Failed to load tutorial {tutorial_id}: {e}")
            self.error = f"Failed to load tutorial: {e}"
            if force_refresh:
                fallback = self.cache.get_tutorial(tutorial_id)
                if fallback is not None:
                    logger.info(f"Serving cached copy of {tutorial_id}")
                    self.current_tutorial = fallback
                    return fallback
            return None
        finally:
            self.loading = False

    async def _revalidate(self, tutorial_id: str) -> None:
        try:
            tutorial = await self._fetch(lambda: self.api.get_tutorial(tutorial_id))
        except ApiError as e:
            # The caller already has a value; drop the failure.
            logger.warning(f"Background refresh of {tutorial_id} failed: {e}")
            return
        self.cache.set_tutorial(tutorial_id, tutorial)
        logger.debug(f"Refreshed cached tutorial {tutorial_id}")

    # =========================================================================
    # Uncached reads
    # =========================================================================

    async def load_sections(self, tutorial_id: str) -> list[Section]:
        self.error = None
        try:
            return await self._fetch(lambda: self.api.get_tutorial_sections(tutorial_id))
        except ApiError as e:
            logger.error(f"Failed to load sections for {tutorial_id}: {e}")
            self.error = f"Failed to load sections: {e}"
            return []

    async def load_exercises(self, tutorial_id: str) -> list[Exercise]:
        self.error = None
        try:
            return await self._fetch(lambda: self.api.get_exercises(tutorial_id))
        except ApiError as e:
            logger.error(f"Failed to load exercises for {tutorial_id}: {e}")
            self.error = f"Failed to load exercises: {e}"
            return []

    @property
    def pending_refreshes(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for outstanding background refreshes."""
        await self._background.drain()
