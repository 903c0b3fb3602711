"""In-memory cache for tutorial bodies and the tutorial listing."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from tutorsync.models import Tutorial, TutorialMetadata

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class _TutorialEntry:
    tutorial: Tutorial
    inserted_at: float


class TutorialCache:
    """
    Process-local cache owned by one TutorialLoader.

    Tutorial bodies expire after ``ttl_seconds`` and are purged lazily when
    read. The metadata listing has no TTL; callers decide when to refresh it.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _TutorialEntry] = {}
        self._metadata: list[TutorialMetadata] | None = None

    def get_tutorial(self, tutorial_id: str) -> Tutorial | None:
        entry = self._entries.get(tutorial_id)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at < self.ttl_seconds:
            return entry.tutorial.model_copy(deep=True)

        logger.debug(f"Cache entry for {tutorial_id} expired")
        del self._entries[tutorial_id]
        return None

    def set_tutorial(self, tutorial_id: str, tutorial: Tutorial) -> None:
        self._entries[tutorial_id] = _TutorialEntry(
            tutorial=tutorial.model_copy(deep=True),
            inserted_at=self._clock(),
        )

    def get_metadata(self) -> list[TutorialMetadata]:
        if self._metadata is None:
            return []
        return [item.model_copy(deep=True) for item in self._metadata]

    def set_metadata(self, metadata: list[TutorialMetadata]) -> None:
        self._metadata = [item.model_copy(deep=True) for item in metadata]

    @property
    def has_metadata(self) -> bool:
        return self._metadata is not None

    def clear(self) -> None:
        self._entries.clear()
        self._metadata = None

    def clear_tutorial(self, tutorial_id: str) -> None:
        self._entries.pop(tutorial_id, None)

    def __len__(self) -> int:
        return len(self._entries)
