"""
Progress store: optimistic local state with best-effort remote sync.

The store owns the in-memory Progress for the active user. Every mutation
lands in memory and in durable storage before the server hears about it:

- update_progress: awaits the server and rolls back memory and storage
  if the upload fails
- mark_section_complete: syncs in the background and never rolls back;
  local completion is treated as ground truth
- set_current_section / mark_exercise_complete: local only

Durable storage holds a JSON mirror used for cold starts
(load_from_local_storage); it is never a second writer.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable

from loguru import logger
from pydantic import ValidationError

from tutorsync.api.client import DEFAULT_USER_ID, ProgressApi
from tutorsync.core.background import BackgroundTasks
from tutorsync.core.errors import ApiError, is_retryable
from tutorsync.core.retry import RetryOptions
from tutorsync.models import Progress, SectionProgress, TutorialProgress, utc_now
from tutorsync.storage.local_storage import KeyValueStorage

DEFAULT_STORAGE_KEY = "tutorial-progress"


class ProgressStore:
    """Canonical progress state for one running client."""

    def __init__(
        self,
        api: ProgressApi,
        storage: KeyValueStorage,
        storage_key: str = DEFAULT_STORAGE_KEY,
        retry_options: RetryOptions | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.api = api
        self.storage = storage
        self.storage_key = storage_key
        if retry_options is None:
            retry_options = RetryOptions(retry_on=(ApiError,), retry_if=is_retryable)
        self.retry_options = retry_options
        self._clock = clock
        self._background = BackgroundTasks()
        # Bumped on every local write; lets a failed upload tell whether
        # someone else has written since it started.
        self._revision = 0

        self.progress: Progress | None = None
        self.loading = False
        self.error: str | None = None

    # =========================================================================
    # Persistence helpers
    # =========================================================================

    def _persist(self) -> None:
        if self.progress is None:
            self.storage.remove(self.storage_key)
        else:
            self.storage.set(self.storage_key, self.progress.to_json())
        self._revision += 1

    def _ensure_progress(self, user_id: str) -> Progress:
        if self.progress is None:
            logger.debug(f"Creating empty progress for {user_id}")
            self.progress = Progress.empty(user_id, now=self._clock())
        return self.progress

    # =========================================================================
    # Remote authority
    # =========================================================================

    async def load_progress(self, user_id: str = DEFAULT_USER_ID) -> Progress | None:
        """
        Fetch progress from the server and replace local state with it.

        On failure the previous in-memory value is kept and ``error`` is set.
        """
        self.loading = True
        self.error = None
        try:
            fetched = await self.retry_options.execute(lambda: self.api.get_progress(user_id))
            self.progress = fetched
            self._persist()
            logger.info(f"Loaded progress for {user_id}")
        except ApiError as e:
            logger.error(f"Failed to load progress for {user_id}: {e}")
            self.error = f"Failed to load progress: {e}"
        finally:
            self.loading = False
        return self.progress

    async def update_progress(self, new_progress: Progress, user_id: str = DEFAULT_USER_ID) -> bool:
        """
        Replace progress optimistically and upload it.

        Memory and storage change before the upload. If the upload fails,
        both are restored to what they held on entry, unless another local
        write happened in the meantime, in which case the newer state wins.

        Returns:
            True if the server accepted the update
        """
        snapshot = self.progress.model_copy(deep=True) if self.progress is not None else None
        snapshot_raw = self.storage.get(self.storage_key)

        self.loading = True
        self.error = None
        self.progress = new_progress.model_copy(deep=True)
        self._persist()
        revision = self._revision

        try:
            await self.retry_options.execute(lambda: self.api.update_progress(new_progress, user_id))
            logger.debug(f"Server accepted progress update for {user_id}")
            return True
        except ApiError as e:
            self.error = f"Failed to update progress: {e}"
            if self._revision != revision:
                logger.warning(
                    f"Progress upload for {user_id} failed ({e}); "
                    "keeping newer local changes instead of rolling back"
                )
                return False
            logger.error(f"Progress upload for {user_id} failed, rolling back: {e}")
            self.progress = snapshot
            if snapshot_raw is None:
                self.storage.remove(self.storage_key)
            else:
                self.storage.set(self.storage_key, snapshot_raw)
            self._revision += 1
            return False
        finally:
            self.loading = False

    async def mark_section_complete(
        self, tutorial_id: str, section_id: str, user_id: str = DEFAULT_USER_ID
    ) -> asyncio.Task:
        """
        Mark a section complete locally and sync it in the background.

        The local change is kept even if the sync fails. The returned task
        can be awaited by callers that want to know when the sync settled;
        nothing requires them to.
        """
        progress = self._ensure_progress(user_id)
        if not progress.add_completed_section(tutorial_id, section_id):
            logger.debug(f"{tutorial_id}/{section_id} already complete")
        progress.current_tutorial = tutorial_id
        progress.current_section = section_id
        progress.touch(self._clock())
        self._persist()

        return self._background.spawn(
            self._sync_section(tutorial_id, section_id, user_id),
            name=f"sync:{tutorial_id}/{section_id}",
        )

    async def _sync_section(self, tutorial_id: str, section_id: str, user_id: str) -> bool:
        try:
            await self.retry_options.execute(
                lambda: self.api.mark_section_complete(tutorial_id, section_id, user_id)
            )
        except ApiError as e:
            logger.warning(f"Could not sync {tutorial_id}/{section_id} for {user_id}: {e}")
            self.error = f"Failed to mark section complete: {e}"
            return False
        logger.debug(f"Synced {tutorial_id}/{section_id} for {user_id}")
        return True

    # =========================================================================
    # Local-only mutations
    # =========================================================================

    def set_current_section(self, tutorial_id: str, section_id: str, user_id: str = DEFAULT_USER_ID) -> None:
        """Move the last-viewed pointer. Never contacts the server."""
        progress = self._ensure_progress(user_id)
        progress.current_tutorial = tutorial_id
        progress.current_section = section_id
        progress.touch(self._clock())
        self._persist()

    def mark_exercise_complete(
        self, tutorial_id: str, exercise_id: str, user_id: str = DEFAULT_USER_ID
    ) -> bool:
        """Record a solved exercise locally. Returns False if already recorded."""
        progress = self._ensure_progress(user_id)
        added = progress.add_completed_exercise(tutorial_id, exercise_id)
        progress.touch(self._clock())
        self._persist()
        return added

    # =========================================================================
    # Reads
    # =========================================================================

    def is_section_complete(self, tutorial_id: str, section_id: str) -> bool:
        if self.progress is None:
            return False
        return section_id in self.progress.completed_sections.get(tutorial_id, [])

    def is_exercise_complete(self, tutorial_id: str, exercise_id: str) -> bool:
        if self.progress is None:
            return False
        return exercise_id in self.progress.completed_exercises.get(tutorial_id, [])

    def get_tutorial_progress(self, tutorial_id: str, total_sections: int) -> TutorialProgress:
        """Completion summary; 0% when the tutorial has no sections."""
        completed: list[str] = []
        if self.progress is not None:
            completed = self.progress.completed_sections.get(tutorial_id, [])

        percent = (len(completed) / total_sections) * 100 if total_sections > 0 else 0.0

        return TutorialProgress(
            tutorial_id=tutorial_id,
            total_sections=total_sections,
            completed_count=len(completed),
            section_progress=[SectionProgress(section_id=s, completed=True) for s in completed],
            progress_percent=percent,
        )

    # =========================================================================
    # Cold start
    # =========================================================================

    def load_from_local_storage(self) -> Progress | None:
        """Restore progress from durable storage. Bad payloads are ignored."""
        stored = self.storage.get(self.storage_key)
        if stored is None:
            return None
        try:
            self.progress = Progress.model_validate_json(stored)
        except ValidationError as e:
            logger.error(f"Failed to parse stored progress: {e}")
            return None
        logger.debug(f"Restored progress for {self.progress.user_id} from storage")
        return self.progress

    @property
    def pending_syncs(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for outstanding background syncs."""
        await self._background.drain()
