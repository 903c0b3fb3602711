"""
Unit tests for ProgressStore.

Covers optimistic writes, rollback on failed uploads, background section
sync, local-only mutations and cold-start recovery.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from tutorsync.core.errors import ApiError, is_retryable
from tutorsync.models import Progress
from tutorsync.progress.store import DEFAULT_STORAGE_KEY, ProgressStore
from tutorsync.storage.local_storage import MemoryStorage


class StepClock:
    """UTC clock that moves forward one second per call."""

    def __init__(self):
        self.now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def store(progress_api, memory_storage, fast_retry):
    return ProgressStore(progress_api, memory_storage, retry_options=fast_retry, clock=StepClock())


def stored(storage):
    raw = storage.get(DEFAULT_STORAGE_KEY)
    return json.loads(raw) if raw is not None else None


class TestLoadProgress:
    @pytest.mark.asyncio
    async def test_load_with_empty_storage(self, store, memory_storage, server_progress):
        """Successful load mirrors the server payload exactly."""
        await store.load_progress("default")

        assert store.progress.completed_sections == server_progress.completed_sections
        assert store.error is None
        assert store.loading is False
        assert stored(memory_storage)["completedSections"]["go-basics"] == ["intro", "variables"]

    @pytest.mark.asyncio
    async def test_failed_load_keeps_previous_state(self, store, progress_api):
        store.set_current_section("go-basics", "intro")
        before = store.progress.model_copy(deep=True)
        progress_api.always_fail = True

        await store.load_progress("default")

        assert store.progress == before
        assert "Failed to load progress" in store.error

    @pytest.mark.asyncio
    async def test_failed_load_with_no_state_stays_none(self, store, progress_api):
        progress_api.always_fail = True

        assert await store.load_progress() is None
        assert store.progress is None
        assert store.error is not None


class TestUpdateProgress:
    @pytest.mark.asyncio
    async def test_success_replaces_and_persists(self, store, progress_api, memory_storage):
        new = Progress(user_id="default", completed_sections={"go-basics": ["intro"]})

        assert await store.update_progress(new) is True

        assert store.progress == new
        assert stored(memory_storage)["completedSections"] == {"go-basics": ["intro"]}
        assert progress_api.progress == new
        assert store.error is None

    @pytest.mark.asyncio
    async def test_failure_rolls_back_memory_and_storage(self, store, progress_api, memory_storage):
        await store.load_progress()
        snapshot = store.progress.model_copy(deep=True)
        raw_before = memory_storage.get(DEFAULT_STORAGE_KEY)
        progress_api.always_fail = True

        ok = await store.update_progress(Progress(user_id="default", completed_sections={"x": ["y"]}))

        assert ok is False
        assert store.progress == snapshot
        assert memory_storage.get(DEFAULT_STORAGE_KEY) == raw_before
        assert "Failed to update progress" in store.error
        assert store.loading is False

    @pytest.mark.asyncio
    async def test_failure_with_empty_start_removes_storage_key(self, store, progress_api, memory_storage):
        progress_api.always_fail = True

        await store.update_progress(Progress(user_id="default"))

        assert store.progress is None
        assert memory_storage.get(DEFAULT_STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_write_is_visible_before_server_answers(self, store, progress_api, memory_storage):
        gate = asyncio.Event()
        original = progress_api.update_progress

        async def slow_update(progress, user_id="default"):
            await gate.wait()
            await original(progress, user_id)

        progress_api.update_progress = slow_update
        new = Progress(user_id="default", completed_sections={"go-basics": ["intro"]})

        task = asyncio.create_task(store.update_progress(new))
        await asyncio.sleep(0)

        assert store.progress == new
        assert store.loading is True
        assert stored(memory_storage)["completedSections"] == {"go-basics": ["intro"]}

        gate.set()
        assert await task is True

    @pytest.mark.asyncio
    async def test_newer_local_write_survives_failed_upload(self, store, progress_api):
        """A section marked during a failing upload is not rolled back."""
        gate = asyncio.Event()

        async def failing_update(progress, user_id="default"):
            await gate.wait()
            raise ApiError("server unavailable", status_code=503)

        progress_api.update_progress = failing_update
        task = asyncio.create_task(store.update_progress(Progress(user_id="default")))
        await asyncio.sleep(0)

        await store.mark_section_complete("go-basics", "intro")
        gate.set()

        assert await task is False
        assert store.is_section_complete("go-basics", "intro")
        assert store.error is not None
        await store.drain()


class TestMarkSectionComplete:
    @pytest.mark.asyncio
    async def test_marking_twice_is_idempotent(self, store):
        await store.mark_section_complete("go-basics", "intro", "default")
        await store.mark_section_complete("go-basics", "intro", "default")
        await store.drain()

        assert store.progress.completed_sections["go-basics"] == ["intro"]

    @pytest.mark.asyncio
    async def test_any_sequence_keeps_sections_unique(self, store):
        for section in ["a", "b", "a", "c", "b", "a"]:
            await store.mark_section_complete("go-basics", section)
        await store.drain()

        assert store.progress.completed_sections["go-basics"] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_local_state_updated_before_sync(self, store, progress_api, memory_storage):
        task = await store.mark_section_complete("go-basics", "intro")

        # Nothing has reached the server yet, but local state already moved
        assert not any(c[0] == "mark_section_complete" for c in progress_api.calls)
        assert store.is_section_complete("go-basics", "intro")
        assert store.progress.current_tutorial == "go-basics"
        assert store.progress.current_section == "intro"
        assert stored(memory_storage)["completedSections"] == {"go-basics": ["intro"]}

        assert await task is True
        assert ("mark_section_complete", "go-basics", "intro", "default") in progress_api.calls

    @pytest.mark.asyncio
    async def test_sync_failure_keeps_local_completion(self, store, progress_api, memory_storage):
        progress_api.always_fail = True

        task = await store.mark_section_complete("go-basics", "intro")
        assert await task is False

        assert store.is_section_complete("go-basics", "intro")
        assert stored(memory_storage)["completedSections"] == {"go-basics": ["intro"]}
        assert "Failed to mark section complete" in store.error

    @pytest.mark.asyncio
    async def test_sync_retries_before_giving_up(self, store, progress_api):
        progress_api.always_fail = True

        await store.mark_section_complete("go-basics", "intro")
        await store.drain()

        syncs = [c for c in progress_api.calls if c[0] == "mark_section_complete"]
        assert len(syncs) == 3
        assert store.pending_syncs == 0

    @pytest.mark.asyncio
    async def test_rejected_sync_is_not_retried(self, store, progress_api):
        progress_api.failures = [ApiError("POST /progress/section failed", status_code=400)]

        task = await store.mark_section_complete("go-basics", "intro")
        assert await task is False

        syncs = [c for c in progress_api.calls if c[0] == "mark_section_complete"]
        assert len(syncs) == 1
        assert store.is_section_complete("go-basics", "intro")

    def test_default_retry_options_skip_client_errors(self, progress_api, memory_storage):
        store = ProgressStore(progress_api, memory_storage)

        assert store.retry_options.retry_if is is_retryable

    @pytest.mark.asyncio
    async def test_creates_progress_lazily(self, store):
        assert store.progress is None

        await store.mark_section_complete("go-basics", "intro", "alice")
        await store.drain()

        assert store.progress.user_id == "alice"

    @pytest.mark.asyncio
    async def test_last_accessed_moves_forward(self, store):
        await store.mark_section_complete("go-basics", "intro")
        first = store.progress.last_accessed
        await store.mark_section_complete("go-basics", "variables")
        await store.drain()

        assert store.progress.last_accessed > first

    @pytest.mark.asyncio
    async def test_concurrent_marks_for_different_tutorials(self, store):
        await asyncio.gather(
            store.mark_section_complete("go-basics", "intro"),
            store.mark_section_complete("structs", "embedding"),
            store.mark_section_complete("go-basics", "loops"),
        )
        await store.drain()

        assert store.progress.completed_sections == {
            "go-basics": ["intro", "loops"],
            "structs": ["embedding"],
        }


class TestLocalOnlyMutations:
    def test_set_current_section_never_calls_server(self, store, progress_api, memory_storage):
        store.set_current_section("go-basics", "variables")

        assert progress_api.calls == []
        assert store.progress.current_tutorial == "go-basics"
        assert store.progress.current_section == "variables"
        assert stored(memory_storage)["currentSection"] == "variables"

    def test_set_current_section_keeps_completions(self, store):
        store.progress = Progress(user_id="default", completed_sections={"go-basics": ["intro"]})

        store.set_current_section("structs", "embedding")

        assert store.progress.completed_sections == {"go-basics": ["intro"]}

    def test_mark_exercise_complete(self, store, progress_api):
        assert store.mark_exercise_complete("go-basics", "ex1") is True
        assert store.mark_exercise_complete("go-basics", "ex1") is False

        assert store.is_exercise_complete("go-basics", "ex1")
        assert store.progress.completed_exercises == {"go-basics": ["ex1"]}
        assert progress_api.calls == []


class TestReads:
    def test_is_section_complete_without_progress(self, store):
        assert store.is_section_complete("go-basics", "intro") is False

    def test_tutorial_progress_zero_sections(self, store):
        """Zero total sections yields 0% rather than a division error."""
        assert store.get_tutorial_progress("go-basics", 0).progress_percent == 0

        store.progress = Progress(user_id="default", completed_sections={"go-basics": ["intro"]})
        assert store.get_tutorial_progress("go-basics", 0).progress_percent == 0
        assert store.get_tutorial_progress("unknown", 0).progress_percent == 0

    def test_tutorial_progress_percent(self, store):
        store.progress = Progress(user_id="default", completed_sections={"go-basics": ["intro"]})

        summary = store.get_tutorial_progress("go-basics", 4)

        assert summary.completed_count == 1
        assert summary.total_sections == 4
        assert summary.progress_percent == 25.0
        assert [s.section_id for s in summary.section_progress] == ["intro"]

    def test_tutorial_progress_without_state(self, store):
        summary = store.get_tutorial_progress("go-basics", 5)

        assert summary.completed_count == 0
        assert summary.progress_percent == 0


class TestLoadFromLocalStorage:
    def test_restores_valid_payload(self, progress_api, fast_retry, server_progress):
        storage = MemoryStorage({DEFAULT_STORAGE_KEY: server_progress.to_json()})
        store = ProgressStore(progress_api, storage, retry_options=fast_retry)

        restored = store.load_from_local_storage()

        assert restored == server_progress
        assert store.progress == server_progress

    def test_empty_storage_leaves_progress_unset(self, store):
        assert store.load_from_local_storage() is None
        assert store.progress is None

    @pytest.mark.parametrize("payload", ["{not json", '{"completedSections": {}}', "[]"])
    def test_malformed_payload_is_ignored(self, progress_api, fast_retry, payload):
        storage = MemoryStorage({DEFAULT_STORAGE_KEY: payload})
        store = ProgressStore(progress_api, storage, retry_options=fast_retry)

        assert store.load_from_local_storage() is None
        assert store.progress is None

    def test_duplicate_sections_in_storage_are_collapsed(self, progress_api, fast_retry):
        payload = json.dumps({
            "userId": "default",
            "completedSections": {"go-basics": ["intro", "intro", "loops"]},
            "completedExercises": None,
            "lastAccessed": "",
        })
        store = ProgressStore(progress_api, MemoryStorage({DEFAULT_STORAGE_KEY: payload}), retry_options=fast_retry)

        store.load_from_local_storage()

        assert store.progress.completed_sections["go-basics"] == ["intro", "loops"]
        assert store.progress.completed_exercises == {}

    def test_custom_storage_key(self, progress_api, fast_retry):
        storage = MemoryStorage()
        store = ProgressStore(progress_api, storage, storage_key="custom", retry_options=fast_retry)

        store.set_current_section("go-basics", "intro")

        assert storage.get("custom") is not None
        assert storage.get(DEFAULT_STORAGE_KEY) is None
