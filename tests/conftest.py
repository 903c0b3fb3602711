"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tutorsync.core.errors import ApiError, is_retryable  # noqa: E402
from tutorsync.core.retry import RetryOptions  # noqa: E402
from tutorsync.models import Progress, Tutorial, TutorialMetadata  # noqa: E402
from tutorsync.storage.local_storage import MemoryStorage  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Fakes
# =============================================================================


async def _no_sleep(_seconds):
    return None


class FakeTutorialApi:
    """In-memory tutorial API. Queue exceptions in ``failures`` to make calls fail."""

    def __init__(self, tutorials=None, listing=None):
        self.tutorials = dict(tutorials or {})
        self.listing = list(listing or [])
        self.failures = []
        self.calls = []

    def _maybe_fail(self):
        if self.failures:
            raise self.failures.pop(0)

    async def list_tutorials(self):
        self.calls.append(("list_tutorials",))
        self._maybe_fail()
        return list(self.listing)

    async def get_tutorial(self, tutorial_id):
        self.calls.append(("get_tutorial", tutorial_id))
        self._maybe_fail()
        if tutorial_id not in self.tutorials:
            raise ApiError(f"GET /tutorials/{tutorial_id} failed", status_code=404)
        return self.tutorials[tutorial_id]

    async def get_tutorial_sections(self, tutorial_id):
        self.calls.append(("get_tutorial_sections", tutorial_id))
        self._maybe_fail()
        return list(self.tutorials[tutorial_id].sections)

    async def get_exercises(self, tutorial_id):
        self.calls.append(("get_exercises", tutorial_id))
        self._maybe_fail()
        return []


class FakeProgressApi:
    """In-memory progress API with the same failure queue as FakeTutorialApi."""

    def __init__(self, progress=None):
        self.progress = progress
        self.failures = []
        self.always_fail = False
        self.calls = []

    def _maybe_fail(self):
        if self.always_fail:
            raise ApiError("server unavailable", status_code=503)
        if self.failures:
            raise self.failures.pop(0)

    async def get_progress(self, user_id="default"):
        self.calls.append(("get_progress", user_id))
        self._maybe_fail()
        return self.progress.model_copy(deep=True)

    async def update_progress(self, progress, user_id="default"):
        self.calls.append(("update_progress", user_id))
        self._maybe_fail()
        self.progress = progress.model_copy(deep=True)

    async def mark_section_complete(self, tutorial_id, section_id, user_id="default"):
        self.calls.append(("mark_section_complete", tutorial_id, section_id, user_id))
        self._maybe_fail()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fast_retry():
    """Retry options that never actually sleep."""
    return RetryOptions(
        max_retries=2, retry_delay=0.0, retry_on=(ApiError,), retry_if=is_retryable, sleep=_no_sleep
    )


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def sample_tutorial():
    """Provide a sample tutorial body for testing."""
    return Tutorial.model_validate({
        "id": "go-basics",
        "title": "Go Basics",
        "duration": "45m",
        "difficulty": "easy",
        "prerequisites": None,
        "level": "Beginner",
        "sections": [
            {"id": "intro", "title": "Introduction", "order": 1, "content": "# Hello"},
            {
                "id": "variables",
                "title": "Variables",
                "order": 2,
                "content": "var x int",
                "codeExamples": [{"id": "ex1", "code": "x := 1", "language": "go", "runnable": True}],
            },
        ],
    })


@pytest.fixture
def sample_listing():
    """Provide a sample tutorial listing for testing."""
    return [
        TutorialMetadata(id="go-basics", title="Go Basics", level="Beginner", section_count=2),
        TutorialMetadata(id="structs", title="Structs", level="Intermediate", section_count=6),
        TutorialMetadata(id="generics", title="Generics", level="Advanced", section_count=4),
        TutorialMetadata(id="misc", title="Misc", level="", section_count=1),
    ]


@pytest.fixture
def server_progress():
    """Provide a progress payload as the server would return it."""
    return Progress.model_validate({
        "userId": "default",
        "completedSections": {"go-basics": ["intro", "variables"], "structs": ["defining-structs"]},
        "completedExercises": {},
        "currentTutorial": "structs",
        "currentSection": "defining-structs",
        "lastAccessed": "2024-05-01T10:00:00+00:00",
    })


@pytest.fixture
def tutorial_api(sample_tutorial, sample_listing):
    return FakeTutorialApi(tutorials={"go-basics": sample_tutorial}, listing=sample_listing)


@pytest.fixture
def progress_api(server_progress):
    return FakeProgressApi(progress=server_progress)
