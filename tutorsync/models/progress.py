"""
Progress models for tutor-sync.

Mirrors the JSON shape exchanged with the progress API and the local
storage mirror:
- Progress: per-user completion state (sections, exercises, last position)
- SectionProgress / TutorialProgress: read models for a single tutorial
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class WireModel(BaseModel):
    """Base for models that travel as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Progress(WireModel):
    """Completion state for one user."""

    user_id: str
    completed_sections: dict[str, list[str]] = Field(default_factory=dict)
    completed_exercises: dict[str, list[str]] = Field(default_factory=dict)
    current_tutorial: str | None = None
    current_section: str | None = None
    last_accessed: str = ""

    @field_validator("completed_sections", "completed_exercises", mode="before")
    @classmethod
    def _normalize_completed(cls, value):
        # Servers may send null for an empty map or repeat an id.
        if value is None:
            return {}
        if isinstance(value, dict):
            return {key: _dedupe(list(ids or [])) for key, ids in value.items()}
        return value

    @classmethod
    def empty(cls, user_id: str, now: datetime | None = None) -> Progress:
        """Fresh progress for a user that has not completed anything yet."""
        return cls(user_id=user_id, last_accessed=(now or utc_now()).isoformat())

    def add_completed_section(self, tutorial_id: str, section_id: str) -> bool:
        """Record a completed section. Returns False if it was already there."""
        sections = self.completed_sections.setdefault(tutorial_id, [])
        if section_id in sections:
            return False
        sections.append(section_id)
        return True

    def add_completed_exercise(self, tutorial_id: str, exercise_id: str) -> bool:
        """Record a completed exercise. Returns False if it was already there."""
        exercises = self.completed_exercises.setdefault(tutorial_id, [])
        if exercise_id in exercises:
            return False
        exercises.append(exercise_id)
        return True

    def touch(self, now: datetime | None = None) -> None:
        """Advance last_accessed, never moving it backwards."""
        stamp = now or utc_now()
        if self.last_accessed:
            try:
                previous = datetime.fromisoformat(self.last_accessed)
            except ValueError:
                previous = None
            if previous is not None and _comparable(previous) >= _comparable(stamp):
                return
        self.last_accessed = stamp.isoformat()


def _comparable(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SectionProgress(WireModel):
    section_id: str
    completed: bool
    completed_at: str | None = None


class TutorialProgress(WireModel):
    """Completion summary for a single tutorial."""

    tutorial_id: str
    total_sections: int
    completed_count: int = 0
    section_progress: list[SectionProgress] = Field(default_factory=list)
    progress_percent: float = 0.0
