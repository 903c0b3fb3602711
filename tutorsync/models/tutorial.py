"""Tutorial content models as served by the tutorial API."""

from __future__ import annotations

from pydantic import Field, field_validator

from tutorsync.models.progress import WireModel

LEVELS = ("Beginner", "Intermediate", "Advanced")


class CodeExample(WireModel):
    id: str
    code: str
    language: str = "go"
    runnable: bool = False
    snippet: bool | None = None
    expected_output: str | None = None
    description: str | None = None


class Section(WireModel):
    id: str
    title: str
    topics: list[str] | None = None
    code_examples: list[CodeExample] | None = None
    teaching_points: list[str] | None = None
    order: int = 0
    content: str = ""
    instructor_notes: str | None = None


class TutorialMetadata(WireModel):
    """Listing entry for a tutorial (no section bodies)."""

    id: str
    title: str
    duration: str = ""
    difficulty: str = ""
    prerequisites: list[str] = Field(default_factory=list)
    level: str = ""
    section_count: int = 0

    @field_validator("prerequisites", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value


class Tutorial(WireModel):
    """Full tutorial body including its sections."""

    id: str
    title: str
    duration: str = ""
    difficulty: str = ""
    prerequisites: list[str] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)
    level: str = ""

    @field_validator("prerequisites", "sections", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value


class Exercise(WireModel):
    id: str
    tutorial_id: str
    title: str
    description: str = ""
    difficulty: str = ""
    hints: list[str] | None = None
    solution: str | None = None
    starter_code: str | None = None
    expected_output: str | None = None
