"""
Data contracts shared by the cache, loader and progress store.

All models serialize with camelCase aliases to match the remote JSON.
"""

from tutorsync.models.execution import ExecutionResult
from tutorsync.models.progress import (
    Progress,
    SectionProgress,
    TutorialProgress,
    WireModel,
    utc_now,
)
from tutorsync.models.tutorial import (
    LEVELS,
    CodeExample,
    Exercise,
    Section,
    Tutorial,
    TutorialMetadata,
)

__all__ = [
    "LEVELS",
    "CodeExample",
    "Exercise",
    "ExecutionResult",
    "Progress",
    "Section",
    "SectionProgress",
    "Tutorial",
    "TutorialMetadata",
    "TutorialProgress",
    "WireModel",
    "utc_now",
]
