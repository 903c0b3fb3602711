"""Result of running a code snippet on the backend sandbox."""

from __future__ import annotations

from tutorsync.models.progress import WireModel


class ExecutionResult(WireModel):
    output: str = ""
    error: str | None = None
    exit_code: int = 0
    duration: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.error
