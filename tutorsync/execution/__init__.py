"""Remote code execution with observable state."""

from tutorsync.execution.runner import CodeRunner

__all__ = ["CodeRunner"]
