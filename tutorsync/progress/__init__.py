"""Optimistic progress tracking."""

from tutorsync.progress.store import DEFAULT_STORAGE_KEY, ProgressStore

__all__ = ["DEFAULT_STORAGE_KEY", "ProgressStore"]
