"""Durable storage backends for the local progress mirror."""

from tutorsync.storage.local_storage import KeyValueStorage, MemoryStorage, SQLiteStorage

__all__ = ["KeyValueStorage", "MemoryStorage", "SQLiteStorage"]
