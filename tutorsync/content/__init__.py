"""Tutorial content: TTL cache plus the cache-first loader."""

from tutorsync.content.cache import DEFAULT_TTL_SECONDS, TutorialCache
from tutorsync.content.loader import TutorialLoader

__all__ = ["DEFAULT_TTL_SECONDS", "TutorialCache", "TutorialLoader"]
