"""
tutor-sync - offline-first progress and content client for interactive tutorials.

Packages:
- core: retry executor, background task tracking, exceptions
- models: camelCase wire models (Progress, Tutorial, ...)
- storage: durable key-value backends for the progress mirror
- api: httpx clients for the tutorial and progress endpoints
- content: TTL cache and stale-while-revalidate loader
- progress: optimistic progress store
- cli: typer commands
"""

__version__ = "1.0.0"
