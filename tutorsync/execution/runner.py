"""
Code runner: sends code to the backend sandbox and exposes the outcome.

Failures never propagate. A transport or HTTP failure leaves ``result``
empty and sets ``error``; a program that ran but reported an error keeps
its ``result`` and copies the message into ``error``.

Runs are not retried: a program may have side effects or take most of the
server's timeout, so a failed run is reported, not repeated.
"""

from __future__ import annotations

from loguru import logger

from tutorsync.api.client import ExecutionApi
from tutorsync.core.errors import ApiError
from tutorsync.models import ExecutionResult


class CodeRunner:
    """Runs code snippets for the UI layer."""

    def __init__(self, api: ExecutionApi):
        self.api = api

        self.executing = False
        self.result: ExecutionResult | None = None
        self.error: str | None = None

    async def execute_code(self, code: str, snippet: bool = False) -> ExecutionResult | None:
        """
        Execute code remotely.

        Args:
            code: Source to run
            snippet: Let the server wrap a bare snippet in a main package

        Returns:
            The execution result, or None if the request itself failed
        """
        self.executing = True
        self.error = None
        self.result = None
        try:
            self.result = await self.api.execute_code(code, snippet)
            if self.result.error:
                self.error = self.result.error
        except ApiError as e:
            logger.error(f"Failed to execute code: {e}")
            self.error = f"Failed to execute code: {e}"
        finally:
            self.executing = False

        return self.result

    def clear_result(self) -> None:
        self.result = None
        self.error = None
