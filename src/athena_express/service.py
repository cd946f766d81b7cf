from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from athena_express.types import ExecutionHandle, ExecutionStatus, ResultPage


class QueryService(ABC):
    """
    Abstract interface to a remote asynchronous query service.

    Implementations are responsible for:
    - Submitting a SQL statement and returning an execution handle
    - Reporting the execution status of a handle
    - Returning the result matrix of a finished execution, one page at a time

    Authentication, credential resolution and request signing belong to the
    implementation. Every method raises ServiceError (with a `code`) on failure;
    the query lifecycle decides whether that failure is retried.
    """

    @abstractmethod
    async def submit(
        self,
        sql: str,
        staging_location: str,
        database: str,
        workgroup: Optional[str] = None,
    ) -> ExecutionHandle:
        """
        Starts executing `sql` against `database`, writing results to `staging_location`.

        Returns:
            ExecutionHandle: Identifies the new execution

        Raises:
            ServiceError: If the service rejected the request
        """
        pass

    @abstractmethod
    async def get_status(self, handle: ExecutionHandle) -> ExecutionStatus:
        """
        Returns the current status of an execution. Statistics are populated
        once the execution reached a terminal state.

        Raises:
            ServiceError: If the status could not be retrieved
        """
        pass

    @abstractmethod
    async def get_results(
        self, handle: ExecutionHandle, next_token: Optional[str] = None
    ) -> ResultPage:
        """
        Returns one page of the result matrix of a succeeded execution.

        Args:
            handle: The execution to read
            next_token: Token returned with the previous page, None for the first page

        Returns:
            ResultPage: The rows of the page. Only the first page holds the header row.

        Raises:
            ServiceError: If the results could not be retrieved
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the service client."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.close()
