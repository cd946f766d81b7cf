from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
import logging

from athena_express.config import ClientConfig
from athena_express.exc import (
    Error,
    ExecutionCancelledError,
    ExecutionFailedError,
    QueryTimeoutError,
)
from athena_express.retry import RETRY_DELAY_SECONDS, is_transient
from athena_express.service import QueryService
from athena_express.types import (
    ExecutionHandle,
    ExecutionStatistics,
    QueryRequest,
    QueryState,
    RawResultMatrix,
)

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    SUBMITTING = "SUBMITTING"
    POLLING = "POLLING"
    FETCHING = "FETCHING"
    DONE = "DONE"
    ABORTED = "ABORTED"


@dataclass
class LifecycleResult:
    """The outcome of a lifecycle that reached DONE."""

    handle: ExecutionHandle
    matrix: RawResultMatrix = field(default_factory=list)
    statistics: Optional[ExecutionStatistics] = None


class QueryLifecycle:
    """
    Drives one query through submission, polling and result retrieval.

    States move SUBMITTING -> POLLING -> FETCHING -> DONE, and to ABORTED from any
    of them. Transient service errors (see retry.is_transient) are retried without
    an attempt limit: submission and result pages after RETRY_DELAY_SECONDS, status
    polls with the poll interval forced to RETRY_DELAY_SECONDS until the query
    succeeds. Any other error aborts the lifecycle and propagates.

    The poll interval is state of this instance only, so concurrent lifecycles
    sharing one ClientConfig never slow each other down.

    :param timeout:
        Seconds the whole lifecycle may take. Defaults to config.query_timeout_seconds.
        When exceeded a QueryTimeoutError is raised. The remote query is not cancelled.

    :param sleep:
        Coroutine function used for every wait. Defaults to asyncio.sleep.
    """

    def __init__(
        self,
        service: QueryService,
        config: ClientConfig,
        request: QueryRequest,
        timeout: Optional[float] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self._service = service
        self._config = config
        self._request = request
        self._timeout = timeout if timeout is not None else config.query_timeout_seconds
        self._sleep = sleep or asyncio.sleep

        self.state = LifecycleState.SUBMITTING
        self.aborted_in: Optional[LifecycleState] = None
        self.handle: Optional[ExecutionHandle] = None
        self.poll_interval = config.poll_interval_seconds
        self.attempts: Dict[LifecycleState, int] = {
            LifecycleState.SUBMITTING: 0,
            LifecycleState.POLLING: 0,
            LifecycleState.FETCHING: 0,
        }

    async def run(self) -> LifecycleResult:
        """
        Run the lifecycle to DONE.

        Raises:
            ExecutionFailedError: If the query reached the FAILED or CANCELLED state
            QueryTimeoutError: If the deadline passed before the lifecycle finished
            ServiceError: If the service reported a non-transient failure
        """
        if self._timeout is None:
            return await self._run()

        try:
            return await asyncio.wait_for(self._run(), self._timeout)
        except asyncio.TimeoutError as e:
            context = {
                "phase": self.aborted_in.value if self.aborted_in else None,
                "timeout-seconds": self._timeout,
            }
            if self.handle is not None:
                context["execution-id"] = str(self.handle)
            raise QueryTimeoutError(
                "Query did not complete within {} seconds".format(self._timeout),
                context,
            ) from e

    async def _run(self) -> LifecycleResult:
        try:
            self.handle = await self._submit()
            statistics = await self._wait_until_succeeded(self.handle)
            matrix = await self._fetch_results(self.handle)
        except BaseException:
            self.aborted_in = self.state
            self._transition(LifecycleState.ABORTED)
            raise

        self._transition(LifecycleState.DONE)
        return LifecycleResult(handle=self.handle, matrix=matrix, statistics=statistics)

    def _transition(self, new_state: LifecycleState) -> None:
        logger.debug(
            "Query %s: %s -> %s",
            self.handle or "<unsubmitted>",
            self.state.value,
            new_state.value,
        )
        self.state = new_state

    def _annotate(self, error: BaseException) -> None:
        if isinstance(error, Error) and self.handle is not None:
            error.context.setdefault("execution-id", str(self.handle))
        if isinstance(error, Error):
            error.context.setdefault("phase", self.state.value)

    async def _call_with_retry(self, call: Callable[..., Awaitable[Any]], *args) -> Any:
        """Await `call(*args)`, retrying transient errors after RETRY_DELAY_SECONDS."""
        while True:
            self.attempts[self.state] += 1
            try:
                return await call(*args)
            except Exception as e:
                if not is_transient(e):
                    self._annotate(e)
                    raise
                logger.warning(
                    "%s attempt %s failed with transient error %s, retrying in %ss",
                    self.state.value,
                    self.attempts[self.state],
                    getattr(e, "code", None),
                    RETRY_DELAY_SECONDS,
                )
                await self._sleep(RETRY_DELAY_SECONDS)

    async def _submit(self) -> ExecutionHandle:
        database = self._request.database or self._config.database
        handle = await self._call_with_retry(
            self._service.submit,
            self._request.sql,
            self._config.staging_location,
            database,
            self._config.workgroup,
        )
        logger.debug("Submitted query %s against database %s", handle, database)
        return handle

    async def _wait_until_succeeded(
        self, handle: ExecutionHandle
    ) -> Optional[ExecutionStatistics]:
        """Poll until the execution is terminal. Returns the statistics seen at SUCCEEDED."""
        self._transition(LifecycleState.POLLING)

        while True:
            self.attempts[LifecycleState.POLLING] += 1
            try:
                status = await self._service.get_status(handle)
            except Exception as e:
                if not is_transient(e):
                    self._annotate(e)
                    raise
                self.poll_interval = RETRY_DELAY_SECONDS
                logger.warning(
                    "Status poll for query %s failed with transient error %s, "
                    "polling every %ss",
                    handle,
                    getattr(e, "code", None),
                    self.poll_interval,
                )
                await self._sleep(self.poll_interval)
                continue

            if status.state == QueryState.SUCCEEDED:
                self.poll_interval = self._config.poll_interval_seconds
                return status.statistics

            if status.state == QueryState.FAILED:
                reason = status.state_change_reason
                raise ExecutionFailedError(
                    reason or "Query execution failed",
                    {"execution-id": str(handle), "state": status.state.value},
                    reason=reason,
                )

            if status.state == QueryState.CANCELLED:
                reason = status.state_change_reason
                raise ExecutionCancelledError(
                    reason or "Query execution was cancelled",
                    {"execution-id": str(handle), "state": status.state.value},
                    reason=reason,
                )

            await self._sleep(self.poll_interval)

    async def _fetch_results(self, handle: ExecutionHandle) -> RawResultMatrix:
        self._transition(LifecycleState.FETCHING)

        matrix: RawResultMatrix = []
        next_token: Optional[str] = None
        while True:
            page = await self._call_with_retry(
                self._service.get_results, handle, next_token
            )
            matrix.extend(page.rows)
            if not page.next_token:
                break
            next_token = page.next_token

        logger.debug("Fetched %s result rows for query %s", len(matrix), handle)
        return matrix
