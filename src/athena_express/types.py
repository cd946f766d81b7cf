from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from athena_express.exc import InvalidArgumentError

RawResultMatrix = List[List[Optional[str]]]
TransformedRecord = Dict[str, Optional[str]]


class QueryState(Enum):
    """
    Enum representing the execution state of a query in Athena.

    Attributes:
        QUEUED: Query is accepted but not yet running
        RUNNING: Query is currently executing
        SUCCEEDED: Query completed successfully
        FAILED: Query failed, for example on a syntax error
        CANCELLED: Query was cancelled before completion
    """

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @classmethod
    def from_athena_state(cls, state: str) -> Optional["QueryState"]:
        """
        Map an Athena state string to QueryState.

        Athena spells the cancelled state "CANCELLED", older responses use
        "CANCELED"; both map to CANCELLED. Unknown states map to None.
        """
        state_mapping = {
            "QUEUED": cls.QUEUED,
            "RUNNING": cls.RUNNING,
            "SUCCEEDED": cls.SUCCEEDED,
            "FAILED": cls.FAILED,
            "CANCELLED": cls.CANCELLED,
            "CANCELED": cls.CANCELLED,
        }

        return state_mapping.get(state, None)

    @property
    def is_terminal(self) -> bool:
        return self in (QueryState.SUCCEEDED, QueryState.FAILED, QueryState.CANCELLED)


class ExecutionHandle:
    """
    An opaque identifier for one in-flight query execution.

    Handles are created by QueryService.submit and are never reused across queries.
    """

    def __init__(self, execution_id: str):
        if not execution_id:
            raise ValueError("Execution id must be a non-empty string")
        self.execution_id = execution_id

    def __str__(self) -> str:
        return self.execution_id

    def __repr__(self) -> str:
        return "ExecutionHandle({!r})".format(self.execution_id)

    def __eq__(self, other):
        if not isinstance(other, ExecutionHandle):
            return False
        return self.execution_id == other.execution_id

    def __hash__(self):
        return hash(self.execution_id)


@dataclass(frozen=True)
class ExecutionStatistics:
    """Statistics reported by the service for a finished execution."""

    data_scanned_in_bytes: int = 0
    engine_execution_time_in_millis: Optional[int] = None


@dataclass(frozen=True)
class ExecutionStatus:
    """Status information for a query execution."""

    state: QueryState
    state_change_reason: Optional[str] = None
    statistics: Optional[ExecutionStatistics] = None


@dataclass(frozen=True)
class ResultPage:
    """One page of the result matrix. Only the first page carries the header row."""

    rows: RawResultMatrix
    next_token: Optional[str] = None


@dataclass(frozen=True)
class QueryRequest:
    """A single query to run: the SQL text and an optional target database."""

    sql: str
    database: Optional[str] = None

    @classmethod
    def from_query(
        cls, query: Union[str, Mapping[str, Any], "QueryRequest", None]
    ) -> "QueryRequest":
        """
        Build a QueryRequest from a raw SQL string, a mapping with "sql" and an
        optional "db" (or "database") key, or an existing QueryRequest.

        Raises:
            InvalidArgumentError: If no usable SQL text is present
        """
        if isinstance(query, QueryRequest):
            request = query
        elif isinstance(query, str):
            request = cls(sql=query)
        elif isinstance(query, Mapping):
            request = cls(
                sql=query.get("sql"),
                database=query.get("db") or query.get("database"),
            )
        else:
            raise InvalidArgumentError(
                "SQL query is missing", {"request-type": type(query).__name__}
            )

        if not isinstance(request.sql, str) or not request.sql.strip():
            raise InvalidArgumentError("SQL query is missing")
        return request


@dataclass(frozen=True)
class Statistics:
    """Scan size, cost and timing summary attached to a response."""

    data_scanned_in_mb: int
    query_cost_in_usd: float
    engine_execution_time_in_millis: Optional[int]
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "DataScannedInMB": self.data_scanned_in_mb,
            "QueryCostInUSD": self.query_cost_in_usd,
            "EngineExecutionTimeInMillis": self.engine_execution_time_in_millis,
            "Count": self.count,
        }


@dataclass
class QueryResponse:
    """
    The result of one query.

    `items` holds one record per data row when records formatting is enabled,
    otherwise the raw result matrix (header row included). `statistics` is only
    set when statistics were requested.
    """

    items: Union[List[TransformedRecord], RawResultMatrix] = field(default_factory=list)
    statistics: Optional[Statistics] = None

    def to_dict(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {"Items": self.items}
        if self.statistics is not None:
            response.update(self.statistics.to_dict())
        return response

    def to_arrow(self):
        """Return the records as a pyarrow.Table."""
        from athena_express.results import to_arrow

        return to_arrow(self._records())

    def to_pandas(self):
        """Return the records as a pandas.DataFrame."""
        from athena_express.results import to_pandas

        return to_pandas(self._records())

    def _records(self) -> List[TransformedRecord]:
        if self.items and not isinstance(self.items[0], dict):
            raise ValueError(
                "Tabular conversion needs records; enable format_as_records"
            )
        return self.items  # type: ignore[return-value]
