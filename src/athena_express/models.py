"""
Request and response models for the Athena JSON API.

These models convert between the service's JSON envelopes and the types the
query lifecycle works with.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from athena_express.types import (
    ExecutionHandle,
    ExecutionStatistics,
    ExecutionStatus,
    QueryState,
    RawResultMatrix,
    ResultPage,
)


def _parse_statistics(data: Dict[str, Any]) -> Optional[ExecutionStatistics]:
    """Parse statistics from a QueryExecution block."""
    statistics_data = data.get("Statistics")
    if statistics_data is None:
        return None
    return ExecutionStatistics(
        data_scanned_in_bytes=statistics_data.get("DataScannedInBytes", 0),
        engine_execution_time_in_millis=statistics_data.get(
            "EngineExecutionTimeInMillis"
        ),
    )


def _parse_rows(data: Dict[str, Any]) -> RawResultMatrix:
    """Parse ResultSet.Rows. An empty cell ({}) is SQL NULL."""
    rows = data.get("ResultSet", {}).get("Rows", [])
    return [[cell.get("VarCharValue") for cell in row.get("Data", [])] for row in rows]


@dataclass
class StartQueryExecutionRequest:
    """Representation of a request to start a query execution."""

    query_string: str
    output_location: str
    database: str
    work_group: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "QueryString": self.query_string,
            "ResultConfiguration": {"OutputLocation": self.output_location},
            "QueryExecutionContext": {"Database": self.database},
        }
        if self.work_group:
            result["WorkGroup"] = self.work_group
        return result


@dataclass
class GetQueryResultsRequest:
    """Representation of a request for one page of query results."""

    query_execution_id: str
    next_token: Optional[str] = None
    max_results: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"QueryExecutionId": self.query_execution_id}
        if self.next_token:
            result["NextToken"] = self.next_token
        if self.max_results:
            result["MaxResults"] = self.max_results
        return result


@dataclass
class StartQueryExecutionResponse:
    query_execution_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StartQueryExecutionResponse":
        return cls(query_execution_id=data.get("QueryExecutionId", ""))

    def to_handle(self) -> ExecutionHandle:
        return ExecutionHandle(self.query_execution_id)


@dataclass
class GetQueryExecutionResponse:
    """Representation of the response describing one query execution."""

    query_execution_id: str
    status: ExecutionStatus

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GetQueryExecutionResponse":
        execution = data.get("QueryExecution", {})
        status_data = execution.get("Status", {})

        state = QueryState.from_athena_state(status_data.get("State", ""))
        if state is None:
            raise ValueError(f"Invalid state: {status_data.get('State', '')}")

        return cls(
            query_execution_id=execution.get("QueryExecutionId", ""),
            status=ExecutionStatus(
                state=state,
                state_change_reason=status_data.get("StateChangeReason"),
                statistics=_parse_statistics(execution),
            ),
        )


@dataclass
class GetQueryResultsResponse:
    rows: RawResultMatrix
    next_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GetQueryResultsResponse":
        return cls(rows=_parse_rows(data), next_token=data.get("NextToken"))

    def to_page(self) -> ResultPage:
        return ResultPage(rows=self.rows, next_token=self.next_token)
