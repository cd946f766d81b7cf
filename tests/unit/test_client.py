import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from athena_express import AthenaExpress
from athena_express.config import ClientConfig
from athena_express.exc import (
    ConfigurationError,
    ExecutionFailedError,
    InvalidArgumentError,
    OperationalError,
    QueryTimeoutError,
    ServiceError,
)
from athena_express.results import COST_FOR_10MB
from athena_express.service import QueryService
from athena_express.types import (
    ExecutionHandle,
    ExecutionStatistics,
    ExecutionStatus,
    QueryRequest,
    QueryResponse,
    QueryState,
    ResultPage,
)

STAGING = "s3://athena-express-results/"


class QueryServiceMockFactory:
    @classmethod
    def new(cls, statuses=None, rows=None):
        service = Mock(spec=QueryService)
        service.submit = AsyncMock(return_value=ExecutionHandle("abc"))
        service.get_status = AsyncMock(
            side_effect=statuses
            or [
                ExecutionStatus(state=QueryState.RUNNING),
                ExecutionStatus(
                    state=QueryState.SUCCEEDED,
                    statistics=ExecutionStatistics(
                        data_scanned_in_bytes=5242880,
                        engine_execution_time_in_millis=1500,
                    ),
                ),
            ]
        )
        service.get_results = AsyncMock(
            return_value=ResultPage(rows=rows if rows is not None else [["id", "name"], ["1", "a"]])
        )
        return service


class TestAthenaExpress:
    def test_query_with_records_and_statistics(self):
        service = QueryServiceMockFactory.new()
        client = AthenaExpress(
            service, staging_location=STAGING, poll_interval_ms=1, get_stats=True
        )

        response = asyncio.run(client.query("SELECT id, name FROM users"))

        assert response.items == [{"id": "1", "name": "a"}]
        assert response.statistics.data_scanned_in_mb == 5
        assert response.statistics.query_cost_in_usd == COST_FOR_10MB
        assert response.statistics.engine_execution_time_in_millis == 1500
        assert response.statistics.count == 1
        assert response.to_dict() == {
            "Items": [{"id": "1", "name": "a"}],
            "DataScannedInMB": 5,
            "QueryCostInUSD": COST_FOR_10MB,
            "EngineExecutionTimeInMillis": 1500,
            "Count": 1,
        }

    def test_statistics_omitted_by_default(self):
        client = AthenaExpress(
            QueryServiceMockFactory.new(), staging_location=STAGING, poll_interval_ms=1
        )

        response = asyncio.run(client.query("SELECT 1"))

        assert response.statistics is None
        assert response.to_dict() == {"Items": [{"id": "1", "name": "a"}]}

    def test_raw_matrix_is_passed_through(self):
        rows = [["id", "name"], ["1", "a"], ["2", None]]
        client = AthenaExpress(
            QueryServiceMockFactory.new(rows=rows),
            staging_location=STAGING,
            poll_interval_ms=1,
            format_as_records=False,
        )

        response = asyncio.run(client.query("SELECT 1"))

        assert response.items == rows

    def test_empty_result_matrix(self):
        client = AthenaExpress(
            QueryServiceMockFactory.new(rows=[]),
            staging_location=STAGING,
            poll_interval_ms=1,
            get_stats=True,
        )

        response = asyncio.run(client.query("SELECT 1"))

        assert response.items == []
        assert response.statistics.count == 0

    def test_failed_query_raises_execution_failed_error(self):
        service = QueryServiceMockFactory.new(
            statuses=[
                ExecutionStatus(state=QueryState.FAILED, state_change_reason="SYNTAX_ERROR")
            ]
        )
        client = AthenaExpress(service, staging_location=STAGING, get_stats=True)

        with pytest.raises(ExecutionFailedError) as exc_info:
            asyncio.run(client.query("SELEC 1"))

        assert exc_info.value.reason == "SYNTAX_ERROR"
        service.get_results.assert_not_called()

    @pytest.mark.parametrize("query", ["", "   ", None, {"sql": ""}, {"db": "sales"}, 42])
    def test_missing_sql_raises_before_any_service_call(self, query):
        service = QueryServiceMockFactory.new()
        client = AthenaExpress(service, staging_location=STAGING)

        with pytest.raises(InvalidArgumentError):
            asyncio.run(client.query(query))

        service.submit.assert_not_called()

    def test_structured_request_database_is_used(self):
        service = QueryServiceMockFactory.new()
        client = AthenaExpress(service, staging_location=STAGING, poll_interval_ms=1)

        asyncio.run(client.query({"sql": "SELECT 1", "db": "sales"}))
        asyncio.run(client.query(QueryRequest(sql="SELECT 2", database="hr")))

        assert service.submit.call_args_list[0][0][:3] == ("SELECT 1", STAGING, "sales")
        assert service.submit.call_args_list[1][0][:3] == ("SELECT 2", STAGING, "hr")

    def test_service_errors_propagate_unchanged(self):
        service = QueryServiceMockFactory.new()
        error = ServiceError("Access denied", code="AccessDeniedException")
        service.submit.side_effect = error
        client = AthenaExpress(service, staging_location=STAGING)

        with pytest.raises(ServiceError) as exc_info:
            asyncio.run(client.query("SELECT 1"))

        assert exc_info.value is error

    def test_unexpected_errors_are_wrapped(self):
        service = QueryServiceMockFactory.new()
        cause = RuntimeError("socket exploded")
        service.get_status.side_effect = cause
        client = AthenaExpress(service, staging_location=STAGING)

        with pytest.raises(OperationalError) as exc_info:
            asyncio.run(client.query("SELECT 1"))

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.context["phase"] == "POLLING"
        assert exc_info.value.context["execution-id"] == "abc"

    def test_timeout_is_threaded_to_lifecycle(self):
        service = QueryServiceMockFactory.new()
        service.get_status.side_effect = None
        service.get_status.return_value = ExecutionStatus(state=QueryState.RUNNING)
        client = AthenaExpress(service, staging_location=STAGING, poll_interval_ms=1)

        with pytest.raises(QueryTimeoutError):
            asyncio.run(client.query("SELECT 1", timeout=0.05))

    def test_concurrent_queries_share_read_only_config(self):
        service = Mock(spec=QueryService)
        service.submit = AsyncMock(
            side_effect=[ExecutionHandle("q1"), ExecutionHandle("q2")]
        )
        service.get_status = AsyncMock(
            return_value=ExecutionStatus(state=QueryState.SUCCEEDED)
        )
        service.get_results = AsyncMock(
            side_effect=lambda handle, next_token=None: ResultPage(
                rows=[["query"], [str(handle)]]
            )
        )
        client = AthenaExpress(service, staging_location=STAGING)

        async def run_both():
            return await asyncio.gather(client.query("SELECT 1"), client.query("SELECT 2"))

        first, second = asyncio.run(run_both())

        assert {first.items[0]["query"], second.items[0]["query"]} == {"q1", "q2"}
        assert client.config.poll_interval_ms == 200


class TestAthenaExpressConstruction:
    def test_missing_service_raises(self):
        with pytest.raises(ConfigurationError):
            AthenaExpress(None, staging_location=STAGING)

    def test_service_must_be_a_query_service(self):
        with pytest.raises(ConfigurationError):
            AthenaExpress(object(), staging_location=STAGING)

    def test_missing_config_raises(self):
        with pytest.raises(ConfigurationError):
            AthenaExpress(QueryServiceMockFactory.new())

    def test_config_and_kwargs_are_exclusive(self):
        with pytest.raises(ConfigurationError):
            AthenaExpress(
                QueryServiceMockFactory.new(),
                ClientConfig(staging_location=STAGING),
                get_stats=True,
            )

    def test_config_from_mapping(self):
        client = AthenaExpress(
            QueryServiceMockFactory.new(),
            {"s3": STAGING, "db": "sales", "retry": 500, "getStats": True},
        )

        assert client.config == ClientConfig(
            staging_location=STAGING, database="sales", poll_interval_ms=500, get_stats=True
        )

    def test_query_on_unconfigured_client_raises(self):
        client = AthenaExpress.__new__(AthenaExpress)

        with pytest.raises(ConfigurationError):
            asyncio.run(client.query("SELECT 1"))

    def test_response_default(self):
        assert QueryResponse().to_dict() == {"Items": []}
