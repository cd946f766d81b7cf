import json
import logging
from typing import Any, Dict, Optional

import httpx

from athena_express.exc import ServiceError, TransientServiceError
from athena_express.models import (
    GetQueryExecutionResponse,
    GetQueryResultsRequest,
    GetQueryResultsResponse,
    StartQueryExecutionRequest,
    StartQueryExecutionResponse,
)
from athena_express.retry import NETWORKING_ERROR, TRANSIENT_ERROR_CODES
from athena_express.service import QueryService
from athena_express.types import ExecutionHandle, ExecutionStatus, ResultPage

logger = logging.getLogger(__name__)


class AthenaHttpService(QueryService):
    """
    QueryService speaking the Athena JSON 1.1 API over httpx.

    Request signing is not done here: pass an `httpx.Auth` (for example an AWS
    SigV4 signer) that adds the credentials to every request. Failures are
    raised as ServiceError with the service's error type as `code`; transport
    failures use the code "NetworkingError".
    """

    TARGET_PREFIX = "AmazonAthena."
    CONTENT_TYPE = "application/x-amz-json-1.1"

    def __init__(
        self,
        region: str,
        auth: Optional[httpx.Auth] = None,
        endpoint_url: Optional[str] = None,
        timeout: float = 30.0,
        max_results: Optional[int] = None,
        **kwargs,
    ):
        """
        Initialize the Athena HTTP service.

        Args:
            region: AWS region, used to build the default endpoint
            auth: httpx authentication flow that signs each request
            endpoint_url: Overrides https://athena.<region>.amazonaws.com
            timeout: Per-request timeout in seconds
            max_results: Page size for GetQueryResults (the service default when None)
            **kwargs: Additional keyword arguments passed to httpx.AsyncClient,
                for example `transport`
        """
        if not region and not endpoint_url:
            raise ValueError("Either region or endpoint_url is required")

        self.region = region
        self.endpoint_url = endpoint_url or "https://athena.{}.amazonaws.com".format(
            region
        )
        self.max_results = max_results
        self._client = httpx.AsyncClient(
            base_url=self.endpoint_url,
            auth=auth,
            timeout=timeout,
            headers={"Content-Type": self.CONTENT_TYPE},
            **kwargs,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _make_request(
        self, operation: str, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Call one Athena operation.

        Args:
            operation: Operation name, for example "StartQueryExecution"
            data: Request payload

        Returns:
            Dict[str, Any]: Response data parsed from JSON

        Raises:
            ServiceError: If the request fails or the service returned an error
        """
        headers = {"X-Amz-Target": self.TARGET_PREFIX + operation}
        logger.debug("Making %s request to %s", operation, self.endpoint_url)

        try:
            response = await self._client.post(
                "/", content=json.dumps(data).encode("utf-8"), headers=headers
            )
        except httpx.TransportError as e:
            raise TransientServiceError(
                "Error during request to server. {}".format(e),
                {"operation": operation, "original-exception": repr(e)},
                code=NETWORKING_ERROR,
            ) from e

        if response.is_success:
            return response.json() if response.content else {}

        raise self._error_from_response(operation, response)

    @staticmethod
    def _error_from_response(operation: str, response: httpx.Response) -> ServiceError:
        try:
            body = response.json()
        except ValueError:
            body = {}

        # __type looks like "ThrottlingException" or "prefix#ThrottlingException"
        error_type = body.get("__type")
        code = error_type.rsplit("#", 1)[-1] if error_type else None
        message = body.get("message") or body.get("Message") or response.reason_phrase

        error_class = TransientServiceError if code in TRANSIENT_ERROR_CODES else ServiceError
        return error_class(
            "{} failed: {}".format(operation, message),
            {"operation": operation, "http-code": response.status_code},
            code=code,
        )

    async def submit(
        self,
        sql: str,
        staging_location: str,
        database: str,
        workgroup: Optional[str] = None,
    ) -> ExecutionHandle:
        request = StartQueryExecutionRequest(
            query_string=sql,
            output_location=staging_location,
            database=database,
            work_group=workgroup,
        )
        response_data = await self._make_request(
            "StartQueryExecution", request.to_dict()
        )
        return StartQueryExecutionResponse.from_dict(response_data).to_handle()

    async def get_status(self, handle: ExecutionHandle) -> ExecutionStatus:
        response_data = await self._make_request(
            "GetQueryExecution", {"QueryExecutionId": str(handle)}
        )
        return GetQueryExecutionResponse.from_dict(response_data).status

    async def get_results(
        self, handle: ExecutionHandle, next_token: Optional[str] = None
    ) -> ResultPage:
        request = GetQueryResultsRequest(
            query_execution_id=str(handle),
            next_token=next_token,
            max_results=self.max_results,
        )
        response_data = await self._make_request("GetQueryResults", request.to_dict())
        return GetQueryResultsResponse.from_dict(response_data).to_page()
