from __future__ import annotations

from typing import Any, Mapping, Optional, Union
import logging

from athena_express.config import ClientConfig
from athena_express.exc import ConfigurationError, Error, OperationalError
from athena_express.lifecycle import QueryLifecycle
from athena_express.results import compute_statistics, to_records
from athena_express.service import QueryService
from athena_express.types import QueryRequest, QueryResponse

logger = logging.getLogger(__name__)


class AthenaExpress:
    def __init__(
        self,
        service: QueryService,
        config: Optional[Union[ClientConfig, Mapping[str, Any]]] = None,
        **kwargs,
    ):
        """
        Run SQL queries through a QueryService and return complete results.

        Parameters:
            :param service: The query service used to submit, poll and fetch queries.
            :param config: A ClientConfig, or a mapping accepted by ClientConfig.from_dict.
            :param kwargs: ClientConfig fields, used when `config` is not given.

        One AthenaExpress can be shared by concurrent tasks. Each call to `query`
        runs its own lifecycle, and the configuration is never mutated.
        """
        if service is None:
            raise ConfigurationError("Query service not present in the constructor")
        if not isinstance(service, QueryService):
            raise ConfigurationError(
                "Query service is not a QueryService",
                {"service-type": type(service).__name__},
            )

        if config is None:
            config = ClientConfig(**kwargs) if kwargs else None
        elif kwargs:
            raise ConfigurationError("Pass either a config object or keyword arguments")
        elif not isinstance(config, ClientConfig):
            config = ClientConfig.from_dict(config)

        if config is None:
            raise ConfigurationError("Config object not present in the constructor")

        self.service = service
        self.config = config

    async def query(
        self,
        query: Union[str, Mapping[str, Any], QueryRequest],
        timeout: Optional[float] = None,
    ) -> QueryResponse:
        """
        Run a single query to completion.

        Parameters:
            :param query: SQL text, a mapping with "sql" and optional "db" keys, or a QueryRequest.
            :param timeout: Seconds the query may take overall, overriding config.query_timeout_ms.

        Returns:
            QueryResponse: Records (or the raw matrix) and, when enabled, statistics.

        Raises:
            ConfigurationError: If the client was not properly constructed
            InvalidArgumentError: If the request carries no SQL text
            ExecutionFailedError: If the query failed or was cancelled server side
            QueryTimeoutError: If the timeout passed first
            ServiceError: If the service reported a non-transient failure
            OperationalError: Wrapping any other failure
        """
        if getattr(self, "config", None) is None or getattr(self, "service", None) is None:
            raise ConfigurationError("Config object not present in the constructor")

        request = QueryRequest.from_query(query)

        lifecycle = QueryLifecycle(self.service, self.config, request, timeout=timeout)
        try:
            result = await lifecycle.run()
        except Error:
            raise
        except Exception as e:
            raise OperationalError(
                "Error during query execution: {}".format(e),
                {
                    "phase": lifecycle.aborted_in.value if lifecycle.aborted_in else None,
                    "execution-id": str(lifecycle.handle) if lifecycle.handle else None,
                    "original-exception": repr(e),
                },
            ) from e

        if self.config.format_as_records:
            items = to_records(result.matrix)
        else:
            items = result.matrix

        response = QueryResponse(items=items)
        if self.config.get_stats:
            response.statistics = compute_statistics(result.statistics, len(items))

        logger.info(
            "Query %s returned %s items", result.handle, len(response.items)
        )
        return response
