from athena_express.client import AthenaExpress
from athena_express.config import ClientConfig, default_staging_location
from athena_express.exc import (
    Error,
    InterfaceError,
    DatabaseError,
    OperationalError,
    ConfigurationError,
    InvalidArgumentError,
    ServiceError,
    TransientServiceError,
    ExecutionFailedError,
    ExecutionCancelledError,
    QueryTimeoutError,
)
from athena_express.http_service import AthenaHttpService
from athena_express.service import QueryService
from athena_express.types import (
    ExecutionHandle,
    ExecutionStatistics,
    ExecutionStatus,
    QueryRequest,
    QueryResponse,
    QueryState,
    ResultPage,
    Statistics,
)

__version__ = "1.0.0"

__all__ = [
    "AthenaExpress",
    "AthenaHttpService",
    "ClientConfig",
    "default_staging_location",
    "QueryService",
    # Types
    "ExecutionHandle",
    "ExecutionStatistics",
    "ExecutionStatus",
    "QueryRequest",
    "QueryResponse",
    "QueryState",
    "ResultPage",
    "Statistics",
    # Exceptions
    "Error",
    "InterfaceError",
    "DatabaseError",
    "OperationalError",
    "ConfigurationError",
    "InvalidArgumentError",
    "ServiceError",
    "TransientServiceError",
    "ExecutionFailedError",
    "ExecutionCancelledError",
    "QueryTimeoutError",
]
