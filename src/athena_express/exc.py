import json


class Error(Exception):
    """Base class for athena-express exceptions.
    `message`: An optional user-friendly error message. It should be short, actionable and stable
    `context`: Optional extra context about the error. MUST be JSON serializable
    """

    def __init__(self, message=None, context=None, *args, **kwargs):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.context = context or {}

    def __str__(self):
        return self.message

    def message_with_context(self):
        return self.message + ": " + json.dumps(self.context, default=str)


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class OperationalError(DatabaseError):
    pass


### Custom error classes ###
class ConfigurationError(InterfaceError):
    """Thrown if the client was not given a usable query service or configuration."""

    pass


class InvalidArgumentError(InterfaceError):
    """Thrown if a query request carries no usable SQL text."""

    pass


class ServiceError(OperationalError):
    """Thrown if the query service reported a failure.
    `code` is the service error code (for example "ThrottlingException"), or None.
    Its context will have the following keys (where available):
    "operation": The service operation that failed
    "http-code": HTTP response code of the failed request
    "execution-id": The query execution id
    """

    def __init__(self, message=None, context=None, code=None, *args, **kwargs):
        super().__init__(message, context, *args, **kwargs)
        self.code = code
        if code is not None:
            self.context.setdefault("error-code", code)


class TransientServiceError(ServiceError):
    """A rate-limit, throttling or networking failure. The query lifecycle retries these
    and never surfaces them to the caller.
    """

    pass


class ExecutionFailedError(DatabaseError):
    """Thrown if the remote query moved to the FAILED state, for example on a syntax error.
    `reason` is the state change reason reported by the service.
    Its context will have the following keys:
    "execution-id": The query execution id
    "state": The terminal state that was observed
    """

    def __init__(self, message=None, context=None, reason=None, *args, **kwargs):
        super().__init__(message, context, *args, **kwargs)
        self.reason = reason


class ExecutionCancelledError(ExecutionFailedError):
    """Thrown if the remote query was cancelled server side before completing."""

    pass


class QueryTimeoutError(OperationalError):
    """Thrown if the query did not complete within the caller's deadline.
    The remote query is not cancelled and keeps running server side.
    Its context will have the following keys:
    "phase": The lifecycle state when the deadline was hit
    "timeout-seconds": The configured deadline
    "execution-id": The query execution id (if submission completed)
    """

    pass
