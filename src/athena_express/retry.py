THROTTLED = "TooManyRequestsException"
THROTTLING = "ThrottlingException"
NETWORKING_ERROR = "NetworkingError"

TRANSIENT_ERROR_CODES = frozenset([THROTTLED, THROTTLING, NETWORKING_ERROR])

# Fixed backoff between retries of a transient error. Also the poll interval
# used once a status poll has hit a transient error.
RETRY_DELAY_SECONDS = 2.0


def is_transient(error: BaseException) -> bool:
    """Whether `error` is a rate-limit, throttling or networking failure that is
    safe to retry.

    The decision is made on the error's `code` attribute alone. Errors without a
    code, or with any other code (auth failures, malformed queries, missing
    resources, failed executions), are not retried.
    """
    return getattr(error, "code", None) in TRANSIENT_ERROR_CODES
