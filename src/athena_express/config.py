from __future__ import annotations

import datetime
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional
import logging

from athena_express.exc import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "default"
DEFAULT_POLL_INTERVAL_MS = 200

# Short keys accepted by ClientConfig.from_dict besides the field names
_SHORT_KEY_MAP = {
    "s3": "staging_location",
    "db": "database",
    "retry": "poll_interval_ms",
    "formatJson": "format_as_records",
    "getStats": "get_stats",
    "timeout": "query_timeout_ms",
}


def default_staging_location(access_key_id: str, year: Optional[int] = None) -> str:
    """
    Build the default result staging bucket for an AWS access key:
    s3://athena-express-<first ten characters of the key, lowercased>-<year>
    """
    if not access_key_id:
        raise ConfigurationError(
            "An access key id is required to derive the default staging location"
        )
    year = year or datetime.date.today().year
    return "s3://athena-express-{}-{}".format(access_key_id[:10].lower(), year)


@dataclass(frozen=True)
class ClientConfig:
    """
    Client configuration, created once and shared read-only by every query
    issued through one AthenaExpress instance.

    :param staging_location:
        Object storage path (s3://...) where the service writes result data.

    :param database:
        Database used when a request does not name one.

    :param poll_interval_ms:
        Milliseconds to wait between status polls while a query is queued or running.
        Transient polling errors raise the interval of that one query only.

    :param format_as_records:
        Convert the result matrix into one dict per row. When False the raw matrix,
        header row included, is returned.

    :param get_stats:
        Attach DataScannedInMB, QueryCostInUSD, EngineExecutionTimeInMillis and Count.

    :param query_timeout_ms:
        Overall deadline for one query, covering submission, polling and fetching.
        None means no deadline.

    :param workgroup:
        Optional Athena workgroup passed to the service on submission.
    """

    staging_location: str
    database: str = DEFAULT_DATABASE
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    format_as_records: bool = True
    get_stats: bool = False
    query_timeout_ms: Optional[int] = None
    workgroup: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.staging_location, str) or not self.staging_location:
            raise ConfigurationError("A result staging location is required")
        if not isinstance(self.database, str) or not self.database:
            raise ConfigurationError(
                "Database must be a non-empty string", {"database": self.database}
            )
        if (
            isinstance(self.poll_interval_ms, bool)
            or not isinstance(self.poll_interval_ms, int)
            or self.poll_interval_ms <= 0
        ):
            raise ConfigurationError(
                "poll_interval_ms must be a positive integer",
                {"poll_interval_ms": self.poll_interval_ms},
            )
        if self.query_timeout_ms is not None and (
            isinstance(self.query_timeout_ms, bool)
            or not isinstance(self.query_timeout_ms, (int, float))
            or self.query_timeout_ms <= 0
        ):
            raise ConfigurationError(
                "query_timeout_ms must be a positive number or None",
                {"query_timeout_ms": self.query_timeout_ms},
            )

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def query_timeout_seconds(self) -> Optional[float]:
        if self.query_timeout_ms is None:
            return None
        return self.query_timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfig":
        """
        Build a ClientConfig from a mapping of field names. The short keys
        s3, db, retry, formatJson, getStats and timeout are accepted as well.
        A missing or zero retry falls back to the default poll interval.
        """
        field_names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        ignored = set()

        for key, value in data.items():
            name = _SHORT_KEY_MAP.get(key, key)
            if name not in field_names:
                ignored.add(key)
                continue
            kwargs[name] = value

        if ignored:
            logger.warning(
                "Some configuration keys were ignored because they are not supported: %s",
                ignored,
            )

        if "staging_location" not in kwargs:
            raise ConfigurationError("A result staging location is required")

        if "poll_interval_ms" in kwargs:
            try:
                kwargs["poll_interval_ms"] = (
                    int(kwargs["poll_interval_ms"]) or DEFAULT_POLL_INTERVAL_MS
                )
            except (TypeError, ValueError):
                kwargs["poll_interval_ms"] = DEFAULT_POLL_INTERVAL_MS
        if kwargs.get("database") is None:
            kwargs.pop("database", None)
        if "format_as_records" in kwargs:
            kwargs["format_as_records"] = kwargs["format_as_records"] is not False
        if "get_stats" in kwargs:
            kwargs["get_stats"] = bool(kwargs["get_stats"])

        return cls(**kwargs)
