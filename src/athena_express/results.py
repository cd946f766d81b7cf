from __future__ import annotations

import math
from typing import List, Optional, Sequence
import logging

import pandas
import pyarrow

from athena_express.types import (
    ExecutionStatistics,
    RawResultMatrix,
    Statistics,
    TransformedRecord,
)

logger = logging.getLogger(__name__)

BYTES_IN_MB = 1048576
# Based on $5/TB
COST_PER_MB = 0.000004768
# The service bills a 10 MB minimum per query
MINIMUM_BILLED_MB = 10
COST_FOR_10MB = COST_PER_MB * MINIMUM_BILLED_MB


class ResultSchema:
    """Ordered column names of a result matrix, taken from its header row."""

    def __init__(self, column_names: Sequence[Optional[str]]):
        self.column_names: List[str] = [
            name if name is not None else "" for name in column_names
        ]

    @classmethod
    def from_header(cls, header_row: Sequence[Optional[str]]) -> "ResultSchema":
        return cls(header_row)

    def __len__(self):
        return len(self.column_names)

    @staticmethod
    def cell(row: Sequence[Optional[str]], index: int) -> Optional[str]:
        """Value of column `index` in `row`. A missing cell reads as None (SQL NULL)."""
        if index < len(row):
            return row[index]
        return None

    def to_record(self, row: Sequence[Optional[str]]) -> TransformedRecord:
        return {
            name: self.cell(row, index) for index, name in enumerate(self.column_names)
        }


def to_records(matrix: RawResultMatrix):
    """
    Convert a result matrix into one record per data row.

    Row 0 is the header and is never emitted. An empty matrix is returned unchanged.
    """
    if not matrix:
        return matrix

    schema = ResultSchema.from_header(matrix[0])
    if any(len(row) != len(schema) for row in matrix[1:]):
        logger.debug(
            "Result rows do not all match the header width of %s columns", len(schema)
        )
    return [schema.to_record(row) for row in matrix[1:]]


def data_scanned_in_mb(data_scanned_in_bytes: int) -> int:
    # Half a megabyte rounds up
    return int(math.floor(data_scanned_in_bytes / BYTES_IN_MB + 0.5))


def query_cost_in_usd(scanned_mb: int) -> float:
    if scanned_mb > MINIMUM_BILLED_MB:
        return scanned_mb * COST_PER_MB
    return COST_FOR_10MB


def compute_statistics(
    execution_statistics: Optional[ExecutionStatistics], item_count: int
) -> Statistics:
    """Scan size, cost and timing summary for one finished execution."""
    execution_statistics = execution_statistics or ExecutionStatistics()
    scanned_mb = data_scanned_in_mb(execution_statistics.data_scanned_in_bytes or 0)

    return Statistics(
        data_scanned_in_mb=scanned_mb,
        query_cost_in_usd=query_cost_in_usd(scanned_mb),
        engine_execution_time_in_millis=execution_statistics.engine_execution_time_in_millis,
        count=item_count,
    )


def to_arrow(records: List[TransformedRecord]) -> "pyarrow.Table":
    """Build an Arrow table of string columns from records."""
    if not records:
        return pyarrow.table({})
    column_names = list(records[0].keys())
    columns = {
        name: pyarrow.array(
            [record.get(name) for record in records], type=pyarrow.string()
        )
        for name in column_names
    }
    return pyarrow.table(columns)


def to_pandas(records: List[TransformedRecord]) -> "pandas.DataFrame":
    """Build a DataFrame of nullable string columns. Missing values become pandas.NA."""
    if not records:
        return pandas.DataFrame()
    # Need nullable string dtype, as otherwise None is mixed with NaN in object columns
    df = pandas.DataFrame.from_records(records, columns=list(records[0].keys()))
    return df.astype(pandas.StringDtype())
