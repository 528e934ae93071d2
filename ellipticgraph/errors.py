"""
Load failures.

Only structural problems with a whole table are raised; problems with single
rows are counted and skipped (see ellipticgraph.utils.logging.AnomalyCounter).
"""
from typing import Optional


class GraphLoadError(ValueError):
    """Base class for failures that abort a load."""

    def __init__(self, message: str, table: Optional[str] = None):
        self.table = table
        if table is not None:
            message = f"[{table}] {message}"
        super().__init__(message)


class ParseError(GraphLoadError):
    """The input cannot be decoded or tokenised as delimited text."""

    def __init__(self, message: str, table: Optional[str] = None, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, table=table)


class SizeLimitExceeded(GraphLoadError):
    """The input is larger than the configured ceiling; raised before parsing."""

    def __init__(self, size: int, limit: int, table: Optional[str] = None):
        self.size = size
        self.limit = limit
        super().__init__(f"Input is {size:,} bytes, limit is {limit:,} bytes", table=table)


class EmptyDatasetError(GraphLoadError):
    """A required table has no rows."""

    def __init__(self, table: str):
        super().__init__(f"The {table} table is empty or has no data rows", table=table)


class LoadCancelled(GraphLoadError):
    """The caller cancelled the load before assembly started."""

    def __init__(self):
        super().__init__("Load cancelled while parsing was pending")
