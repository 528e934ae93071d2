"""Centralized logging for ellipticgraph.

Every module logs through ``get_logger(__name__)``; scripts call
``configure_logging`` once at startup. Row-level data problems found while
loading a table are tallied by ``AnomalyCounter``, which logs only the first
few occurrences of each rule so a badly formed file cannot flood the log.
"""
import logging
import sys
from collections import Counter
from typing import Any, Dict, Optional

# Package-level loggers
_PACKAGE_LOGGERS = [
    'ellipticgraph.ingestion',
    'ellipticgraph.graph',
    'ellipticgraph.analysis',
    'ellipticgraph.pipeline',
]

# Occurrences of a single anomaly rule that are logged one by one
MAX_LOGGED_PER_RULE = 5


def get_logger(name: str) -> logging.Logger:
    """Get a logger with consistent formatting.

    Args:
        name: Logger name, typically __name__ from the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


def set_verbosity(verbose: bool = True):
    """Set logging level for all ellipticgraph loggers.

    Args:
        verbose: If True, show INFO messages. If False, only WARNING+.
    """
    level = logging.INFO if verbose else logging.WARNING

    logging.getLogger().setLevel(level)
    for handler in logging.getLogger().handlers:
        handler.setLevel(level)

    for pkg in _PACKAGE_LOGGERS:
        logging.getLogger(pkg).setLevel(level)


def configure_logging(verbose: bool = True, log_file: Optional[str] = None):
    """Configure logging for scripts that drive the pipeline.

    Args:
        verbose: If True, show INFO messages. If False, only WARNING+.
        log_file: Optional path to log file. If provided, logs to both file and stdout.
    """
    level = logging.INFO if verbose else logging.WARNING

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(levelname)s - %(name)s - %(message)s',
        handlers=handlers,
        force=True
    )
    set_verbosity(verbose)


class AnomalyCounter:
    """Tally of skipped or repaired rows, keyed by rule name.

    Args:
        table: Name of the table the rows come from (features, classes, edgelist).
        logger: Logger that receives the per-row and summary messages.
        max_logged: How many occurrences of each rule are logged individually.
    """

    def __init__(self, table: str, logger: Optional[logging.Logger] = None, max_logged: int = MAX_LOGGED_PER_RULE):
        self.table = table
        self.logger = logger or get_logger(__name__)
        self.max_logged = max_logged
        self._counts = Counter()

    def record(self, rule: str, index: int, row: Any = None):
        self._counts[rule] += 1
        if self._counts[rule] <= self.max_logged:
            if row is None:
                self.logger.warning(f"{self.table}: {rule} at row {index}")
            else:
                self.logger.warning(f"{self.table}: {rule} at row {index}: {row}")

    def add(self, rule: str, n: int):
        """Count n occurrences found in bulk, without per-row messages."""
        self._counts[rule] += n

    @property
    def counts(self) -> Dict[str, int]:
        return {f"{self.table}.{rule}": n for rule, n in sorted(self._counts.items())}

    def total(self) -> int:
        return sum(self._counts.values())

    def log_summary(self):
        for rule, n in sorted(self._counts.items()):
            suppressed = n - self.max_logged
            if suppressed > 0:
                self.logger.warning(f"{self.table}: {rule} in {n} rows ({suppressed} not shown)")
            else:
                self.logger.info(f"{self.table}: {rule} in {n} rows")
