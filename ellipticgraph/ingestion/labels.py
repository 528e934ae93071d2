"""
Classes table -> ClassificationIndex.

The Elliptic classes file labels each transaction 1 (illicit), 2 (licit) or
'unknown'. Only the first two are stored; everything else is left out of the
index so the join falls back to Classification.UNKNOWN.
"""
from typing import Any, Iterable, Optional

from ellipticgraph.graph.models import Classification, ClassificationIndex, RawRow
from ellipticgraph.ingestion.schema import resolve_identifier, resolve_label
from ellipticgraph.utils.logging import AnomalyCounter, get_logger

logger = get_logger(__name__)

ILLICIT_CODE = 1
LICIT_CODE = 2
UNKNOWN_CODE = 3

LABEL_CODES = {
    ILLICIT_CODE: Classification.ILLICIT,
    LICIT_CODE: Classification.LICIT,
}


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def parse_label(value: Any) -> Optional[Classification]:
    """
    Classification for a raw class value.

    '1' / 1 / 1.0 are illicit, '2' / 2 / 2.0 are licit. Any other value,
    including 3, 'unknown' and non-integral numbers, returns None.
    """
    code = _as_int(value)
    if code is None:
        return None
    return LABEL_CODES.get(code)


def build_index(class_rows: Iterable[RawRow], anomalies: Optional[AnomalyCounter] = None) -> ClassificationIndex:
    """
    Build the transaction id -> classification lookup.

    Rows whose id or label does not resolve are skipped. A later row for the
    same id replaces the earlier one.

    Args:
        class_rows: Rows of the classes table
        anomalies: Optional counter that receives the skipped rows

    Returns:
        ClassificationIndex holding only illicit and licit entries
    """
    counter = anomalies if anomalies is not None else AnomalyCounter('classes', logger)
    labels = {}
    n_rows = 0

    for index, row in enumerate(class_rows):
        n_rows += 1
        tx_id = resolve_identifier(row)
        if tx_id is None:
            counter.record('unresolved_identifier', index, row)
            continue
        raw_label = resolve_label(row)
        if raw_label is None:
            counter.record('missing_label', index, row)
            continue
        classification = parse_label(raw_label)
        if classification is None:
            if _as_int(raw_label) != UNKNOWN_CODE and str(raw_label).strip().lower() != 'unknown':
                counter.record('unrecognised_label', index, row)
            # Keep the newest label authoritative: an unknown row clears an earlier one
            labels.pop(tx_id, None)
            continue
        labels[tx_id] = classification

    if anomalies is None:
        counter.log_summary()
    logger.info(f"Classification index: {len(labels)} labelled of {n_rows} rows")

    return ClassificationIndex(labels, source_rows=n_rows)
