"""
Column-name reconciliation for the three Elliptic tables.

Each canonical field has one ordered list of header aliases. A field resolves
to the value of the first alias that is present in the row with a non-null
value; there is no guessing from the values themselves.

The aliases '0' and '1' are positional-index headers: they match files
written with numeric column names and rows parsed with has_header=False.
"""
import math
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

TX_ID = 'tx_id'
LABEL = 'label'
TIMESTEP = 'timestep'
SOURCE = 'source'
TARGET = 'target'

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    TX_ID: ('txId', 'id', '0', 'node_id', 'transaction_id'),
    LABEL: ('class', '1', 'label', 'classification'),
    # 'Time step' is the Elliptic++ header
    TIMESTEP: ('timestep', 'time_step', 'Time step', '1'),
    SOURCE: ('txId1', 'source', '0', 'from', 'node1'),
    TARGET: ('txId2', 'target', '1', 'to', 'node2'),
}


def is_absent(value: Any) -> bool:
    """True for None, blank strings and NaN; 0, '0' and False are values."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, float):
        return math.isnan(value)
    return False


def resolve_field(row: Mapping[str, Any], field: str) -> Optional[Any]:
    """
    Value of a canonical field in a row.

    Args:
        row: Parsed row keyed by header name
        field: One of the keys of FIELD_ALIASES

    Returns:
        The value under the first alias present with a non-null value, or None
    """
    column = resolve_column(row, field)
    return None if column is None else row[column]


def resolve_column(row: Mapping[str, Any], field: str) -> Optional[str]:
    """Header name a canonical field resolves to in a row, or None."""
    for alias in FIELD_ALIASES[field]:
        if alias in row and not is_absent(row[alias]):
            return alias
    return None


def normalize_id(value: Any) -> str:
    """Canonical string form of a transaction id; 230425980.0 becomes '230425980'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def resolve_identifier(row: Mapping[str, Any]) -> Optional[str]:
    value = resolve_field(row, TX_ID)
    return None if value is None else normalize_id(value)


def resolve_label(row: Mapping[str, Any]) -> Optional[Any]:
    return resolve_field(row, LABEL)


def resolve_timestep(row: Mapping[str, Any]) -> Optional[Any]:
    return resolve_field(row, TIMESTEP)


def resolve_endpoints(row: Mapping[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Source and target transaction ids of an edge row, resolved independently."""
    source = resolve_field(row, SOURCE)
    target = resolve_field(row, TARGET)
    return (
        None if source is None else normalize_id(source),
        None if target is None else normalize_id(target),
    )


def reserved_columns(*fields: str) -> FrozenSet[str]:
    """All header aliases of the given canonical fields."""
    return frozenset(alias for f in fields for alias in FIELD_ALIASES[f])
