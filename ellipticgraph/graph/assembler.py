"""
Assemble the transaction graph from reconciled tables.

Feature rows become nodes (classification joined from the index), edge rows
become edges, and edges whose endpoints are not both nodes of this graph are
dropped. Bad rows are counted and skipped; only empty tables are fatal.
"""
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ellipticgraph.errors import EmptyDatasetError
from ellipticgraph.graph.models import (
    AssembledGraph,
    CanonicalFeatureRecord,
    Classification,
    ClassificationIndex,
    EdgeRecord,
    NodeRecord,
    RawRow,
)
from ellipticgraph.graph.statistics import summarize_records
from ellipticgraph.ingestion.schema import (
    TIMESTEP,
    TX_ID,
    reserved_columns,
    resolve_column,
    resolve_endpoints,
    resolve_identifier,
)
from ellipticgraph.utils.logging import AnomalyCounter, get_logger

logger = get_logger(__name__)

DEFAULT_TIMESTEP = 1

# Never part of feature_sum, along with the column the timestep resolved to
_ID_COLUMNS = reserved_columns(TX_ID)


def _to_float(value: Any) -> float:
    """Numeric value of a cell; anything non-numeric or non-finite is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_timestep(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def canonicalize_feature_row(row: RawRow, anomalies: Optional[AnomalyCounter] = None, index: int = -1) -> Optional[CanonicalFeatureRecord]:
    """
    Canonical form of one features row.

    Args:
        row: Parsed features row
        anomalies: Optional counter for unparsable timesteps
        index: Row position, used in anomaly messages

    Returns:
        CanonicalFeatureRecord, or None if the row has no resolvable id
    """
    tx_id = resolve_identifier(row)
    if tx_id is None:
        return None

    timestep_column = resolve_column(row, TIMESTEP)
    raw_timestep = None if timestep_column is None else row[timestep_column]
    if raw_timestep is None:
        timestep = DEFAULT_TIMESTEP
    else:
        timestep = _to_timestep(raw_timestep)
        if timestep is None:
            if anomalies is not None:
                anomalies.record('unparsable_timestep', index, raw_timestep)
            timestep = DEFAULT_TIMESTEP

    feature_sum = math.fsum(
        _to_float(value) for column, value in row.items()
        if column not in _ID_COLUMNS and column != timestep_column
    )

    return CanonicalFeatureRecord(tx_id=tx_id, timestep=timestep, feature_sum=feature_sum, raw_features=row)


def filter_edges(edges: Iterable[EdgeRecord], node_ids: Iterable[str]) -> List[EdgeRecord]:
    """
    Keep the edges whose source and target are both in node_ids.

    Order is preserved. Self-loops and repeated edges are kept.
    """
    node_ids = node_ids if isinstance(node_ids, (set, frozenset)) else set(node_ids)
    return [e for e in edges if e.source in node_ids and e.target in node_ids]


def _build_nodes(feature_rows: Iterable[RawRow], classification_index: Mapping[str, Classification], anomalies: AnomalyCounter) -> List[NodeRecord]:
    lookup = getattr(classification_index, 'lookup', None)
    if lookup is None:
        def lookup(tx_id):
            return classification_index.get(tx_id, Classification.UNKNOWN)

    # dict keeps the first position of a repeated id and the last row's values
    nodes: Dict[str, NodeRecord] = {}
    for index, row in enumerate(feature_rows):
        record = canonicalize_feature_row(row, anomalies, index)
        if record is None:
            anomalies.record('unresolved_identifier', index)
            continue
        if record.tx_id in nodes:
            anomalies.record('duplicate_identifier', index, record.tx_id)
        nodes[record.tx_id] = NodeRecord(
            tx_id=record.tx_id,
            classification=lookup(record.tx_id),
            feature_sum=record.feature_sum,
            timestep=record.timestep,
        )
    return list(nodes.values())


def _build_edges(edge_rows: Iterable[RawRow], anomalies: AnomalyCounter) -> List[EdgeRecord]:
    edges = []
    for index, row in enumerate(edge_rows):
        source, target = resolve_endpoints(row)
        if source is None or target is None:
            anomalies.record('unresolved_endpoint', index, row)
            continue
        edges.append(EdgeRecord(source=source, target=target, index=index))
    return edges


def assemble(feature_rows: Sequence[RawRow], classification_index: Mapping[str, Classification], edge_rows: Sequence[RawRow], anomalies: Optional[Dict[str, int]] = None) -> AssembledGraph:
    """
    Build the graph for one load.

    Args:
        feature_rows: Rows of the features table
        classification_index: Output of build_index (a plain dict also works;
            ids missing from it are unknown)
        edge_rows: Rows of the edge list
        anomalies: Counts already collected for this load (e.g. by build_index),
            merged into the graph's anomaly report

    Returns:
        AssembledGraph with no dangling edges

    Raises:
        EmptyDatasetError: If any of the three inputs is empty
    """
    if len(feature_rows) == 0:
        raise EmptyDatasetError('features')
    source_rows = getattr(classification_index, 'source_rows', len(classification_index))
    if source_rows == 0:
        raise EmptyDatasetError('classes')
    if len(edge_rows) == 0:
        raise EmptyDatasetError('edgelist')

    feature_anomalies = AnomalyCounter('features', logger)
    edge_anomalies = AnomalyCounter('edgelist', logger)

    nodes = _build_nodes(feature_rows, classification_index, feature_anomalies)
    logger.info(f"Created {len(nodes)} nodes from {len(feature_rows)} feature rows")

    candidates = _build_edges(edge_rows, edge_anomalies)
    edges = filter_edges(candidates, {node.tx_id for node in nodes})
    n_dangling = len(candidates) - len(edges)
    if n_dangling:
        edge_anomalies.add('dangling_edge', n_dangling)
    logger.info(f"Kept {len(edges)} of {len(candidates)} edges ({n_dangling} dangling)")

    feature_anomalies.log_summary()
    edge_anomalies.log_summary()

    statistics = summarize_records(nodes, edges)
    logger.info(
        f"Classifications: {statistics.illicit} illicit, {statistics.licit} licit, {statistics.unknown} unknown"
    )

    report = dict(anomalies or {})
    report.update(feature_anomalies.counts)
    report.update(edge_anomalies.counts)

    return AssembledGraph(nodes=tuple(nodes), edges=tuple(edges), statistics=statistics, anomalies=report)
