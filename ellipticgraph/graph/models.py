"""
Record types shared by the assembler, the sampler and the renderer export.

All graph records are frozen; a graph is built once per load and replaced,
never edited.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional, Tuple

import pandas as pd

RawRow = Dict[str, Optional[str]]


class Classification(str, Enum):
    """Compliance label of a transaction."""
    ILLICIT = 'illicit'
    LICIT = 'licit'
    UNKNOWN = 'unknown'


# Fixed partition order used by the sampler and the reports
CLASS_ORDER = (Classification.ILLICIT, Classification.LICIT, Classification.UNKNOWN)


@dataclass(frozen=True)
class CanonicalFeatureRecord:
    tx_id: str
    timestep: int
    feature_sum: float
    raw_features: RawRow = field(repr=False, compare=False)


@dataclass(frozen=True)
class NodeRecord:
    tx_id: str
    classification: Classification
    feature_sum: float
    timestep: int

    @property
    def element_id(self) -> str:
        return f'tx_{self.tx_id}'

    @property
    def label(self) -> str:
        return f'TX {self.tx_id[:8]}'

    @property
    def suspicious(self) -> bool:
        return self.classification is Classification.ILLICIT


@dataclass(frozen=True)
class EdgeRecord:
    source: str
    target: str
    index: int  # row position in the edge table

    @property
    def element_id(self) -> str:
        return f'edge_{self.index}'


@dataclass(frozen=True)
class GraphStatistics:
    total: int
    illicit: int
    licit: int
    unknown: int
    edge_count: int

    def to_dict(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'illicit': self.illicit,
            'licit': self.licit,
            'unknown': self.unknown,
            'edge_count': self.edge_count,
        }


class ClassificationIndex(Mapping):
    """
    Read-only map from transaction id to Classification.

    Ids missing from the index are unlabelled; ``lookup`` turns that into
    Classification.UNKNOWN. ``source_rows`` is the number of rows in the
    classes table the index was built from, which is not the same as its
    length since unknown labels are never stored.
    """

    def __init__(self, labels: Dict[str, Classification], source_rows: int):
        self._labels = dict(labels)
        self.source_rows = source_rows

    def __getitem__(self, tx_id: str) -> Classification:
        return self._labels[tx_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def lookup(self, tx_id: str) -> Classification:
        return self._labels.get(tx_id, Classification.UNKNOWN)

    def __repr__(self) -> str:
        return f'ClassificationIndex(labels={len(self._labels)}, source_rows={self.source_rows})'


@dataclass(frozen=True)
class AssembledGraph:
    """
    Nodes, edges and statistics produced by one assembly or sampling pass.

    Every edge endpoint is the tx_id of a node in ``nodes``. ``anomalies`` is a
    read-only view and takes no part in equality or hashing.
    """
    nodes: Tuple[NodeRecord, ...]
    edges: Tuple[EdgeRecord, ...]
    statistics: GraphStatistics
    anomalies: Mapping[str, int] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'anomalies', MappingProxyType(dict(self.anomalies)))

    def node_ids(self) -> frozenset:
        return frozenset(node.tx_id for node in self.nodes)

    def to_elements(self) -> Dict[str, Any]:
        """
        Element list for the graph renderer.

        Node and edge attributes live under a 'data' key; edge endpoints refer
        to node element ids (tx_<id>), not raw transaction ids.
        """
        nodes = [
            {'data': {
                'id': node.element_id,
                'label': node.label,
                'type': 'transaction',
                'classification': node.classification.value,
                'suspicious': node.suspicious,
                'txId': node.tx_id,
                'featureSum': node.feature_sum,
                'timestep': node.timestep,
            }}
            for node in self.nodes
        ]
        edges = [
            {'data': {
                'id': edge.element_id,
                'source': f'tx_{edge.source}',
                'target': f'tx_{edge.target}',
                # Elliptic carries no amounts
                'amount': 1,
                'type': 'transaction_flow',
            }}
            for edge in self.edges
        ]
        return {'nodes': nodes, 'edges': edges, 'statistics': self.statistics.to_dict()}

    def to_frames(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Return (df_nodes, df_edges) in graph order."""
        df_nodes = pd.DataFrame(
            {
                'tx_id': [n.tx_id for n in self.nodes],
                'classification': [n.classification.value for n in self.nodes],
                'feature_sum': [n.feature_sum for n in self.nodes],
                'timestep': [n.timestep for n in self.nodes],
            },
            columns=['tx_id', 'classification', 'feature_sum', 'timestep'],
        )
        df_edges = pd.DataFrame(
            {
                'edge_id': [e.element_id for e in self.edges],
                'src': [e.source for e in self.edges],
                'dst': [e.target for e in self.edges],
            },
            columns=['edge_id', 'src', 'dst'],
        )
        return df_nodes, df_edges
