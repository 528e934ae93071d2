"""
Simple adjacency rules over an assembled graph.

These flag structures worth a reviewer's attention; they are not a model and
make no claim to find every illicit pattern.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import networkx as nx

from ellipticgraph.graph.models import AssembledGraph, Classification, EdgeRecord, NodeRecord
from ellipticgraph.utils.logging import get_logger

logger = get_logger(__name__)

ILLICIT_LINKS = 'illicit_links'
CIRCULAR_FLOWS = 'circular_flows'


@dataclass(frozen=True)
class PatternReport:
    rule: str
    edges: Tuple[EdgeRecord, ...]

    @property
    def count(self) -> int:
        return len(self.edges)


def to_networkx(graph: AssembledGraph) -> nx.MultiDiGraph:
    """Directed multigraph keyed by transaction id; parallel edges keyed by element id."""
    G = nx.MultiDiGraph()
    for node in graph.nodes:
        G.add_node(
            node.tx_id,
            classification=node.classification.value,
            feature_sum=node.feature_sum,
            timestep=node.timestep,
        )
    for edge in graph.edges:
        G.add_edge(edge.source, edge.target, key=edge.element_id, index=edge.index)
    return G


def find_illicit_links(graph: AssembledGraph) -> List[EdgeRecord]:
    """Edges between two illicit transactions, each edge once, in graph order."""
    illicit = {n.tx_id for n in graph.nodes if n.classification is Classification.ILLICIT}
    return [e for e in graph.edges if e.source in illicit and e.target in illicit]


def find_circular_flows(graph: AssembledGraph) -> List[EdgeRecord]:
    """Edges u -> v for which the graph also has an edge v -> u. Self-loops do not count."""
    G = to_networkx(graph)
    return [
        e for e in graph.edges
        if e.source != e.target and G.has_edge(e.target, e.source)
    ]


_RULES = {
    ILLICIT_LINKS: find_illicit_links,
    CIRCULAR_FLOWS: find_circular_flows,
}


def detect_suspicious_patterns(graph: AssembledGraph, rule: str = ILLICIT_LINKS) -> PatternReport:
    """
    Run one adjacency rule.

    Args:
        graph: Assembled or sampled graph
        rule: 'illicit_links' or 'circular_flows'

    Returns:
        PatternReport with the flagged edges
    """
    if rule not in _RULES:
        raise ValueError(f"Unknown pattern rule '{rule}', expected one of {sorted(_RULES)}")
    edges = tuple(_RULES[rule](graph))
    logger.info(f"Found {len(edges)} edges matching {rule}")
    return PatternReport(rule=rule, edges=edges)


def search_nodes(graph: AssembledGraph, term: str) -> List[NodeRecord]:
    """Nodes whose label or classification contains term (case-insensitive) or whose id contains it."""
    if not term:
        return []
    needle = term.lower()
    return [
        n for n in graph.nodes
        if needle in n.label.lower() or needle in n.classification.value or term in n.tx_id
    ]


def node_details(graph: AssembledGraph, tx_id: str) -> Dict[str, Any]:
    """
    Attributes and degrees of one transaction, as shown in a node info panel.

    Raises:
        KeyError: If tx_id is not a node of the graph
    """
    node = next((n for n in graph.nodes if n.tx_id == tx_id), None)
    if node is None:
        raise KeyError(tx_id)
    G = to_networkx(graph)
    return {
        'tx_id': node.tx_id,
        'classification': node.classification.value,
        'timestep': node.timestep,
        'feature_sum': node.feature_sum,
        'in_degree': G.in_degree(tx_id),
        'out_degree': G.out_degree(tx_id),
        'degree': G.degree(tx_id),
        'suspicious': node.suspicious,
    }
