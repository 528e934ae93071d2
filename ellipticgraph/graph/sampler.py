"""
Class-balanced downsampling of an assembled graph for interactive viewing.

The sample is a prefix take per class, not a random draw, so the same graph
and parameters always give the same sample.
"""
import math
from typing import Dict, List, Optional

from ellipticgraph.graph.assembler import filter_edges
from ellipticgraph.graph.models import CLASS_ORDER, AssembledGraph, Classification, NodeRecord
from ellipticgraph.graph.statistics import summarize_records
from ellipticgraph.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CLASS_PROPORTIONS = {'illicit': 0.1, 'licit': 0.4, 'unknown': 0.5}


def _validate(target_max: int, proportions: Dict[str, float], hard_caps: Dict[str, Optional[int]]):
    if not isinstance(target_max, int) or isinstance(target_max, bool) or target_max < 0:
        raise ValueError(f"target_max must be a non-negative integer, got {target_max!r}")
    unknown = (set(proportions) | set(hard_caps)) - {c.value for c in CLASS_ORDER}
    if unknown:
        raise ValueError(f"Unknown class names: {sorted(unknown)}")
    for c in CLASS_ORDER:
        value = proportions.get(c.value, 0.0)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Proportion for '{c.value}' must be in [0, 1], got {value}")
    if sum(proportions.values()) > 1.0 + 1e-9:
        raise ValueError(f"Class proportions sum to {sum(proportions.values()):.4f}, must be <= 1")
    for name, cap in hard_caps.items():
        if cap is None:
            continue
        if not isinstance(cap, int) or isinstance(cap, bool) or cap < 0:
            raise ValueError(f"Hard cap for '{name}' must be a non-negative integer, got {cap!r}")


def class_quotas(target_max: int, proportions: Dict[str, float], hard_caps: Optional[Dict[str, Optional[int]]] = None) -> Dict[Classification, int]:
    """
    Maximum number of nodes per class: floor(target_max * proportion), lowered
    to the hard cap when one is set.
    """
    hard_caps = hard_caps or {}
    quotas = {}
    for c in CLASS_ORDER:
        # round() first so 100 * 0.29 does not floor to 28
        quota = math.floor(round(target_max * proportions.get(c.value, 0.0), 9))
        cap = hard_caps.get(c.value)
        if cap is not None:
            quota = min(quota, cap)
        quotas[c] = quota
    return quotas


def sample(graph: AssembledGraph, target_max: int, class_proportions: Optional[Dict[str, float]] = None, hard_caps: Optional[Dict[str, Optional[int]]] = None, max_examination_rows: Optional[int] = None) -> AssembledGraph:
    """
    Downsample a graph while keeping approximate class proportions.

    For each class the first quota nodes (in graph order) are kept; the result
    lists illicit, then licit, then unknown nodes. Edges are filtered again so
    no edge points at a node that was sampled out.

    When the graph has more nodes than max_examination_rows, only that many
    nodes are scanned. A class that only shows up after the budget is then
    under-represented.

    Args:
        graph: Source graph, left untouched
        target_max: Sample size the proportions are applied to
        class_proportions: Share of target_max per class name; must sum to <= 1
        hard_caps: Optional absolute cap per class name (None means no cap)
        max_examination_rows: Optional node-scan budget for large graphs

    Returns:
        New AssembledGraph
    """
    proportions = dict(DEFAULT_CLASS_PROPORTIONS if class_proportions is None else class_proportions)
    hard_caps = dict(hard_caps or {})
    _validate(target_max, proportions, hard_caps)

    quotas = class_quotas(target_max, proportions, hard_caps)
    partitions: Dict[Classification, List[NodeRecord]] = {c: [] for c in CLASS_ORDER}

    n_nodes = len(graph.nodes)
    budget = n_nodes
    if max_examination_rows is not None and n_nodes > max_examination_rows:
        budget = max_examination_rows

    scanned = 0
    for node in graph.nodes:
        if all(len(partitions[c]) >= quotas[c] for c in CLASS_ORDER):
            break
        if scanned >= budget:
            short = [c.value for c in CLASS_ORDER if len(partitions[c]) < quotas[c]]
            logger.warning(f"Stopped scanning after {budget} of {n_nodes} nodes; quota not met for: {', '.join(short)}")
            break
        scanned += 1
        bucket = partitions[node.classification]
        if len(bucket) < quotas[node.classification]:
            bucket.append(node)

    nodes = [node for c in CLASS_ORDER for node in partitions[c]]
    edges = filter_edges(graph.edges, {node.tx_id for node in nodes})

    logger.info(
        f"Sample: {len(partitions[Classification.ILLICIT])} illicit, "
        f"{len(partitions[Classification.LICIT])} licit, "
        f"{len(partitions[Classification.UNKNOWN])} unknown; "
        f"{len(edges)} of {len(graph.edges)} edges kept"
    )

    return AssembledGraph(
        nodes=tuple(nodes),
        edges=tuple(edges),
        statistics=summarize_records(nodes, edges),
        anomalies=dict(graph.anomalies),
    )
