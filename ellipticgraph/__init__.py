"""
ellipticgraph: turn the Elliptic Bitcoin tables into a consistent, labelled
transaction graph for compliance review.
"""
from ellipticgraph.errors import EmptyDatasetError, GraphLoadError, LoadCancelled, ParseError, SizeLimitExceeded
from ellipticgraph.graph.models import AssembledGraph, Classification, EdgeRecord, GraphStatistics, NodeRecord
from ellipticgraph.pipeline import GraphPipeline, LoadState, load_graph

__all__ = [
    'AssembledGraph',
    'Classification',
    'EdgeRecord',
    'EmptyDatasetError',
    'GraphLoadError',
    'GraphPipeline',
    'GraphStatistics',
    'LoadCancelled',
    'LoadState',
    'NodeRecord',
    'ParseError',
    'SizeLimitExceeded',
    'load_graph',
]
