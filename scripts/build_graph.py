"""
Build the review graph from the Elliptic CSV files.

Loads the features, classes and edge list tables, samples a class-balanced
subset (unless --full is given) and writes the renderer element list, node
and edge tables and a summary report.

Outputs (in --output, default: output/):
    elements.json   nodes/edges/statistics for the graph viewer
    nodes.csv       one row per transaction
    edges.csv       one row per kept edge
    summary.json    statistics and skipped-row counts (+ summary.md)

Usage examples:
    python scripts/build_graph.py \\
        --features data/elliptic_txs_features.csv \\
        --classes data/elliptic_txs_classes.csv \\
        --edgelist data/elliptic_txs_edgelist.csv

    # Larger sample with a custom config
    python scripts/build_graph.py --features ... --classes ... --edgelist ... \\
        --config configs/pipeline.yaml --max-nodes 500
"""
import argparse
import json
import os
import sys

from ellipticgraph.analysis.patterns import detect_suspicious_patterns
from ellipticgraph.errors import GraphLoadError
from ellipticgraph.graph.statistics import write_summary
from ellipticgraph.pipeline import GraphPipeline
from ellipticgraph.utils.config import load_pipeline_config
from ellipticgraph.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Build a class-balanced transaction graph from the Elliptic dataset',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--features', type=str, required=True, help='Path to the features CSV (txs_features.csv)')
    parser.add_argument('--classes', type=str, required=True, help='Path to the classes CSV (txs_classes.csv)')
    parser.add_argument('--edgelist', type=str, required=True, help='Path to the edge list CSV (txs_edgelist.csv)')
    parser.add_argument('--config', type=str, help='Path to a pipeline config YAML file.', default=None)
    parser.add_argument('--output', type=str, help='Output directory.', default='output')
    parser.add_argument('--max-nodes', type=int, help='Sample size. Default: max_sample_nodes from the config.', default=None)
    parser.add_argument('--full', action='store_true', help='Write the full graph instead of a sample.')
    parser.add_argument('--quiet', action='store_true', help='Only log warnings and errors.')
    args = parser.parse_args(argv)

    configure_logging(verbose=not args.quiet)

    config = load_pipeline_config(args.config)
    pipeline = GraphPipeline(config)

    try:
        graph = pipeline.load(args.features, args.classes, args.edgelist)
    except (GraphLoadError, FileNotFoundError) as e:
        logger.error(f"Failed to load Elliptic dataset: {e}")
        return 1

    if not args.full:
        graph = pipeline.load_sample(args.max_nodes)

    os.makedirs(args.output, exist_ok=True)

    with open(os.path.join(args.output, 'elements.json'), 'w') as f:
        json.dump(graph.to_elements(), f)

    df_nodes, df_edges = graph.to_frames()
    df_nodes.to_csv(os.path.join(args.output, 'nodes.csv'), index=False)
    df_edges.to_csv(os.path.join(args.output, 'edges.csv'), index=False)

    write_summary(graph, os.path.join(args.output, 'summary.json'))

    report = detect_suspicious_patterns(graph)
    logger.info(f"{report.count} connections between illicit transactions")

    stats = graph.statistics
    logger.info(f"Wrote {stats.total} transactions ({stats.illicit} illicit) and {stats.edge_count} edges to {args.output}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
