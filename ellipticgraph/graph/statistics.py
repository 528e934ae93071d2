"""
Counts of a graph and the summary report written next to the build outputs.

Statistics are always recomputed from the nodes and edges they describe, so an
assembled graph and any sample of it report consistent totals.
"""
import json
import os
from datetime import datetime
from typing import Any, Dict, Iterable, Sequence

from ellipticgraph.graph.models import AssembledGraph, Classification, EdgeRecord, GraphStatistics, NodeRecord
from ellipticgraph.utils.logging import get_logger

logger = get_logger(__name__)


def summarize_records(nodes: Iterable[NodeRecord], edges: Sequence[EdgeRecord]) -> GraphStatistics:
    """Tally node classifications and count edges."""
    counts = {c: 0 for c in Classification}
    for node in nodes:
        counts[node.classification] += 1
    return GraphStatistics(
        total=sum(counts.values()),
        illicit=counts[Classification.ILLICIT],
        licit=counts[Classification.LICIT],
        unknown=counts[Classification.UNKNOWN],
        edge_count=len(edges),
    )


def summarize(graph: AssembledGraph) -> GraphStatistics:
    """Statistics of a graph, recomputed from its nodes and edges."""
    return summarize_records(graph.nodes, graph.edges)


def write_summary(graph: AssembledGraph, output_file: str) -> Dict[str, Any]:
    """
    Write a JSON summary of a graph and a Markdown report next to it.

    Args:
        graph: Assembled or sampled graph
        output_file: Path of the JSON file; the report uses the same name with .md

    Returns:
        Dictionary written to the JSON file
    """
    stats = summarize(graph)
    total = stats.total

    summary = {
        'generated_at': datetime.now().isoformat(),
        'statistics': stats.to_dict(),
        'class_ratios': {
            c.value: round(getattr(stats, c.value) / total, 4) if total > 0 else 0.0
            for c in Classification
        },
        'anomalies': dict(graph.anomalies),
    }

    directory = os.path.dirname(output_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_file, 'w') as f:
        json.dump(summary, f, indent=2)

    markdown_file = os.path.splitext(output_file)[0] + '.md'
    _write_markdown_report(summary, markdown_file)

    logger.info(f"Graph summary saved to:")
    logger.info(f"  JSON: {output_file}")
    logger.info(f"  Markdown: {markdown_file}")

    return summary


def _write_markdown_report(summary: Dict[str, Any], output_file: str):
    """Write simple markdown report."""

    stats = summary['statistics']
    ratios = summary['class_ratios']

    lines = []
    lines.append("# Transaction Graph Summary")
    lines.append("")
    lines.append(f"**Generated:** {summary['generated_at']}")
    lines.append("")

    lines.append("## Transactions")
    lines.append("")
    lines.append(f"- **Total transactions:** {stats['total']:,}")
    lines.append(f"- **Illicit:** {stats['illicit']:,} ({ratios['illicit']*100:.1f}%)")
    lines.append(f"- **Licit:** {stats['licit']:,} ({ratios['licit']*100:.1f}%)")
    lines.append(f"- **Unknown:** {stats['unknown']:,} ({ratios['unknown']*100:.1f}%)")
    lines.append(f"- **Connections:** {stats['edge_count']:,}")
    lines.append("")

    if summary['anomalies']:
        lines.append("## Skipped or repaired rows")
        lines.append("")
        for rule, count in sorted(summary['anomalies'].items()):
            lines.append(f"- `{rule}`: {count:,}")
        lines.append("")

    with open(output_file, 'w') as f:
        f.write('\n'.join(lines))
