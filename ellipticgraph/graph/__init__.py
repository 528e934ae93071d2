from ellipticgraph.graph.models import (
    AssembledGraph,
    CanonicalFeatureRecord,
    Classification,
    ClassificationIndex,
    EdgeRecord,
    GraphStatistics,
    NodeRecord,
)
from ellipticgraph.graph.assembler import assemble, filter_edges
from ellipticgraph.graph.sampler import sample
from ellipticgraph.graph.statistics import summarize, write_summary
