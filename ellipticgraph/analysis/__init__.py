from ellipticgraph.analysis.patterns import (
    PatternReport,
    detect_suspicious_patterns,
    find_circular_flows,
    find_illicit_links,
    node_details,
    search_nodes,
    to_networkx,
)
