"""
Shared pytest fixtures: small Elliptic-style tables as CSV bytes, files and parsed rows
"""
import pytest

from ellipticgraph.graph.assembler import assemble
from ellipticgraph.ingestion.labels import build_index
from ellipticgraph.ingestion.parser import parse


FEATURES_CSV = (
    "txId,timestep,f1,f2\n"
    "A,1,0.5,1.5\n"
    "B,1,1.0,2.0\n"
    "C,2,-1.0,0.25\n"
)

CLASSES_CSV = (
    "txId,class\n"
    "A,1\n"
    "B,2\n"
    "C,unknown\n"
)

EDGELIST_CSV = (
    "txId1,txId2\n"
    "A,B\n"
    "B,C\n"
    "C,D\n"
)


def _to_csv(header, rows):
    lines = [",".join(header)]
    lines.extend(",".join(str(v) for v in row) for row in rows)
    return ("\n".join(lines) + "\n").encode('utf-8')


@pytest.fixture
def make_tables():
    """
    Build (features, classes, edgelist) CSV bytes.

    features: iterable of (tx_id, timestep, f1, f2)
    classes: iterable of (tx_id, class)
    edges: iterable of (source, target)
    """
    def _make(features, classes, edges):
        return (
            _to_csv(["txId", "timestep", "f1", "f2"], features),
            _to_csv(["txId", "class"], classes),
            _to_csv(["txId1", "txId2"], edges),
        )
    return _make


@pytest.fixture
def features_bytes():
    return FEATURES_CSV.encode('utf-8')


@pytest.fixture
def classes_bytes():
    return CLASSES_CSV.encode('utf-8')


@pytest.fixture
def edgelist_bytes():
    return EDGELIST_CSV.encode('utf-8')


@pytest.fixture
def dataset_files(tmp_path):
    """The three tables written to disk, as (features, classes, edgelist) paths"""
    features = tmp_path / "elliptic_txs_features.csv"
    classes = tmp_path / "elliptic_txs_classes.csv"
    edgelist = tmp_path / "elliptic_txs_edgelist.csv"
    features.write_text(FEATURES_CSV)
    classes.write_text(CLASSES_CSV)
    edgelist.write_text(EDGELIST_CSV)
    return features, classes, edgelist


@pytest.fixture
def small_graph():
    """Assembled graph of A (illicit) -> B (licit) -> C (unknown); C -> D is dangling"""
    features = parse(FEATURES_CSV).rows
    index = build_index(parse(CLASSES_CSV).rows)
    edges = parse(EDGELIST_CSV).rows
    return assemble(features, index, edges)


@pytest.fixture
def balanced_graph():
    """
    Graph with 50 illicit, 200 licit and 300 unknown transactions, interleaved,
    plus a chain of edges through all of them.
    """
    feature_rows = []
    class_rows = []
    for i in range(550):
        tx_id = f"{i:04d}"
        if i % 11 == 0:
            label = '1'
        elif i % 11 < 5:
            label = '2'
        else:
            label = 'unknown'
        feature_rows.append({'txId': tx_id, 'timestep': str(1 + i % 49), 'f1': '1.0'})
        class_rows.append({'txId': tx_id, 'class': label})
    edge_rows = [
        {'txId1': f"{i:04d}", 'txId2': f"{i + 1:04d}"} for i in range(549)
    ]
    return assemble(feature_rows, build_index(class_rows), edge_rows)
