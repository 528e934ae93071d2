"""
End-to-end load of the Elliptic tables.

``load_graph`` is the whole pipeline as one stateless call: parse the three
tables concurrently, then build the classification index, assemble the graph
and return it. ``GraphPipeline`` adds the two-state (unloaded/loaded) view a
UI needs on top of it, holding nothing but the state and the last graph.
"""
import os
import threading
from enum import Enum
from multiprocessing.pool import ThreadPool
from typing import BinaryIO, Dict, Optional, Tuple, Union

from ellipticgraph.errors import EmptyDatasetError, LoadCancelled
from ellipticgraph.graph.assembler import assemble
from ellipticgraph.graph.models import AssembledGraph
from ellipticgraph.graph.sampler import sample
from ellipticgraph.ingestion.labels import build_index
from ellipticgraph.ingestion.parser import ParseResult, parse, parse_file
from ellipticgraph.utils.config import load_pipeline_config, parse_options
from ellipticgraph.utils.logging import AnomalyCounter, get_logger

logger = get_logger(__name__)

Source = Union[str, bytes, os.PathLike, BinaryIO]

TABLES = ('features', 'classes', 'edgelist')

# How often a pending parse checks the cancel event, in seconds
_CANCEL_POLL_INTERVAL = 0.05


class LoadState(str, Enum):
    UNLOADED = 'unloaded'
    LOADED = 'loaded'


def _parse_source(source: Source, options: Dict, table: str) -> ParseResult:
    """Parse a file path, raw bytes or a binary stream."""
    if isinstance(source, (bytes, bytearray)):
        return parse(bytes(source), options, source=table)
    if hasattr(source, 'read'):
        # At most one byte past the ceiling is read
        limit = options.get('max_input_size_bytes')
        raw = source.read() if limit is None else source.read(limit + 1)
        return parse(raw, options, source=table)
    return parse_file(source, options, source=table)


def parse_tables(features: Source, classes: Source, edgelist: Source, options: Dict, cancel_event: Optional[threading.Event] = None) -> Tuple[ParseResult, ParseResult, ParseResult]:
    """
    Parse the three tables concurrently.

    Args:
        features, classes, edgelist: Path, bytes or binary stream of each table
        options: Parser options
        cancel_event: Optional event; when set while parsing is pending the
            load stops with LoadCancelled

    Returns:
        Parse results in (features, classes, edgelist) order
    """
    sources = (features, classes, edgelist)
    with ThreadPool(len(TABLES)) as p:
        pending = p.starmap_async(_parse_source, [(src, options, table) for src, table in zip(sources, TABLES)])
        while not pending.ready():
            pending.wait(_CANCEL_POLL_INTERVAL)
            if cancel_event is not None and cancel_event.is_set():
                p.terminate()
                raise LoadCancelled()
        results = pending.get()
    return tuple(results)


def load_graph(features: Source, classes: Source, edgelist: Source, config: Optional[Dict] = None, cancel_event: Optional[threading.Event] = None) -> AssembledGraph:
    """
    Load the three Elliptic tables into an AssembledGraph.

    Args:
        features: Features table (path, bytes or binary stream)
        classes: Classes table (path, bytes or binary stream)
        edgelist: Edge list (path, bytes or binary stream)
        config: Pipeline configuration; defaults to DEFAULT_PIPELINE_CONFIG
        cancel_event: Optional event checked while the tables are being parsed

    Returns:
        Immutable AssembledGraph of the full dataset

    Raises:
        ParseError, SizeLimitExceeded: If a table cannot be read
        EmptyDatasetError: If a table has no data rows
        LoadCancelled: If cancel_event was set before assembly started
    """
    config = config if config is not None else load_pipeline_config()
    options = parse_options(config)

    logger.info('Loading Elliptic dataset files...')
    parsed = parse_tables(features, classes, edgelist, options, cancel_event)

    for table, result in zip(TABLES, parsed):
        logger.info(f"{table}: {len(result)} rows")
        if len(result) == 0:
            raise EmptyDatasetError(table)

    if cancel_event is not None and cancel_event.is_set():
        raise LoadCancelled()

    feature_rows, class_rows, edge_rows = (result.rows for result in parsed)

    class_anomalies = AnomalyCounter('classes', logger)
    index = build_index(class_rows, class_anomalies)
    class_anomalies.log_summary()

    anomalies = {}
    for table, result in zip(TABLES, parsed):
        if result.warnings:
            anomalies[f'{table}.malformed_row'] = len(result.warnings)
    anomalies.update(class_anomalies.counts)

    return assemble(feature_rows, index, edge_rows, anomalies)


class GraphPipeline:
    """
    Load state for one viewer session.

    A successful load replaces the graph; a failed one leaves the pipeline
    unloaded. Loads are single-flight: starting a second load while one is
    running on the same instance raises RuntimeError.
    """

    def __init__(self, config: Optional[Dict] = None):
        self.config = config if config is not None else load_pipeline_config()
        self._state = LoadState.UNLOADED
        self._graph: Optional[AssembledGraph] = None
        self._load_lock = threading.Lock()

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def graph(self) -> Optional[AssembledGraph]:
        return self._graph

    def load(self, features: Source, classes: Source, edgelist: Source, cancel_event: Optional[threading.Event] = None) -> AssembledGraph:
        if not self._load_lock.acquire(blocking=False):
            raise RuntimeError('A load is already in progress on this pipeline')
        try:
            self.clear()
            graph = load_graph(features, classes, edgelist, self.config, cancel_event)
            self._graph = graph
            self._state = LoadState.LOADED
            logger.info('Elliptic dataset loaded successfully')
            return graph
        except Exception:
            logger.error('Failed to load Elliptic dataset')
            raise
        finally:
            self._load_lock.release()

    def load_sample(self, max_nodes: Optional[int] = None) -> AssembledGraph:
        """Class-balanced sample of the loaded graph, using the configured proportions, caps and scan budget."""
        if self._state is not LoadState.LOADED:
            raise RuntimeError('Dataset not loaded yet')
        target = max_nodes if max_nodes is not None else self.config['max_sample_nodes']
        return sample(
            self._graph,
            target,
            class_proportions=self.config['class_proportions'],
            hard_caps=self.config['per_class_hard_caps'],
            max_examination_rows=self.config['max_examination_rows'],
        )

    def clear(self):
        self._graph = None
        self._state = LoadState.UNLOADED
