from ellipticgraph.ingestion.parser import ParseResult, RowWarning, parse, parse_file
from ellipticgraph.ingestion.schema import FIELD_ALIASES, resolve_endpoints, resolve_field, resolve_identifier
from ellipticgraph.ingestion.labels import build_index, parse_label
