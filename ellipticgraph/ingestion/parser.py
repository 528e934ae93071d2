"""
Delimited-text parser for the Elliptic tables.

Turns raw bytes (or text) into rows keyed by header name. A table that cannot
be decoded, or is larger than the configured ceiling, fails as a whole; a row
with the wrong number of cells only produces a warning.
"""
import csv
import io
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

from ellipticgraph.errors import ParseError, SizeLimitExceeded
from ellipticgraph.graph.models import RawRow
from ellipticgraph.utils.config import DEFAULT_MAX_INPUT_SIZE_BYTES
from ellipticgraph.utils.logging import MAX_LOGGED_PER_RULE, get_logger

logger = get_logger(__name__)

DEFAULT_PARSE_OPTIONS = {
    'has_header': True,
    'delimiter': ',',
    'skip_empty_lines': True,
    'max_rows': None,
    'max_input_size_bytes': DEFAULT_MAX_INPUT_SIZE_BYTES,
    # utf-8-sig drops the BOM spreadsheet exports put in front of the header
    'encoding': 'utf-8-sig',
}

TOO_FEW_FIELDS = 'TooFewFields'
TOO_MANY_FIELDS = 'TooManyFields'


@dataclass(frozen=True)
class RowWarning:
    line: int
    code: str
    message: str


@dataclass
class ParseResult:
    source: str
    fields: List[str]
    rows: List[RawRow] = field(default_factory=list)
    warnings: List[RowWarning] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[RawRow]:
        return iter(self.rows)


def _resolve_options(options: Optional[Dict]) -> Dict:
    resolved = dict(DEFAULT_PARSE_OPTIONS)
    if options:
        unknown = set(options) - set(DEFAULT_PARSE_OPTIONS)
        if unknown:
            raise ValueError(f"Unknown parse options: {sorted(unknown)}")
        resolved.update(options)
    return resolved


def _check_size(size: int, limit: Optional[int], source: str):
    if limit is not None and size > limit:
        raise SizeLimitExceeded(size, limit, table=source)


def _is_empty(cells: List[str]) -> bool:
    return not any(cell.strip() for cell in cells)


def _header_fields(cells: List[str]) -> List[str]:
    """Header names, with blanks replaced by their position and duplicates suffixed."""
    fields = []
    used = set()
    suffixes = {}
    for position, cell in enumerate(cells):
        base = cell.strip() or str(position)
        name = base
        # a real header equal to an earlier generated name is suffixed too
        while name in used:
            suffixes[base] = suffixes.get(base, 0) + 1
            name = f'{base}_{suffixes[base]}'
        used.add(name)
        fields.append(name)
    return fields


def _cell_value(cell: str) -> Optional[str]:
    value = cell.strip()
    return value if value != '' else None


def _log_warnings(warnings: List[RowWarning], source: str):
    for warning in warnings[:MAX_LOGGED_PER_RULE]:
        logger.warning(f"{source}: {warning.message} (line {warning.line})")
    if len(warnings) > MAX_LOGGED_PER_RULE:
        logger.warning(f"{source}: {len(warnings) - MAX_LOGGED_PER_RULE} more malformed rows not shown")


def parse(raw: Union[bytes, str], options: Optional[Dict] = None, source: str = '<input>') -> ParseResult:
    """
    Parse delimited text into rows.

    Args:
        raw: File contents, as bytes or already-decoded text
        options: Parse options, merged over DEFAULT_PARSE_OPTIONS
        source: Table name used in errors and log messages

    Returns:
        ParseResult with the header-derived field names, the rows and any
        row-level warnings

    Raises:
        SizeLimitExceeded: If the input is larger than max_input_size_bytes
        ParseError: If the input cannot be decoded or tokenised
    """
    options = _resolve_options(options)
    encoding = options['encoding']

    if isinstance(raw, bytes):
        _check_size(len(raw), options['max_input_size_bytes'], source)
        try:
            text = raw.decode(encoding)
        except UnicodeDecodeError as e:
            raise ParseError(f"Cannot decode input as {encoding}: {e.reason} at byte {e.start}", table=source) from e
        except LookupError as e:
            raise ParseError(f"Unknown encoding {encoding!r}", table=source) from e
    else:
        _check_size(len(raw.encode('utf-8')), options['max_input_size_bytes'], source)
        text = raw

    reader = csv.reader(io.StringIO(text, newline=''), delimiter=options['delimiter'], strict=True)
    result = ParseResult(source=source, fields=[])
    max_rows = options['max_rows']
    fields = None

    try:
        for cells in reader:
            if _is_empty(cells):
                if options['skip_empty_lines'] or fields is None:
                    continue
            if fields is None:
                if options['has_header']:
                    fields = _header_fields(cells)
                    result.fields = fields
                    continue
                fields = [str(position) for position in range(len(cells))]
                result.fields = fields

            if max_rows is not None and len(result.rows) >= max_rows:
                break

            n_fields = len(fields)
            if len(cells) < n_fields:
                result.warnings.append(RowWarning(
                    reader.line_num, TOO_FEW_FIELDS,
                    f"Expected {n_fields} fields but found {len(cells)}",
                ))
                cells = cells + [''] * (n_fields - len(cells))
            elif len(cells) > n_fields:
                result.warnings.append(RowWarning(
                    reader.line_num, TOO_MANY_FIELDS,
                    f"Expected {n_fields} fields but found {len(cells)}",
                ))
                cells = cells[:n_fields]

            result.rows.append({name: _cell_value(cell) for name, cell in zip(fields, cells)})
    except csv.Error as e:
        raise ParseError(f"Malformed delimited text: {e}", table=source, line=reader.line_num) from e

    if result.warnings:
        _log_warnings(result.warnings, source)
    logger.info(f"Parsed {source}: {len(result.rows)} rows, {len(result.fields)} columns")

    return result


def parse_file(path: Union[str, os.PathLike], options: Optional[Dict] = None, source: Optional[str] = None) -> ParseResult:
    """
    Parse a delimited-text file.

    The size ceiling is checked against the file size before the file is read.

    Args:
        path: Path to the file
        options: Parse options, merged over DEFAULT_PARSE_OPTIONS
        source: Table name for errors and logs; defaults to the file name

    Returns:
        ParseResult
    """
    resolved = _resolve_options(options)
    source = source or os.path.basename(os.fspath(path))

    _check_size(os.path.getsize(path), resolved['max_input_size_bytes'], source)
    logger.info(f"Loading {source} from {path}")

    with open(path, 'rb') as f:
        raw = f.read()

    return parse(raw, resolved, source=source)
