"""
Unit tests for the delimited-text parser
"""
import pytest

from ellipticgraph.errors import ParseError, SizeLimitExceeded
from ellipticgraph.ingestion.parser import TOO_FEW_FIELDS, TOO_MANY_FIELDS, parse, parse_file


@pytest.mark.unit
class TestParse:
    """Tests for parse"""

    def test_rows_keyed_by_header(self):
        """Test that rows are dictionaries keyed by header name"""
        result = parse("txId,class\n1,2\n3,unknown\n")

        assert result.fields == ["txId", "class"]
        assert result.rows == [
            {"txId": "1", "class": "2"},
            {"txId": "3", "class": "unknown"},
        ]
        assert result.warnings == []

    def test_accepts_bytes(self):
        """Test that bytes input is decoded"""
        result = parse(b"a,b\nx,y\n")
        assert result.rows == [{"a": "x", "b": "y"}]

    def test_strips_utf8_bom(self):
        """Test that a leading byte order mark does not end up in the first header"""
        result = parse("\ufeffa,b\n1,2\n".encode('utf-8'))
        assert result.fields == ["a", "b"]

    def test_empty_cells_become_none(self):
        """Test that empty and blank cells are None"""
        result = parse("a,b,c\n1,, \n")
        assert result.rows == [{"a": "1", "b": None, "c": None}]

    def test_cells_are_trimmed(self):
        """Test that surrounding whitespace is removed from cells"""
        result = parse("a,b\n 1 ,  x\n")
        assert result.rows == [{"a": "1", "b": "x"}]

    def test_quoted_fields(self):
        """Test that quoted cells may contain the delimiter"""
        result = parse('a,b\n"1,5",x\n')
        assert result.rows == [{"a": "1,5", "b": "x"}]

    def test_skips_empty_lines(self):
        """Test that empty lines are skipped"""
        result = parse("a,b\n\n1,2\n\n\n3,4\n")
        assert len(result) == 2

    def test_without_header_uses_positional_names(self):
        """Test that has_header=False names the columns by position"""
        result = parse("230425980,1,0.5\n5530458,2,0.25\n", {"has_header": False})

        assert result.fields == ["0", "1", "2"]
        assert result.rows[0] == {"0": "230425980", "1": "1", "2": "0.5"}
        assert len(result) == 2

    def test_duplicate_header_names_are_suffixed(self):
        """Test that repeated header names do not overwrite each other"""
        result = parse("a,a,a\n1,2,3\n")
        assert result.fields == ["a", "a_1", "a_2"]
        assert result.rows == [{"a": "1", "a_1": "2", "a_2": "3"}]

    def test_suffixed_name_does_not_hide_real_header(self):
        """Test that a header equal to a generated name keeps its own column"""
        result = parse("a,a,a_1\n1,2,3\n")

        assert len(set(result.fields)) == 3
        assert result.fields[:2] == ["a", "a_1"]
        assert sorted(result.rows[0].values()) == ["1", "2", "3"]

    def test_blank_header_uses_position(self):
        """Test that a blank header name is replaced by its column position"""
        result = parse("txId,,class\n1,x,2\n")
        assert result.fields == ["txId", "1", "class"]

    def test_custom_delimiter(self):
        """Test that the delimiter option is honoured"""
        result = parse("a;b\n1;2\n", {"delimiter": ";"})
        assert result.rows == [{"a": "1", "b": "2"}]

    def test_max_rows(self):
        """Test that parsing stops after max_rows data rows"""
        result = parse("a\n1\n2\n3\n4\n", {"max_rows": 2})
        assert [row["a"] for row in result] == ["1", "2"]

    def test_header_only_gives_no_rows(self):
        """Test that a file with only a header parses to zero rows"""
        result = parse("txId,class\n")
        assert result.fields == ["txId", "class"]
        assert len(result) == 0

    def test_empty_input(self):
        """Test that empty input parses to zero rows and no fields"""
        result = parse(b"")
        assert result.fields == []
        assert len(result) == 0

    def test_source_name_recorded(self):
        result = parse("a\n1\n", source="classes")
        assert result.source == "classes"

    def test_unknown_option_raises(self):
        """Test that misspelled options are rejected"""
        with pytest.raises(ValueError, match="Unknown parse options"):
            parse("a\n1\n", {"delimeter": ";"})


@pytest.mark.unit
class TestMalformedRows:
    """Tests for rows with the wrong number of cells"""

    def test_short_row_is_padded_with_warning(self):
        """Test that a short row is kept, padded with None and reported"""
        result = parse("a,b,c\n1,2,3\n4,5\n")

        assert result.rows[1] == {"a": "4", "b": "5", "c": None}
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.code == TOO_FEW_FIELDS
        assert warning.line == 3

    def test_long_row_is_truncated_with_warning(self):
        """Test that extra cells are dropped and reported"""
        result = parse("a,b\n1,2,3\n")

        assert result.rows == [{"a": "1", "b": "2"}]
        assert [w.code for w in result.warnings] == [TOO_MANY_FIELDS]

    def test_every_malformed_row_is_reported(self):
        """Test that warnings are collected for all rows, not just the logged ones"""
        body = "".join(f"{i}\n" for i in range(20))
        result = parse("a,b\n" + body)

        assert len(result) == 20
        assert len(result.warnings) == 20


@pytest.mark.unit
class TestParseErrors:
    """Tests for inputs that fail as a whole"""

    def test_invalid_utf8_raises_parse_error(self):
        """Test that undecodable bytes raise ParseError naming the table"""
        with pytest.raises(ParseError) as exc_info:
            parse(b"a,b\n\xff\xfe,1\n", source="features")

        assert exc_info.value.table == "features"
        assert "[features]" in str(exc_info.value)

    def test_bad_quoting_raises_parse_error(self):
        """Test that text after a closing quote is a tokenising error"""
        with pytest.raises(ParseError) as exc_info:
            parse('a,b\n"x"y,1\n', source="edgelist")

        assert exc_info.value.line == 2

    def test_size_limit_exceeded(self):
        """Test that oversized input is rejected before parsing"""
        with pytest.raises(SizeLimitExceeded) as exc_info:
            parse(b"a,b\n1,2\n", {"max_input_size_bytes": 4}, source="classes")

        assert exc_info.value.limit == 4
        assert exc_info.value.size == 8
        assert exc_info.value.table == "classes"

    def test_size_limit_applies_to_text(self):
        """Test that str input is measured in encoded bytes"""
        with pytest.raises(SizeLimitExceeded):
            parse("ééé", {"max_input_size_bytes": 5})

    def test_size_limit_none_disables_check(self):
        result = parse(b"a\n1\n", {"max_input_size_bytes": None})
        assert len(result) == 1


@pytest.mark.unit
class TestParseFile:
    """Tests for parse_file"""

    def test_parses_file(self, tmp_path):
        path = tmp_path / "classes.csv"
        path.write_text("txId,class\n1,1\n")

        result = parse_file(path)

        assert result.source == "classes.csv"
        assert result.rows == [{"txId": "1", "class": "1"}]

    def test_checks_size_before_reading(self, tmp_path):
        """Test that the file size is checked against the limit"""
        path = tmp_path / "features.csv"
        path.write_text("a,b\n" + "1,2\n" * 100)

        with pytest.raises(SizeLimitExceeded) as exc_info:
            parse_file(path, {"max_input_size_bytes": 10}, source="features")

        assert exc_info.value.size == path.stat().st_size

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_file(tmp_path / "missing.csv")
