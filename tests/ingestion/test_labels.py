"""
Unit tests for label parsing and the classification index
"""
import pytest

from ellipticgraph.graph.models import Classification
from ellipticgraph.ingestion.labels import build_index, parse_label
from ellipticgraph.utils.logging import AnomalyCounter


@pytest.mark.unit
class TestParseLabel:
    """Tests for parse_label"""

    @pytest.mark.parametrize("value", ["1", 1, 1.0, " 1 ", "1.0"])
    def test_illicit(self, value):
        assert parse_label(value) is Classification.ILLICIT

    @pytest.mark.parametrize("value", ["2", 2, 2.0, "2.0"])
    def test_licit(self, value):
        assert parse_label(value) is Classification.LICIT

    @pytest.mark.parametrize("value", ["3", 3, "unknown", "garbage", "1.5", 1.5, True, "", "0"])
    def test_everything_else_is_none(self, value):
        """Test that unknown, unparsable and non-integral labels are not classified"""
        assert parse_label(value) is None


@pytest.mark.unit
class TestBuildIndex:
    """Tests for build_index"""

    def test_basic_index(self):
        """Test that only illicit and licit labels are stored"""
        rows = [
            {"txId": "A", "class": "1"},
            {"txId": "B", "class": "2"},
            {"txId": "C", "class": "3"},
            {"txId": "D", "class": "garbage"},
        ]

        index = build_index(rows)

        assert dict(index) == {"A": Classification.ILLICIT, "B": Classification.LICIT}
        assert index.source_rows == 4

    def test_lookup_defaults_to_unknown(self):
        """Test that ids missing from the index are unknown"""
        index = build_index([{"txId": "A", "class": "1"}])

        assert index.lookup("A") is Classification.ILLICIT
        assert index.lookup("never-seen") is Classification.UNKNOWN
        assert "never-seen" not in index

    def test_last_row_wins(self):
        """Test that a repeated id keeps the last label"""
        rows = [
            {"txId": "A", "class": "1"},
            {"txId": "A", "class": "2"},
        ]
        assert build_index(rows)["A"] is Classification.LICIT

    def test_later_unknown_clears_earlier_label(self):
        """Test that a later unknown row leaves the id unlabelled"""
        rows = [
            {"txId": "A", "class": "1"},
            {"txId": "A", "class": "unknown"},
        ]
        index = build_index(rows)

        assert "A" not in index
        assert index.lookup("A") is Classification.UNKNOWN

    def test_alias_headers(self):
        """Test that id and label resolve through their aliases"""
        rows = [
            {"transaction_id": "A", "label": "1"},
            {"0": "B", "1": "2"},
        ]
        index = build_index(rows)

        assert index["A"] is Classification.ILLICIT
        assert index["B"] is Classification.LICIT

    def test_anomalies_are_counted(self):
        """Test that skipped rows are tallied by rule"""
        rows = [
            {"txId": None, "class": "1"},
            {"txId": "B", "class": None},
            {"txId": "C", "class": "garbage"},
            {"txId": "D", "class": "unknown"},
            {"txId": "E", "class": "3"},
        ]
        counter = AnomalyCounter("classes")

        build_index(rows, counter)

        assert counter.counts == {
            "classes.missing_label": 1,
            "classes.unrecognised_label": 1,
            "classes.unresolved_identifier": 1,
        }

    def test_empty_rows(self):
        index = build_index([])
        assert len(index) == 0
        assert index.source_rows == 0
