"""
Tests for utils/query.py

build_where_clause and build_order_clause, which push list filters down into
the SQLite record store.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.query import build_order_clause, build_where_clause


_COLUMNS = {"status", "completed", "date", "planting_date", "name", "variety",
            "description", "category"}


# ── build_where_clause ────────────────────────────────────────────────────────

class TestBuildWhereClause:
    def test_no_filters(self):
        assert build_where_clause() == ("", [])

    def test_all_is_unconstrained(self):
        where, params = build_where_clause(farm_id="all", equals={"status": "all"},
                                           allowed_columns=_COLUMNS)
        assert where == ""
        assert params == []

    def test_farm_id_matched_as_text(self):
        where, params = build_where_clause(farm_id=2)
        assert where == "WHERE CAST(farm_id AS TEXT) = ?"
        assert params == ["2"]

    def test_equals_string(self):
        where, params = build_where_clause(equals={"status": "growing"},
                                           allowed_columns=_COLUMNS)
        assert where == "WHERE CAST(status AS TEXT) = ?"
        assert params == ["growing"]

    def test_equals_bool_sent_as_int(self):
        where, params = build_where_clause(equals={"completed": False},
                                           allowed_columns=_COLUMNS)
        assert where == "WHERE completed = ?"
        assert params == [0]

    def test_date_range(self):
        where, params = build_where_clause(date_column="date", date_from="2023-05-01",
                                           date_to="2023-05-31", allowed_columns=_COLUMNS)
        assert "date IS NOT NULL" in where
        assert "date >= ?" in where
        assert "date <= ?" in where
        assert params == ["2023-05-01", "2023-05-31"]

    def test_date_column_without_bounds_skipped(self):
        assert build_where_clause(date_column="date") == ("", [])

    def test_search_folded_in_python(self):
        where, params = build_where_clause(search=" 50%Off ",
                                           search_columns=["name", "variety"],
                                           allowed_columns=_COLUMNS)
        assert where == ("WHERE (instr(py_lower(name), ?) > 0 "
                         "OR instr(py_lower(variety), ?) > 0)")
        assert params == ["50%off", "50%off"]

    def test_non_ascii_search_pushed_down(self):
        where, params = build_where_clause(search="CAFÉ", search_columns=["name"],
                                           allowed_columns=_COLUMNS)
        assert where == "WHERE (instr(py_lower(name), ?) > 0)"
        assert params == ["café"]

    def test_blank_search_skipped(self):
        assert build_where_clause(search="   ", search_columns=["name"]) == ("", [])

    def test_conditions_joined_with_and(self):
        where, params = build_where_clause(farm_id=1, equals={"category": "Seeds"},
                                           allowed_columns=_COLUMNS)
        assert where == "WHERE CAST(farm_id AS TEXT) = ? AND CAST(category AS TEXT) = ?"
        assert params == ["1", "Seeds"]

    def test_rejects_unknown_column(self):
        with pytest.raises(ValueError, match="Invalid filter column"):
            build_where_clause(equals={"1=1; DROP TABLE farms": "x"},
                               allowed_columns=_COLUMNS)

    def test_rejects_unknown_search_column(self):
        with pytest.raises(ValueError):
            build_where_clause(search="corn", search_columns=["secret"],
                               allowed_columns=_COLUMNS)


# ── build_order_clause ────────────────────────────────────────────────────────

class TestBuildOrderClause:
    def test_valid(self):
        assert build_order_clause("date", "desc", {"date", "id"}) == "ORDER BY date DESC"

    def test_direction_case_insensitive(self):
        assert build_order_clause("date", "DESC", {"date"}) == "ORDER BY date DESC"

    def test_unknown_direction_is_asc(self):
        assert build_order_clause("date", "sideways", {"date"}) == "ORDER BY date ASC"

    def test_unknown_column_falls_back(self):
        assert build_order_clause("evil", "asc", {"date"}) == "ORDER BY id ASC"

    def test_custom_default(self):
        assert build_order_clause("evil", "asc", {"date"}, default_sort="date") == \
            "ORDER BY date ASC"
