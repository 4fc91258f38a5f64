"""
Tests for pipeline/sorting.py

Numeric, date and text comparison policies, per-kind defaults, stability in
both directions, and placement of incomparable values.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pipeline.sorting import resolve_sort, sort_records
from pipeline.specs import SortSpec


def _ids(records):
    return [r["id"] for r in records]


class TestDefaults:
    def test_tasks_default_due_date_ascending(self):
        tasks = [
            {"id": "A", "title": "A", "due_date": "2023-08-20"},
            {"id": "B", "title": "B", "due_date": "2023-07-15"},
        ]
        assert [t["title"] for t in sort_records(tasks, None, "tasks")] == ["B", "A"]

    def test_tasks_explicit_key_wins(self):
        tasks = [
            {"id": 1, "title": "Water", "due_date": "2023-07-11"},
            {"id": 2, "title": "Harvest", "due_date": "2023-07-12"},
        ]
        assert _ids(sort_records(tasks, SortSpec("title", "asc"), "tasks")) == [2, 1]

    def test_expenses_default_date_descending(self):
        expenses = [
            {"id": 1, "date": "2023-05-15"},
            {"id": 2, "date": "2023-06-05"},
            {"id": 3, "date": "2023-05-20"},
        ]
        assert _ids(sort_records(expenses, None, "expenses")) == [2, 3, 1]

    def test_farms_default_is_input_order(self):
        farms = [{"id": 2, "name": "B"}, {"id": 1, "name": "A"}]
        assert _ids(sort_records(farms, None, "farms")) == [2, 1]

    def test_unknown_key_falls_back_to_default(self):
        assert resolve_sort(SortSpec("bogus", "desc"), "tasks") == SortSpec("due_date", "asc")
        assert resolve_sort(SortSpec(None), "farms") is None

    def test_known_key_kept(self):
        spec = SortSpec("amount", "desc")
        assert resolve_sort(spec, "expenses") is spec


class TestComparisonPolicies:
    def test_amount_numeric(self):
        expenses = [
            {"id": 1, "amount": "100"},
            {"id": 2, "amount": 25},
            {"id": 3, "amount": 9.5},
        ]
        assert _ids(sort_records(expenses, SortSpec("amount", "asc"), "expenses")) == [3, 2, 1]

    def test_text_case_sensitive(self):
        farms = [{"id": 1, "name": "apple"}, {"id": 2, "name": "Banana"}, {"id": 3, "name": "cherry"}]
        # uppercase letters sort before lowercase
        assert _ids(sort_records(farms, SortSpec("name"), "farms")) == [2, 1, 3]

    def test_text_uses_string_form(self):
        farms = [{"id": 1, "size": 100}, {"id": 2, "size": 24}]
        assert _ids(sort_records(farms, SortSpec("size"), "farms")) == [1, 2]

    def test_date_descending(self):
        crops = [
            {"id": 1, "planting_date": "2023-04-15"},
            {"id": 2, "planting_date": "2023-05-01"},
        ]
        assert _ids(sort_records(crops, SortSpec("planting_date", "desc"), "crops")) == [2, 1]


class TestIncomparableValues:
    def test_non_numeric_amount_last_both_directions(self):
        expenses = [
            {"id": 1, "amount": "abc"},
            {"id": 2, "amount": 5},
            {"id": 3, "amount": None},
            {"id": 4, "amount": 10},
        ]
        assert _ids(sort_records(expenses, SortSpec("amount", "asc"), "expenses")) == [2, 4, 1, 3]
        assert _ids(sort_records(expenses, SortSpec("amount", "desc"), "expenses")) == [4, 2, 1, 3]

    def test_missing_and_malformed_dates_last(self):
        crops = [
            {"id": 1, "harvest_date": None},
            {"id": 2, "harvest_date": "2023-09-01"},
            {"id": 3, "harvest_date": "soon"},
            {"id": 4, "harvest_date": "2023-08-01"},
        ]
        assert _ids(sort_records(crops, SortSpec("harvest_date", "asc"), "crops")) == [4, 2, 1, 3]
        assert _ids(sort_records(crops, SortSpec("harvest_date", "desc"), "crops")) == [2, 4, 1, 3]

    def test_missing_text_last(self):
        farms = [{"id": 1}, {"id": 2, "location": "B"}, {"id": 3, "location": "A"}]
        assert _ids(sort_records(farms, SortSpec("location", "desc"), "farms")) == [2, 3, 1]


class TestStability:
    RECORDS = [
        {"id": 1, "category": "Seeds", "amount": 50},
        {"id": 2, "category": "Fuel", "amount": 50},
        {"id": 3, "category": "Seeds", "amount": 10},
        {"id": 4, "category": "Labor", "amount": 50},
        {"id": 5, "category": "Seeds", "amount": 10},
    ]

    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_equal_keys_keep_input_order(self, direction):
        result = sort_records(self.RECORDS, SortSpec("amount", direction), "expenses")
        fifties = [r["id"] for r in result if r["amount"] == 50]
        tens = [r["id"] for r in result if r["amount"] == 10]
        assert fifties == [1, 2, 4]
        assert tens == [3, 5]

    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_text_stability(self, direction):
        result = sort_records(self.RECORDS, SortSpec("category", direction), "expenses")
        seeds = [r["id"] for r in result if r["category"] == "Seeds"]
        assert seeds == [1, 3, 5]

    def test_input_not_modified(self):
        records = list(self.RECORDS)
        sort_records(records, SortSpec("amount", "desc"), "expenses")
        assert records == self.RECORDS

    def test_empty(self):
        assert sort_records([], SortSpec("amount"), "expenses") == []
