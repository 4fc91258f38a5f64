"""
Tests for utils/strings.py and utils/patterns.py

parse_amount, is_iso_date, is_blank, split_csv_list,
camel_to_snake.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.strings import (
    camel_to_snake,
    is_blank,
    is_iso_date,
    parse_amount,
    split_csv_list,
)


class TestParseAmount:
    @pytest.mark.parametrize("value,expected", [
        (250, 250.0),
        (175.5, 175.5),
        ("0.01", 0.01),
        (" 42 ", 42.0),
        ("-5", -5.0),
        ("1e3", 1000.0),
        (".5", 0.5),
    ])
    def test_parses(self, value, expected):
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", [
        None, "", "   ", "abc", "1,000", "1_000", "inf", "nan", "$5", True, False,
        float("inf"), float("nan"), "\u0661\u0662",
    ])
    def test_rejects(self, value):
        assert parse_amount(value) is None


class TestIsIsoDate:
    def test_valid(self):
        assert is_iso_date("2023-07-15")

    @pytest.mark.parametrize("value", ["2023-7-15", "07/15/2023", "", None, 20230715,
                                       "2023-07-15T00:00:00", "2023-07-15\n",
                                       "\u0662\u0660\u0662\u0663-07-15"])
    def test_invalid(self, value):
        assert not is_iso_date(value)


class TestIsBlank:
    def test_blank_values(self):
        assert is_blank(None)
        assert is_blank("")
        assert is_blank("   ")

    def test_non_blank(self):
        assert not is_blank("Corn")
        assert not is_blank(0)


class TestSplitCsvList:
    def test_string(self):
        assert split_csv_list("corn, wheat,, soybeans") == ["corn", "wheat", "soybeans"]

    def test_list_cleaned(self):
        assert split_csv_list([" Corn ", "", "Tomatoes"]) == ["Corn", "Tomatoes"]

    def test_none(self):
        assert split_csv_list(None) == []


class TestCamelToSnake:
    @pytest.mark.parametrize("name,expected", [
        ("plantingDate", "planting_date"),
        ("farmId", "farm_id"),
        ("CreatedOn", "created_on"),
        ("name", "name"),
    ])
    def test_convert(self, name, expected):
        assert camel_to_snake(name) == expected
