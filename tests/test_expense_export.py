"""
Tests for GET /api/v1/expenses/export

CSV, newline-delimited JSON and Excel output of the filtered, sorted expense
set, with source attribution and the X-Total-Count header.
"""
import csv
import io
import json
import sys
from pathlib import Path

import openpyxl

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from api.routes.expenses import EXPORT_COLUMNS  # noqa: E402

URL = "/api/v1/expenses/export"


def _csv_rows(resp):
    return list(csv.reader(io.StringIO(resp.text)))


class TestCsvExport:
    def test_default_is_csv(self, client):
        resp = client.get(URL)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["content-disposition"] == "attachment; filename=expenses.csv"
        assert resp.headers["x-total-count"] == "3"

    def test_metadata_rows(self, client):
        rows = _csv_rows(client.get(URL))
        assert rows[0] == ["# Source: CropKeeper"]
        assert rows[1][0].startswith("# Export Date: ")
        assert rows[2] == ["# Filters: none"]
        assert rows[3] == ["# Total: 846.25"]
        assert rows[4] == EXPORT_COLUMNS

    def test_rows_in_default_order(self, client):
        rows = _csv_rows(client.get(URL))[5:]
        assert [r[3] for r in rows] == ["Equipment", "Fertilizer", "Seeds"]
        assert rows[0][6] == "Riverside Fields"

    def test_filters_applied_and_described(self, client):
        rows = _csv_rows(client.get(URL, params={"farm_id": 1, "category": "Seeds"}))
        assert rows[2] == ["# Filters: farm_id=1; category=Seeds"]
        assert rows[3] == ["# Total: 250.00"]
        data = rows[5:]
        assert len(data) == 1
        assert data[0][4] == "Spring corn seeds"

    def test_sort(self, client):
        rows = _csv_rows(client.get(URL, params={"sort_by": "amount", "sort_dir": "desc"}))[5:]
        assert [float(r[2]) for r in rows] == [420.75, 250.0, 175.5]

    def test_empty_result(self, client):
        resp = client.get(URL, params={"farm_id": 999})
        rows = _csv_rows(resp)
        assert resp.headers["x-total-count"] == "0"
        assert rows[3] == ["# Total: 0.00"]
        assert rows[4:] == [EXPORT_COLUMNS]


class TestJsonExport:
    def test_ndjson(self, client):
        resp = client.get(URL, params={"fmt": "json", "farm_id": 1})
        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == "attachment; filename=expenses.ndjson"
        lines = [json.loads(line) for line in resp.text.splitlines() if line]
        meta = lines[0]["_metadata"]
        assert meta["source"] == "CropKeeper"
        assert meta["total_records"] == 2
        assert meta["filters"] == "farm_id=1"
        assert meta["summary"]["total"] == 425.5
        assert "fmt=json" in meta["url"]
        records = lines[1:]
        assert [r["category"] for r in records] == ["Fertilizer", "Seeds"]
        assert set(records[0]) == set(EXPORT_COLUMNS)
        assert records[0]["farm_name"] == "Green Valley Farm"


class TestXlsxExport:
    def test_workbook(self, client):
        resp = client.get(URL, params={"fmt": "xlsx"})
        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == "attachment; filename=expenses.xlsx"
        assert resp.headers["x-total-count"] == "3"
        wb = openpyxl.load_workbook(io.BytesIO(resp.content), read_only=True)
        assert wb.sheetnames == ["Metadata", "Expenses"]
        meta = {row[0]: row[1] for row in wb["Metadata"].iter_rows(values_only=True)}
        assert meta["Source"] == "CropKeeper"
        assert meta["Total"] == 846.25
        rows = list(wb["Expenses"].iter_rows(values_only=True))
        assert list(rows[0]) == EXPORT_COLUMNS
        assert len(rows) == 4
        assert rows[1][2] == 420.75


class TestExportValidation:
    def test_unknown_format(self, client):
        resp = client.get(URL, params={"fmt": "pdf"})
        assert resp.status_code == 422
        assert "fmt" in resp.json()["errors"]

    def test_export_not_shadowed_by_id_route(self, client):
        assert client.get(URL).status_code != 404
