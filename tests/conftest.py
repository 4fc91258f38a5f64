"""
Pytest fixtures for CropKeeper tests.

Provides fresh record stores for both backends, a store seeded with the demo
farms, and a FastAPI TestClient bound to a seeded store.

Store fixtures use ``tmp_path`` so every test starts from an empty file.
The ``any_store`` fixture is parametrized over both backends; tests that use
it run once per backend and must pass against each.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from store.json_store import JsonRecordStore  # noqa: E402
from store.seed import seed_demo_data  # noqa: E402
from store.sqlite_store import SqliteRecordStore  # noqa: E402

# Reference day for seeded task due dates (tasks due 07-11, 07-12, 07-13)
SEED_DAY = date(2023, 7, 10)


class _TickClock:
    """Deterministic clock for the JSON store: advances 1 ms per call."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 0.001
        return self.now


@pytest.fixture()
def sqlite_store(tmp_path):
    return SqliteRecordStore(tmp_path / "cropkeeper.sqlite")


@pytest.fixture()
def json_store(tmp_path):
    return JsonRecordStore(tmp_path / "cropkeeper_local.json", clock=_TickClock())


@pytest.fixture(params=["sqlite", "json"])
def any_store(request, tmp_path):
    """A fresh, empty store of each backend in turn."""
    if request.param == "sqlite":
        return SqliteRecordStore(tmp_path / "cropkeeper.sqlite")
    return JsonRecordStore(tmp_path / "cropkeeper_local.json", clock=_TickClock())


@pytest.fixture()
def seeded_store(any_store):
    """``any_store`` holding the demo farms, crops, tasks and expenses."""
    seed_demo_data(any_store, today=SEED_DAY)
    return any_store


@pytest.fixture()
def seeded_sqlite(sqlite_store):
    seed_demo_data(sqlite_store, today=SEED_DAY)
    return sqlite_store


@pytest.fixture()
def farm_ids(seeded_store):
    """Identifiers of the two demo farms, in creation order."""
    return [f["id"] for f in seeded_store.list("farms")]


@pytest.fixture()
def reset_rate_counters():
    """Clear the app's per-IP rate counters before and after a test."""
    import api.app as app_module

    app_module._rate_counters.clear()
    yield
    app_module._rate_counters.clear()


@pytest.fixture()
def client(seeded_sqlite, reset_rate_counters):
    """TestClient over a seeded SQLite store."""
    from fastapi.testclient import TestClient

    from api.app import create_app

    app = create_app(store=seeded_sqlite)
    return TestClient(app, raise_server_exceptions=False)
