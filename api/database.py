"""
Record store wiring for the API.

The store is built once from configuration (``APP_STORE``, ``APP_DB_PATH``,
``APP_JSON_STORE_PATH``) or injected by ``create_app(store=...)``. Routes
receive it through the ``get_store`` / ``get_services`` dependencies, which
keeps them testable against either backend.
"""

import logging
import threading
from pathlib import Path

from fastapi import Depends

from store.base import RecordStore
from store.json_store import JsonRecordStore
from store.services import Services
from store.sqlite_store import SqliteRecordStore
from utils.config import AppConfig

logger = logging.getLogger(__name__)

_store: RecordStore | None = None
_store_lock = threading.Lock()


def build_store(backend: str, path: Path) -> RecordStore:
    """Create a record store for *backend* ("sqlite" or "json") at *path*.

    Raises:
        ValueError: If *backend* is unknown
        StoreError: If the SQLite schema cannot be created
    """
    if backend == "json":
        store: RecordStore = JsonRecordStore(path)
    elif backend == "sqlite":
        store = SqliteRecordStore(path)
    else:
        raise ValueError(f"Unknown store backend: '{backend}'")
    logger.info("record store ready backend=%s path=%s", backend, path)
    return store


def configure_store(store: RecordStore | None) -> None:
    """Install *store* as the process-wide record store (None resets it)."""
    global _store
    with _store_lock:
        _store = store


def get_store() -> RecordStore:
    """FastAPI dependency: the configured record store.

    Built lazily from ``AppConfig.from_env()`` on first use.

    Usage in a route::

        from api.database import get_store
        from fastapi import Depends

        @router.get("/example")
        def example(store=Depends(get_store)):
            ...
    """
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                cfg = AppConfig.from_env()
                _store = build_store(cfg.store_backend, cfg.store_path())
    return _store


def get_services(store: RecordStore = Depends(get_store)) -> Services:
    """FastAPI dependency: entity services bound to the configured store."""
    return Services(store)
